"""Exception types for Phaseboard.

Store failures are raised by the data-access gateway and the board
repository; the board session catches them at each operation boundary
and turns them into transient notices.
"""

from __future__ import annotations


class BoardError(Exception):
    """Base class for all Phaseboard errors."""


class StoreError(BoardError):
    """A read or write against the remote store failed.

    Attributes:
        table: Table the failed call targeted.
        operation: Gateway operation name (select, insert, update, delete).
    """

    def __init__(self, message: str, table: str | None = None, operation: str | None = None):
        self.table = table
        self.operation = operation
        super().__init__(message)


class NotFoundError(StoreError):
    """The row addressed by a read or write does not exist."""


class PermissionDeniedError(BoardError):
    """The acting user may not perform the requested change."""


class InvalidTransitionError(BoardError):
    """Raised when an invalid phase status transition is attempted.

    Attributes:
        current: The current phase status value.
        target: The attempted target status value.
        phase_id: The ID of the phase that failed to transition.
    """

    def __init__(self, current: str, target: str, phase_id: str | None = None):
        self.current = current
        self.target = target
        self.phase_id = phase_id
        msg = f"Invalid transition from {current} to {target}"
        if phase_id:
            msg += f" for phase {phase_id}"
        super().__init__(msg)
