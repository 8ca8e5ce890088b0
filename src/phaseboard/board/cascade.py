"""Completion cascade for board items and phases.

Item completion is a two-state toggle. Completing the last open item of an
active phase completes the phase as well; un-completing an item never
reopens a phase. Reopening is only ever the explicit restore transition.

All functions here are pure: they take board values and return new ones.
Writing the results to the store, and the order in which that happens, is
the board session's job.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from uuid import UUID

import structlog

from phaseboard.board.models import Item, Phase, PhaseStatus
from phaseboard.errors import InvalidTransitionError

logger = structlog.get_logger(__name__)


# Completed phases are only entered through the cascade and only left
# through restore.
VALID_PHASE_TRANSITIONS: dict[PhaseStatus, set[PhaseStatus]] = {
    PhaseStatus.active: {PhaseStatus.completed},
    PhaseStatus.completed: {PhaseStatus.active},
}


def validate_transition(current: PhaseStatus, target: PhaseStatus) -> bool:
    """Validate if a phase status transition is allowed."""
    return target in VALID_PHASE_TRANSITIONS.get(current, set())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ToggleOutcome:
    """Result of toggling one item.

    Attributes:
        phase: The phase with the toggled item and, if the cascade fired,
            with status completed.
        item: The toggled item.
        completed_phase: True if the phase transitioned to completed.
    """

    phase: Phase
    item: Item
    completed_phase: bool

    @property
    def item_completed(self) -> bool:
        return self.item.completed

    @property
    def phase_before_cascade(self) -> Phase:
        """The phase with the toggled item but its status left unchanged."""
        if not self.completed_phase:
            return self.phase
        return replace(self.phase, status=PhaseStatus.active, completed_at=None)


def set_item_completed(item: Item, completed: bool, now: datetime | None = None) -> Item:
    """Return the item with its completion flag and timestamp set."""
    if completed:
        return replace(item, completed=True, completed_at=now or utcnow())
    return replace(item, completed=False, completed_at=None)


def should_auto_complete(phase: Phase) -> bool:
    """An active phase with at least one item, all of them complete."""
    return (
        phase.status is PhaseStatus.active
        and len(phase.items) > 0
        and all(item.completed for item in phase.items)
    )


def complete_phase(phase: Phase, now: datetime | None = None) -> Phase:
    """Transition active -> completed.

    Raises:
        InvalidTransitionError: If the phase is not active.
    """
    if not validate_transition(phase.status, PhaseStatus.completed):
        raise InvalidTransitionError(
            phase.status.value, PhaseStatus.completed.value, str(phase.id)
        )
    return replace(phase, status=PhaseStatus.completed, completed_at=now or utcnow())


def restore_phase(phase: Phase, position: int) -> Phase:
    """Transition completed -> active, appended at ``position``.

    The position the phase held before completion is not restored; the
    caller passes the next free active position so the restored phase
    never collides with an existing active phase.

    Raises:
        InvalidTransitionError: If the phase is not completed.
    """
    if not validate_transition(phase.status, PhaseStatus.active):
        raise InvalidTransitionError(
            phase.status.value, PhaseStatus.active.value, str(phase.id)
        )
    return replace(phase, status=PhaseStatus.active, completed_at=None, position=position)


def toggle_item(phase: Phase, item_id: UUID, now: datetime | None = None) -> ToggleOutcome:
    """Flip one item's completion and evaluate the phase cascade.

    Args:
        phase: Phase containing the item.
        item_id: Item to toggle.
        now: Timestamp for completed_at values (defaults to current UTC time).

    Returns:
        ToggleOutcome with the updated phase and item.

    Raises:
        KeyError: If the item is not in the phase.
    """
    item = phase.item(item_id)
    if item is None:
        raise KeyError(f"Item {item_id} not in phase {phase.id}")

    now = now or utcnow()
    toggled = set_item_completed(item, not item.completed, now)
    updated = phase.with_item(toggled)

    # Only a toggle to complete re-evaluates the phase
    if toggled.completed and should_auto_complete(updated):
        updated = complete_phase(updated, now)
        logger.debug(
            "phase_cascade_triggered",
            phase_id=str(phase.id),
            item_id=str(item_id),
            item_count=len(updated.items),
        )
        return ToggleOutcome(phase=updated, item=toggled, completed_phase=True)

    return ToggleOutcome(phase=updated, item=toggled, completed_phase=False)
