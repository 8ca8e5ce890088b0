"""Drag-and-drop reordering with optimistic updates.

A drop is handled in two phases. ``plan`` is pure: it resolves the drag
gesture against the owner's current board and returns the reordered board
plus the position writes it implies. The owner's board is replaced with the
planned one immediately, then ``persist`` issues the writes concurrently.
Each write sets an absolute position, so arrival order does not matter.

If any write fails the optimistic state is discarded and the owner reloads
the whole board from the store; partially applied batches are never
repaired one entity at a time.

Two scopes share the controller: active phases within a project (parent key
is the project id) and items within a phase (parent key is the phase id).
"""

from __future__ import annotations

import abc
import asyncio
from collections.abc import Sequence
from dataclasses import dataclass, replace
from typing import Any, Protocol
from uuid import UUID

import structlog

from phaseboard.board import ordering
from phaseboard.board.models import Board
from phaseboard.board.notices import Notifier
from phaseboard.board.repository import BoardRepository
from phaseboard.errors import StoreError

logger = structlog.get_logger(__name__)


class BoardOwner(Protocol):
    """Holder of the single mutable board reference."""

    board: Board
    notifier: Notifier

    async def reload(self) -> bool: ...


class ReorderScope(abc.ABC):
    """How one kind of ordered collection is found, replaced and written."""

    entity: str

    @abc.abstractmethod
    def members(self, board: Board, parent_key: UUID) -> tuple[Any, ...] | None:
        """Current ordered members the user may drag, or None if they may not."""

    def compactable(self, board: Board, parent_key: UUID) -> tuple[Any, ...] | None:
        """Members whose positions are closed up after a removal."""
        return self.members(board, parent_key)

    @abc.abstractmethod
    def replace(self, board: Board, parent_key: UUID, ordered: Sequence[Any]) -> Board:
        """Board with the parent's members replaced by ``ordered``."""

    @abc.abstractmethod
    async def write_position(
        self, repository: BoardRepository, entity_id: UUID, position: int
    ) -> None:
        """Persist one absolute position."""


class PhaseScope(ReorderScope):
    """Active phases of the board's project."""

    entity = "phase"

    def members(self, board: Board, parent_key: UUID) -> tuple[Any, ...] | None:
        if parent_key != board.project.id:
            return None
        return board.active_phases

    def replace(self, board: Board, parent_key: UUID, ordered: Sequence[Any]) -> Board:
        return board.with_phases(tuple(ordered))

    async def write_position(
        self, repository: BoardRepository, entity_id: UUID, position: int
    ) -> None:
        await repository.set_phase_position(entity_id, position)


class ItemScope(ReorderScope):
    """Items of one phase. Only items of active phases can be dragged."""

    entity = "item"

    def members(self, board: Board, parent_key: UUID) -> tuple[Any, ...] | None:
        phase = board.phase(parent_key)
        if phase is None or not phase.is_active:
            return None
        return phase.items

    def compactable(self, board: Board, parent_key: UUID) -> tuple[Any, ...] | None:
        # deleting an item of a completed phase still leaves a gap
        phase = board.phase(parent_key)
        if phase is None:
            return None
        return phase.items

    def replace(self, board: Board, parent_key: UUID, ordered: Sequence[Any]) -> Board:
        phase = board.phase(parent_key)
        if phase is None:
            return board
        return board.with_phase(replace(phase, items=tuple(ordered)))

    async def write_position(
        self, repository: BoardRepository, entity_id: UUID, position: int
    ) -> None:
        await repository.set_item_position(entity_id, position)


@dataclass(frozen=True)
class ReorderPlan:
    """Outcome of resolving a reorder against a board.

    Attributes:
        parent_key: Parent whose members are reordered.
        board: The board with the new order applied.
        writes: ``(entity_id, position)`` pairs that must be persisted.
    """

    parent_key: UUID
    board: Board
    writes: tuple[tuple[UUID, int], ...]


class ReorderController:
    """Optimistic reorder of one scope, reconciled by reload on failure.

    Attributes:
        scope: Which collection this controller orders.
        repository: Board persistence adapter.
        owner: Holder of the board the controller updates.
    """

    def __init__(
        self,
        scope: ReorderScope,
        repository: BoardRepository,
        owner: BoardOwner,
    ) -> None:
        self.scope = scope
        self.repository = repository
        self.owner = owner
        self._logger = logger.bind(component="ReorderController", entity=scope.entity)

    def plan(
        self,
        board: Board,
        parent_key: UUID,
        active_id: UUID,
        over_id: UUID | None,
    ) -> ReorderPlan | None:
        """Resolve a drop of ``active_id`` onto ``over_id``.

        Returns:
            The plan, or None for a no-op gesture (no target, dropped in
            place, unknown parent or ids, or a parent whose members
            cannot be dragged).
        """
        members = self.scope.members(board, parent_key)
        if members is None:
            return None
        reordered = ordering.reorder_by_id(members, active_id, over_id)
        if reordered is None:
            return None
        return ReorderPlan(
            parent_key=parent_key,
            board=self.scope.replace(board, parent_key, reordered),
            writes=tuple(ordering.position_changes(members, reordered)),
        )

    def plan_compaction(self, board: Board, parent_key: UUID) -> ReorderPlan | None:
        """Plan closing gaps left when a member leaves the collection.

        Returns:
            The plan, or None when positions are already dense.
        """
        members = self.scope.compactable(board, parent_key)
        if members is None:
            return None
        compacted = ordering.reindex(members)
        writes = tuple(ordering.position_changes(members, compacted))
        if not writes:
            return None
        return ReorderPlan(
            parent_key=parent_key,
            board=self.scope.replace(board, parent_key, compacted),
            writes=writes,
        )

    async def persist(self, plan: ReorderPlan) -> None:
        """Issue all position writes of a plan concurrently.

        Every write is attempted even if others fail.

        Raises:
            StoreError: The first failure, after all writes have settled.
        """
        results = await asyncio.gather(
            *(
                self.scope.write_position(self.repository, entity_id, position)
                for entity_id, position in plan.writes
            ),
            return_exceptions=True,
        )
        failures = [r for r in results if isinstance(r, BaseException)]
        for failure in failures:
            if not isinstance(failure, StoreError):
                raise failure
        if failures:
            self._logger.warning(
                "reorder_writes_failed",
                parent_key=str(plan.parent_key),
                failed=len(failures),
                total=len(plan.writes),
            )
            raise failures[0]

    async def handle_drag_end(
        self,
        parent_key: UUID,
        active_id: UUID,
        over_id: UUID | None,
    ) -> bool:
        """Apply a drop optimistically and persist it.

        Returns:
            True if the new order was applied and persisted; False for a
            no-op gesture or when persistence failed and the board was
            reloaded.
        """
        plan = self.plan(self.owner.board, parent_key, active_id, over_id)
        if plan is None:
            self._logger.debug(
                "reorder_ignored",
                parent_key=str(parent_key),
                active_id=str(active_id),
                over_id=str(over_id) if over_id else None,
            )
            return False

        self.owner.board = plan.board
        self._logger.info(
            "reorder_applied",
            parent_key=str(parent_key),
            active_id=str(active_id),
            over_id=str(over_id),
            writes=len(plan.writes),
        )
        return await self._commit(plan, f"Failed to reorder {self.scope.entity}s")

    async def compact(self, parent_key: UUID) -> bool:
        """Rewrite positions so the collection is dense again.

        Returns:
            True if nothing needed writing or every write succeeded.
        """
        plan = self.plan_compaction(self.owner.board, parent_key)
        if plan is None:
            return True
        self.owner.board = plan.board
        self._logger.info(
            "positions_compacted",
            parent_key=str(parent_key),
            writes=len(plan.writes),
        )
        return await self._commit(plan, f"Failed to update {self.scope.entity} order")

    async def _commit(self, plan: ReorderPlan, message: str) -> bool:
        if not plan.writes:
            return True
        try:
            await self.persist(plan)
        except StoreError as e:
            self._logger.error(
                "reorder_persist_failed",
                parent_key=str(plan.parent_key),
                error=str(e),
            )
            self.owner.notifier.error(message, e)
            await self.owner.reload()
            return False
        return True
