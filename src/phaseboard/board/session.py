"""Board session: the owner of one project's board.

A BoardSession holds the only mutable reference to a project's Board and
its activity feed, and exposes every board intent (add, rename, assign,
delete, restore phases; add, toggle, edit, delete items; reorder; feed
posts). Intents never raise store failures: each one catches them at its
boundary, reports a Notice, and returns a falsy result.

Example:
    >>> session = await BoardSession.open(repository, project_id, user_id)
    >>> phase = await session.add_phase("Research")
    >>> item = await session.add_item(phase.id, "Read docs")
    >>> await session.toggle_item(item.id)
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import replace
from uuid import UUID

import structlog

from phaseboard.board import cascade, ordering
from phaseboard.board.activity import ActivityLog
from phaseboard.board.drawer import ItemDraft
from phaseboard.board.models import (
    ActivityEntry,
    Board,
    Identity,
    Item,
    Phase,
    PhaseStatus,
    Project,
    UpdateType,
)
from phaseboard.board.notices import Notifier
from phaseboard.board.reorder import ItemScope, PhaseScope, ReorderController
from phaseboard.board.repository import BoardRepository
from phaseboard.errors import InvalidTransitionError, NotFoundError, PermissionDeniedError, StoreError

logger = structlog.get_logger(__name__)

Celebration = Callable[[Phase], None]


class BoardSession:
    """Owns a project's board state and dispatches board intents.

    Attributes:
        repository: Board persistence adapter.
        board: Current board (replaced, never mutated).
        feed: Activity log of the project.
        user_id: Acting user, recorded as author of feed entries.
        members: Assignable users of the project's space.
        notifier: Sink for transient user notices.
        celebrate: Optional hook fired when a phase auto-completes.
        feed_limit: Number of entries loaded into the feed.
    """

    def __init__(
        self,
        repository: BoardRepository,
        board: Board,
        feed: ActivityLog,
        user_id: UUID | None = None,
        members: tuple[Identity, ...] = (),
        notifier: Notifier | None = None,
        celebrate: Celebration | None = None,
        feed_limit: int = 20,
    ) -> None:
        self.repository = repository
        self.board = board
        self.feed = feed
        self.user_id = user_id
        self.members = members
        self.notifier = notifier or Notifier()
        self.celebrate = celebrate
        self.feed_limit = feed_limit
        self.phase_reorder = ReorderController(PhaseScope(), repository, self)
        self.item_reorder = ReorderController(ItemScope(), repository, self)
        self._logger = logger.bind(
            component="BoardSession", project_id=str(board.project.id)
        )

    @classmethod
    async def open(
        cls,
        repository: BoardRepository,
        project_id: UUID,
        user_id: UUID | None = None,
        *,
        notifier: Notifier | None = None,
        celebrate: Celebration | None = None,
        feed_limit: int = 20,
    ) -> BoardSession:
        """Load a project's board, feed and members.

        Raises:
            NotFoundError: If the project does not exist.
            StoreError: If loading fails.
        """
        board = await repository.load_board(project_id)
        entries = await repository.load_feed(project_id, feed_limit)
        members = await repository.list_members(board.project.space_id)
        return cls(
            repository,
            board,
            ActivityLog(repository, project_id, entries),
            user_id=user_id,
            members=members,
            notifier=notifier,
            celebrate=celebrate,
            feed_limit=feed_limit,
        )

    # --- Views ---

    @property
    def project(self) -> Project:
        return self.board.project

    @property
    def active_phases(self) -> tuple[Phase, ...]:
        return self.board.active_phases

    @property
    def completed_phases(self) -> tuple[Phase, ...]:
        return self.board.completed_phases

    @property
    def entries(self) -> tuple[ActivityEntry, ...]:
        return self.feed.entries

    def member(self, user_id: UUID | None) -> Identity | None:
        for member in self.members:
            if member.id == user_id:
                return member
        return None

    async def reload(self) -> bool:
        """Replace local state with the store's (reconciliation)."""
        try:
            board = await self.repository.load_board(self.project.id)
            entries = await self.repository.load_feed(self.project.id, self.feed_limit)
        except StoreError as e:
            self._logger.error("board_reload_failed", error=str(e))
            self.notifier.error("Failed to load project", e)
            return False
        self.board = board
        self.feed.reset(entries)
        self._logger.info("board_reloaded", phase_count=len(board.phases))
        return True

    async def _record(self, content: str, update_type: UpdateType) -> None:
        await self.feed.record(self.user_id, content, update_type)

    # --- Phases ---

    async def add_phase(self, title: str) -> Phase | None:
        """Append a phase after the current active phases."""
        title = title.strip()
        if not title:
            return None
        position = ordering.next_position(self.active_phases)
        try:
            phase = await self.repository.insert_phase(self.project.id, title, position)
        except StoreError as e:
            self.notifier.error("Failed to create phase", e)
            return None

        self.board = self.board.add_phase(phase)
        self._logger.info("phase_created", phase_id=str(phase.id), position=position)
        await self._record(f'Created phase: "{title}"', UpdateType.phase_created)
        return phase

    async def rename_phase(self, phase_id: UUID, title: str) -> bool:
        title = title.strip()
        phase = self.board.phase(phase_id)
        if not title or phase is None:
            return False
        try:
            await self.repository.update_phase(phase_id, {"title": title})
        except StoreError as e:
            self.notifier.error("Failed to update phase title", e)
            return False
        self.board = self.board.with_phase(replace(phase, title=title))
        return True

    async def assign_phase(self, phase_id: UUID, user_id: UUID | None) -> bool:
        """Assign a phase to a space member, or clear the assignment."""
        phase = self.board.phase(phase_id)
        if phase is None:
            return False
        assignee = self.member(user_id)
        if user_id is not None and assignee is None:
            self.notifier.warning("Only members of this space can be assigned")
            return False
        try:
            await self.repository.update_phase(phase_id, {"assigned_to": user_id})
        except StoreError as e:
            self.notifier.error("Failed to assign phase", e)
            return False

        self.board = self.board.with_phase(replace(phase, assigned_to=user_id))
        if assignee is not None:
            await self._record(
                f'Assigned "{phase.title}" to {assignee.name}', UpdateType.phase_assigned
            )
        return True

    async def delete_phase(self, phase_id: UUID) -> bool:
        phase = self.board.phase(phase_id)
        if phase is None:
            return False
        try:
            await self.repository.delete_phase(phase_id)
        except StoreError as e:
            self.notifier.error("Failed to delete phase", e)
            return False

        self.board = self.board.remove_phase(phase_id)
        self._logger.info("phase_deleted", phase_id=str(phase_id))
        await self._record(f'Removed phase: "{phase.title}"', UpdateType.phase_deleted)
        if phase.is_active:
            await self.phase_reorder.compact(self.project.id)
        return True

    async def restore_phase(self, phase_id: UUID) -> bool:
        """Move a completed phase back to the end of the active phases."""
        phase = self.board.phase(phase_id)
        if phase is None:
            return False
        position = ordering.next_position(self.active_phases)
        try:
            restored = cascade.restore_phase(phase, position)
        except InvalidTransitionError as e:
            self.notifier.warning("Only completed phases can be restored", str(e))
            return False
        try:
            await self.repository.set_phase_status(
                phase_id, PhaseStatus.active, None, position=position
            )
        except StoreError as e:
            self.notifier.error("Failed to restore phase", e)
            return False

        self.board = self.board.with_phase(restored)
        self._logger.info("phase_restored", phase_id=str(phase_id), position=position)
        await self._record(f'Restored phase: "{phase.title}"', UpdateType.phase_restored)
        self.notifier.success(f'Phase "{phase.title}" restored')
        return True

    # --- Items ---

    async def add_item(self, phase_id: UUID, title: str) -> Item | None:
        title = title.strip()
        phase = self.board.phase(phase_id)
        if not title or phase is None:
            return None
        position = ordering.next_position(phase.items)
        try:
            item = await self.repository.insert_item(phase_id, title, position)
        except StoreError as e:
            self.notifier.error("Failed to add item", e)
            return None

        # Re-read the phase: the board may have changed while awaiting
        current = self.board.phase(phase_id)
        if current is not None:
            self.board = self.board.with_phase(replace(current, items=current.items + (item,)))
        return item

    async def delete_item(self, item_id: UUID) -> bool:
        found = self.board.find_item(item_id)
        if found is None:
            return False
        phase, _ = found
        try:
            await self.repository.delete_item(item_id)
        except StoreError as e:
            self.notifier.error("Failed to delete item", e)
            return False

        self.board = self.board.with_phase(
            replace(phase, items=tuple(i for i in phase.items if i.id != item_id))
        )
        self.notifier.success("Item deleted")
        await self.item_reorder.compact(phase.id)
        return True

    async def toggle_item(self, item_id: UUID) -> bool:
        """Toggle an item's completion and run the phase cascade.

        The item write is authoritative and goes first; if it fails nothing
        else happens. If the phase write of the cascade fails afterwards,
        the phase simply stays active until a later toggle completes it.
        """
        found = self.board.find_item(item_id)
        if found is None:
            return False
        phase, item = found
        outcome = cascade.toggle_item(phase, item_id)

        try:
            await self.repository.set_item_completed(
                item_id, outcome.item.completed, outcome.item.completed_at
            )
        except StoreError as e:
            self.notifier.error("Failed to update item", e)
            return False

        self.board = self.board.with_phase(outcome.phase_before_cascade)
        if outcome.item_completed:
            await self._record(f'Completed: "{item.title}"', UpdateType.item_completed)

        if outcome.completed_phase:
            await self._complete_phase(outcome.phase)
        return True

    async def _complete_phase(self, completed: Phase) -> None:
        try:
            await self.repository.set_phase_status(
                completed.id, PhaseStatus.completed, completed.completed_at
            )
        except StoreError as e:
            self._logger.warning(
                "phase_cascade_write_failed",
                phase_id=str(completed.id),
                error=str(e),
            )
            self.notifier.warning(
                f'Phase "{completed.title}" could not be marked complete', str(e)
            )
            return

        self.board = self.board.with_phase(completed)
        self._logger.info("phase_auto_completed", phase_id=str(completed.id))
        await self._record(f'Completed phase: "{completed.title}" 🎉', UpdateType.phase_completed)
        self.notifier.success(f'Phase "{completed.title}" completed!')
        self._fire_celebration(completed)
        await self.phase_reorder.compact(self.project.id)

    def _fire_celebration(self, phase: Phase) -> None:
        if self.celebrate is None:
            return
        try:
            self.celebrate(phase)
        except Exception as e:
            self._logger.warning("celebration_failed", phase_id=str(phase.id), error=str(e))

    async def toggle_sub_item(self, item_id: UUID, sub_id: str) -> bool:
        """Flip one checklist entry and save the item's sub-items at once."""
        found = self.board.find_item(item_id)
        if found is None:
            return False
        phase, item = found
        index = ordering.index_of(item.sub_items, sub_id)
        if index == -1:
            return False
        sub_items = list(item.sub_items)
        sub_items[index] = replace(sub_items[index], completed=not sub_items[index].completed)

        try:
            await self.repository.set_sub_items(item_id, sub_items)
        except StoreError as e:
            self.notifier.error("Failed to update sub-item", e)
            return False

        self.board = self.board.with_phase(
            phase.with_item(replace(item, sub_items=tuple(sub_items)))
        )
        return True

    def open_item(self, item_id: UUID) -> ItemDraft | None:
        """Start editing an item in the drawer."""
        found = self.board.find_item(item_id)
        if found is None:
            return None
        return ItemDraft.from_item(found[1])

    async def save_item(self, draft: ItemDraft) -> bool:
        """Write all drawer fields of an item in one update."""
        found = self.board.find_item(draft.item_id)
        if found is None or not draft.title.strip():
            return False
        phase, item = found
        if draft.assigned_to != item.assigned_to and draft.assigned_to is not None:
            if self.member(draft.assigned_to) is None:
                self.notifier.warning("Only members of this space can be assigned")
                return False

        updated = draft.apply_to(item)
        try:
            await self.repository.save_item(updated)
        except StoreError as e:
            self.notifier.error("Failed to save item", e)
            return False

        self.board = self.board.with_phase(phase.with_item(updated))
        self.notifier.success("Item updated")
        return True

    # --- Reordering ---

    async def reorder_phases(self, active_id: UUID, over_id: UUID | None) -> bool:
        return await self.phase_reorder.handle_drag_end(self.project.id, active_id, over_id)

    async def reorder_items(self, phase_id: UUID, active_id: UUID, over_id: UUID | None) -> bool:
        return await self.item_reorder.handle_drag_end(phase_id, active_id, over_id)

    # --- Activity feed ---

    async def post_update(self, content: str) -> ActivityEntry | None:
        try:
            entry = await self.feed.post(self.user_id, content)
        except StoreError as e:
            self.notifier.error("Failed to post update", e)
            return None
        if entry is not None:
            self.notifier.success("Update posted")
        return entry

    async def edit_update(self, entry_id: UUID, content: str) -> bool:
        try:
            edited = await self.feed.edit(entry_id, self.user_id, content)
        except PermissionDeniedError as e:
            self.notifier.warning("Only your own posts can be edited", str(e))
            return False
        except NotFoundError as e:
            self.notifier.error("Update no longer exists", e)
            return False
        except StoreError as e:
            self.notifier.error("Failed to edit update", e)
            return False
        if edited is None:
            return False
        self.notifier.success("Update edited")
        return True

    async def delete_update(self, entry_id: UUID) -> bool:
        try:
            await self.feed.delete(entry_id, self.user_id)
        except PermissionDeniedError as e:
            self.notifier.warning("Only your own posts can be deleted", str(e))
            return False
        except NotFoundError as e:
            self.notifier.error("Update no longer exists", e)
            return False
        except StoreError as e:
            self.notifier.error("Failed to delete update", e)
            return False
        self.notifier.success("Update deleted")
        return True
