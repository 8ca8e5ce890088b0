"""Unit tests for BoardSession.

Tests cover:
- Opening a session loads board, feed and members
- Phase intents: add, rename, assign, delete, restore
- Item intents: add, delete, toggle with the phase cascade
- Toggle write ordering and partial failure handling
- Sub-item toggles and the item drawer save
- Feed intents and their notices
- Blank input is skipped without writes
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from phaseboard.board.models import (
    ActivityEntry,
    Board,
    Identity,
    Item,
    Phase,
    PhaseStatus,
    Project,
    SubItem,
    UpdateType,
)
from phaseboard.board.notices import NoticeLevel
from phaseboard.board.repository import BoardRepository
from phaseboard.board.session import BoardSession
from phaseboard.errors import NotFoundError, StoreError

USER_ID = uuid.uuid4()
MEMBER = Identity(id=uuid.uuid4(), name="Dana")
NOW = datetime(2026, 6, 1, tzinfo=timezone.utc)


def make_item(phase_id: uuid.UUID, title: str, position: int, completed: bool = False) -> Item:
    return Item(
        id=uuid.uuid4(),
        phase_id=phase_id,
        title=title,
        position=position,
        completed=completed,
        completed_at=NOW if completed else None,
    )


def make_phase(
    project_id: uuid.UUID,
    title: str,
    position: int,
    items: list[tuple[str, bool]] | None = None,
    status: PhaseStatus = PhaseStatus.active,
) -> Phase:
    phase_id = uuid.uuid4()
    return Phase(
        id=phase_id,
        project_id=project_id,
        title=title,
        position=position,
        status=status,
        completed_at=NOW if status is PhaseStatus.completed else None,
        items=tuple(
            make_item(phase_id, t, i, done) for i, (t, done) in enumerate(items or [])
        ),
    )


@pytest.fixture
def project() -> Project:
    return Project(id=uuid.uuid4(), name="Website relaunch", space_id=uuid.uuid4())


@pytest.fixture
def board(project: Project) -> Board:
    return Board(
        project=project,
        phases=(
            make_phase(project.id, "Research", 0, [("Interviews", True), ("Survey", False)]),
            make_phase(project.id, "Design", 1, [("Wireframes", False)]),
            make_phase(project.id, "Build", 2),
            make_phase(project.id, "Discovery", 0, [("Kickoff", True)], PhaseStatus.completed),
        ),
    )


@pytest.fixture
def repository(board: Board) -> AsyncMock:
    """Repository mock with working inserts and reloads."""
    repo = AsyncMock(spec=BoardRepository)
    repo.load_board.return_value = board
    repo.load_feed.return_value = ()
    repo.list_members.return_value = (MEMBER,)

    async def insert_phase(project_id, title, position):  # type: ignore[no-untyped-def]
        return Phase(id=uuid.uuid4(), project_id=project_id, title=title, position=position)

    async def insert_item(phase_id, title, position):  # type: ignore[no-untyped-def]
        return Item(id=uuid.uuid4(), phase_id=phase_id, title=title, position=position)

    async def insert_entry(project_id, author_id, content, update_type):  # type: ignore[no-untyped-def]
        return ActivityEntry(
            id=uuid.uuid4(),
            project_id=project_id,
            author_id=author_id,
            content=content,
            update_type=update_type,
            created_at=datetime.now(timezone.utc),
        )

    repo.insert_phase.side_effect = insert_phase
    repo.insert_item.side_effect = insert_item
    repo.insert_entry.side_effect = insert_entry
    return repo


@pytest.fixture
async def session(repository: AsyncMock, board: Board) -> BoardSession:
    return await BoardSession.open(
        repository, board.project.id, USER_ID, celebrate=MagicMock()
    )


def recorded(repository: AsyncMock) -> list[tuple[UpdateType, str]]:
    """(update_type, content) of every activity write."""
    return [(c.args[3], c.args[2]) for c in repository.insert_entry.await_args_list]


def levels(session: BoardSession) -> list[NoticeLevel]:
    return [n.level for n in session.notifier.drain()]


def phase_named(session: BoardSession, title: str) -> Phase:
    return next(p for p in session.board.phases if p.title == title)


class TestOpen:
    """Test session loading."""

    @pytest.mark.asyncio
    async def test_open_loads_board_feed_and_members(
        self, repository: AsyncMock, board: Board
    ) -> None:
        """Board, feed (with the configured limit) and members are loaded."""
        session = await BoardSession.open(repository, board.project.id, USER_ID, feed_limit=7)

        assert session.board is board
        assert session.members == (MEMBER,)
        repository.load_feed.assert_awaited_once_with(board.project.id, 7)
        repository.list_members.assert_awaited_once_with(board.project.space_id)

    @pytest.mark.asyncio
    async def test_open_missing_project_raises(self, repository: AsyncMock) -> None:
        """A missing project is reported to the caller."""
        repository.load_board.side_effect = NotFoundError("gone", "projects", "select")

        with pytest.raises(NotFoundError):
            await BoardSession.open(repository, uuid.uuid4(), USER_ID)

    @pytest.mark.asyncio
    async def test_views_split_active_and_completed(self, session: BoardSession) -> None:
        """Active phases are in position order; completed are separate."""
        assert [p.title for p in session.active_phases] == ["Research", "Design", "Build"]
        assert [p.title for p in session.completed_phases] == ["Discovery"]

    @pytest.mark.asyncio
    async def test_reload_failure_keeps_state(
        self, session: BoardSession, repository: AsyncMock
    ) -> None:
        """A failed reload reports an error and keeps the current board."""
        before = session.board
        repository.load_board.side_effect = StoreError("down")

        assert await session.reload() is False
        assert session.board is before
        notices = session.notifier.drain()
        assert notices[0].message == "Failed to load project"


class TestPhaseIntents:
    """Test add, rename, assign, delete and restore."""

    @pytest.mark.asyncio
    async def test_add_phase_appends_after_active_phases(
        self, session: BoardSession, repository: AsyncMock
    ) -> None:
        """A new phase gets the next active position and is recorded."""
        phase = await session.add_phase("  Launch ")

        assert phase is not None
        repository.insert_phase.assert_awaited_once_with(session.project.id, "Launch", 3)
        assert session.active_phases[-1].title == "Launch"
        assert recorded(repository) == [(UpdateType.phase_created, 'Created phase: "Launch"')]

    @pytest.mark.asyncio
    async def test_blank_phase_title_is_skipped(
        self, session: BoardSession, repository: AsyncMock
    ) -> None:
        """Blank titles do nothing and raise no notice."""
        assert await session.add_phase("   ") is None
        repository.insert_phase.assert_not_awaited()
        assert session.notifier.drain() == ()

    @pytest.mark.asyncio
    async def test_add_phase_failure_notifies(
        self, session: BoardSession, repository: AsyncMock
    ) -> None:
        """A failed insert leaves the board unchanged and reports an error."""
        repository.insert_phase.side_effect = StoreError("down")
        before = session.board

        assert await session.add_phase("Launch") is None
        assert session.board is before
        assert levels(session) == [NoticeLevel.error]
        repository.insert_entry.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_rename_phase(self, session: BoardSession, repository: AsyncMock) -> None:
        """Renaming writes and applies the trimmed title."""
        design = phase_named(session, "Design")

        assert await session.rename_phase(design.id, " UX Design ") is True
        repository.update_phase.assert_awaited_once_with(design.id, {"title": "UX Design"})
        assert session.board.phase(design.id).title == "UX Design"  # type: ignore[union-attr]

    @pytest.mark.asyncio
    async def test_assign_phase_to_member(
        self, session: BoardSession, repository: AsyncMock
    ) -> None:
        """Assigning a member writes the assignee and records it."""
        design = phase_named(session, "Design")

        assert await session.assign_phase(design.id, MEMBER.id) is True
        repository.update_phase.assert_awaited_once_with(design.id, {"assigned_to": MEMBER.id})
        assert session.board.phase(design.id).assigned_to == MEMBER.id  # type: ignore[union-attr]
        assert recorded(repository) == [(UpdateType.phase_assigned, 'Assigned "Design" to Dana')]

    @pytest.mark.asyncio
    async def test_assign_non_member_is_rejected(
        self, session: BoardSession, repository: AsyncMock
    ) -> None:
        """Users outside the project's space cannot be assigned."""
        design = phase_named(session, "Design")

        assert await session.assign_phase(design.id, uuid.uuid4()) is False
        repository.update_phase.assert_not_awaited()
        assert levels(session) == [NoticeLevel.warning]

    @pytest.mark.asyncio
    async def test_unassign_phase_records_nothing(
        self, session: BoardSession, repository: AsyncMock
    ) -> None:
        """Clearing the assignee is written but not recorded."""
        design = phase_named(session, "Design")

        assert await session.assign_phase(design.id, None) is True
        repository.update_phase.assert_awaited_once_with(design.id, {"assigned_to": None})
        repository.insert_entry.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_delete_active_phase_compacts_positions(
        self, session: BoardSession, repository: AsyncMock
    ) -> None:
        """Deleting a phase records it and closes the position gap."""
        research = phase_named(session, "Research")
        design = phase_named(session, "Design")
        build = phase_named(session, "Build")

        assert await session.delete_phase(research.id) is True

        repository.delete_phase.assert_awaited_once_with(research.id)
        assert session.board.phase(research.id) is None
        assert recorded(repository) == [(UpdateType.phase_deleted, 'Removed phase: "Research"')]
        written = {c.args for c in repository.set_phase_position.await_args_list}
        assert written == {(design.id, 0), (build.id, 1)}
        assert [p.position for p in session.active_phases] == [0, 1]

    @pytest.mark.asyncio
    async def test_delete_phase_failure_keeps_phase(
        self, session: BoardSession, repository: AsyncMock
    ) -> None:
        """A failed delete keeps the phase on the board."""
        research = phase_named(session, "Research")
        repository.delete_phase.side_effect = StoreError("down")

        assert await session.delete_phase(research.id) is False
        assert session.board.phase(research.id) is not None
        assert levels(session) == [NoticeLevel.error]

    @pytest.mark.asyncio
    async def test_restore_appends_after_active_phases(
        self, session: BoardSession, repository: AsyncMock
    ) -> None:
        """Restored phases go to the end, written with status in one update."""
        discovery = phase_named(session, "Discovery")

        assert await session.restore_phase(discovery.id) is True

        repository.set_phase_status.assert_awaited_once_with(
            discovery.id, PhaseStatus.active, None, position=3
        )
        assert [p.title for p in session.active_phases] == [
            "Research",
            "Design",
            "Build",
            "Discovery",
        ]
        assert [p.position for p in session.active_phases] == [0, 1, 2, 3]
        assert recorded(repository) == [(UpdateType.phase_restored, 'Restored phase: "Discovery"')]
        notices = session.notifier.drain()
        assert notices[0].level is NoticeLevel.success
        assert notices[0].message == 'Phase "Discovery" restored'

    @pytest.mark.asyncio
    async def test_restore_active_phase_is_rejected(
        self, session: BoardSession, repository: AsyncMock
    ) -> None:
        """Restoring an active phase warns and writes nothing."""
        research = phase_named(session, "Research")

        assert await session.restore_phase(research.id) is False
        repository.set_phase_status.assert_not_awaited()
        assert levels(session) == [NoticeLevel.warning]


class TestItemIntents:
    """Test add and delete of items."""

    @pytest.mark.asyncio
    async def test_add_item_appends_to_phase(
        self, session: BoardSession, repository: AsyncMock
    ) -> None:
        """A new item takes the next position within its phase."""
        research = phase_named(session, "Research")

        item = await session.add_item(research.id, "Competitor scan")

        assert item is not None
        repository.insert_item.assert_awaited_once_with(research.id, "Competitor scan", 2)
        assert session.board.phase(research.id).items[-1].title == "Competitor scan"  # type: ignore[union-attr]

    @pytest.mark.asyncio
    async def test_blank_item_title_is_skipped(
        self, session: BoardSession, repository: AsyncMock
    ) -> None:
        """Blank titles perform no write."""
        research = phase_named(session, "Research")

        assert await session.add_item(research.id, "") is None
        repository.insert_item.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_delete_item_compacts_phase(
        self, session: BoardSession, repository: AsyncMock
    ) -> None:
        """Deleting the first item shifts the remaining one to position 0."""
        research = phase_named(session, "Research")
        first, second = research.items

        assert await session.delete_item(first.id) is True

        repository.delete_item.assert_awaited_once_with(first.id)
        repository.set_item_position.assert_awaited_once_with(second.id, 0)
        assert [i.id for i in session.board.phase(research.id).items] == [second.id]  # type: ignore[union-attr]


class TestToggleItem:
    """Test item toggling and the cascade write order."""

    @pytest.mark.asyncio
    async def test_toggle_completes_item_and_records(
        self, session: BoardSession, repository: AsyncMock
    ) -> None:
        """A completed item is written and recorded."""
        design = phase_named(session, "Design")
        wire = design.items[0]
        await session.add_item(design.id, "Mockups")
        repository.insert_entry.reset_mock()

        assert await session.toggle_item(wire.id) is True

        args = repository.set_item_completed.await_args.args
        assert args[0] == wire.id and args[1] is True and args[2] is not None
        assert recorded(repository) == [(UpdateType.item_completed, 'Completed: "Wireframes"')]
        assert session.board.phase(design.id).status is PhaseStatus.active  # type: ignore[union-attr]

    @pytest.mark.asyncio
    async def test_uncomplete_item_records_nothing(
        self, session: BoardSession, repository: AsyncMock
    ) -> None:
        """Reopening an item is written but not recorded."""
        research = phase_named(session, "Research")
        done = research.items[0]

        assert await session.toggle_item(done.id) is True
        repository.set_item_completed.assert_awaited_once_with(done.id, False, None)
        repository.insert_entry.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_last_item_completes_phase(
        self, session: BoardSession, repository: AsyncMock
    ) -> None:
        """Completing the last open item completes and celebrates the phase."""
        research = phase_named(session, "Research")
        survey = research.items[1]

        assert await session.toggle_item(survey.id) is True

        status_call = repository.set_phase_status.await_args
        assert status_call.args[0] == research.id
        assert status_call.args[1] is PhaseStatus.completed
        assert status_call.args[2] is not None
        updated = session.board.phase(research.id)
        assert updated.status is PhaseStatus.completed  # type: ignore[union-attr]
        assert all(i.completed for i in updated.items)  # type: ignore[union-attr]
        assert recorded(repository) == [
            (UpdateType.item_completed, 'Completed: "Survey"'),
            (UpdateType.phase_completed, 'Completed phase: "Research" 🎉'),
        ]
        session.celebrate.assert_called_once_with(updated)  # type: ignore[union-attr]
        assert [p.title for p in session.active_phases] == ["Design", "Build"]
        assert [p.position for p in session.active_phases] == [0, 1]

    @pytest.mark.asyncio
    async def test_item_write_failure_changes_nothing(
        self, session: BoardSession, repository: AsyncMock
    ) -> None:
        """If the item write fails, nothing else is attempted."""
        research = phase_named(session, "Research")
        before = session.board
        repository.set_item_completed.side_effect = StoreError("down")

        assert await session.toggle_item(research.items[1].id) is False

        assert session.board is before
        repository.set_phase_status.assert_not_awaited()
        repository.insert_entry.assert_not_awaited()
        assert levels(session) == [NoticeLevel.error]

    @pytest.mark.asyncio
    async def test_phase_write_failure_keeps_phase_active(
        self, session: BoardSession, repository: AsyncMock
    ) -> None:
        """A failed cascade write keeps the item completed and the phase active."""
        research = phase_named(session, "Research")
        survey = research.items[1]
        repository.set_phase_status.side_effect = StoreError("down")

        assert await session.toggle_item(survey.id) is True

        updated = session.board.phase(research.id)
        assert updated.status is PhaseStatus.active  # type: ignore[union-attr]
        assert updated.item(survey.id).completed is True  # type: ignore[union-attr]
        assert levels(session) == [NoticeLevel.warning]
        session.celebrate.assert_not_called()  # type: ignore[union-attr]
        assert [t for t, _ in recorded(repository)] == [UpdateType.item_completed]

    @pytest.mark.asyncio
    async def test_activity_failure_does_not_block_cascade(
        self, session: BoardSession, repository: AsyncMock
    ) -> None:
        """Feed write failures never undo or stop the toggle."""
        research = phase_named(session, "Research")
        repository.insert_entry.side_effect = StoreError("feed down")

        assert await session.toggle_item(research.items[1].id) is True
        assert session.board.phase(research.id).status is PhaseStatus.completed  # type: ignore[union-attr]

    @pytest.mark.asyncio
    async def test_failing_celebration_is_contained(
        self, session: BoardSession, repository: AsyncMock
    ) -> None:
        """A broken celebration hook does not fail the toggle."""
        session.celebrate = MagicMock(side_effect=RuntimeError("confetti"))
        research = phase_named(session, "Research")

        assert await session.toggle_item(research.items[1].id) is True


class TestSubItemsAndDrawer:
    """Test sub-item toggles and drawer saves."""

    @pytest.fixture
    def checklist_item(self, session: BoardSession) -> Item:
        design = phase_named(session, "Design")
        item = design.items[0]
        with_subs = Item(
            id=item.id,
            phase_id=item.phase_id,
            title=item.title,
            position=item.position,
            sub_items=(SubItem(id="sub-1", text="Home"), SubItem(id="sub-2", text="About")),
        )
        session.board = session.board.with_phase(design.with_item(with_subs))
        return with_subs

    @pytest.mark.asyncio
    async def test_toggle_sub_item_saves_immediately(
        self, session: BoardSession, repository: AsyncMock, checklist_item: Item
    ) -> None:
        """Toggling a sub-item writes the whole checklist at once."""
        assert await session.toggle_sub_item(checklist_item.id, "sub-2") is True

        item_id, written = repository.set_sub_items.await_args.args
        assert item_id == checklist_item.id
        assert [s.completed for s in written] == [False, True]
        found = session.board.find_item(checklist_item.id)
        assert found is not None and found[1].sub_items[1].completed is True

    @pytest.mark.asyncio
    async def test_toggle_unknown_sub_item(
        self, session: BoardSession, repository: AsyncMock, checklist_item: Item
    ) -> None:
        """Unknown sub-item ids are ignored."""
        assert await session.toggle_sub_item(checklist_item.id, "sub-99") is False
        repository.set_sub_items.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_drawer_save_writes_all_fields(
        self, session: BoardSession, repository: AsyncMock, checklist_item: Item
    ) -> None:
        """Saving the drawer writes title, notes, assignee, due date and checklist."""
        draft = session.open_item(checklist_item.id)
        assert draft is not None
        draft.title = "Wireframes v2"
        draft.notes = "   "
        draft.assigned_to = MEMBER.id
        draft.remove_sub_item("sub-1")
        draft.add_sub_item("Contact")

        assert await session.save_item(draft) is True

        saved = repository.save_item.await_args.args[0]
        assert saved.title == "Wireframes v2"
        assert saved.notes is None
        assert saved.assigned_to == MEMBER.id
        assert [s.text for s in saved.sub_items] == ["About", "Contact"]
        found = session.board.find_item(checklist_item.id)
        assert found is not None and found[1] == saved

    @pytest.mark.asyncio
    async def test_drawer_save_rejects_non_member(
        self, session: BoardSession, repository: AsyncMock, checklist_item: Item
    ) -> None:
        """Assigning an item to a non-member is rejected."""
        draft = session.open_item(checklist_item.id)
        assert draft is not None
        draft.assigned_to = uuid.uuid4()

        assert await session.save_item(draft) is False
        repository.save_item.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_drawer_save_failure_keeps_item(
        self, session: BoardSession, repository: AsyncMock, checklist_item: Item
    ) -> None:
        """A failed save leaves the board item untouched."""
        repository.save_item.side_effect = StoreError("down")
        draft = session.open_item(checklist_item.id)
        assert draft is not None
        draft.title = "Changed"

        assert await session.save_item(draft) is False
        found = session.board.find_item(checklist_item.id)
        assert found is not None and found[1].title == "Wireframes"


class TestReorderIntents:
    """Test reorder delegation."""

    @pytest.mark.asyncio
    async def test_reorder_phases(self, session: BoardSession, repository: AsyncMock) -> None:
        """Dropping Build on Research moves it to the front."""
        research = phase_named(session, "Research")
        build = phase_named(session, "Build")

        assert await session.reorder_phases(build.id, research.id) is True
        assert [p.title for p in session.active_phases] == ["Build", "Research", "Design"]
        assert repository.set_phase_position.await_count == 3

    @pytest.mark.asyncio
    async def test_reorder_items(self, session: BoardSession, repository: AsyncMock) -> None:
        """Items reorder within their phase."""
        research = phase_named(session, "Research")
        first, second = research.items

        assert await session.reorder_items(research.id, second.id, first.id) is True
        assert [i.title for i in session.board.phase(research.id).items] == [  # type: ignore[union-attr]
            "Survey",
            "Interviews",
        ]


class TestFeedIntents:
    """Test post, edit and delete through the session."""

    @pytest.mark.asyncio
    async def test_post_update(self, session: BoardSession, repository: AsyncMock) -> None:
        """Posting adds an entry and a success notice."""
        entry = await session.post_update("Kickoff went well")

        assert entry is not None
        assert session.entries[0].content == "Kickoff went well"
        assert levels(session) == [NoticeLevel.success]

    @pytest.mark.asyncio
    async def test_post_failure_notifies(
        self, session: BoardSession, repository: AsyncMock
    ) -> None:
        """A failed post becomes an error notice."""
        repository.insert_entry.side_effect = StoreError("down")

        assert await session.post_update("hello") is None
        assert levels(session) == [NoticeLevel.error]

    @pytest.mark.asyncio
    async def test_edit_own_post(self, session: BoardSession, repository: AsyncMock) -> None:
        """Authors edit their own posts."""
        entry = await session.post_update("typo")
        session.notifier.drain()

        assert await session.edit_update(entry.id, "fixed") is True  # type: ignore[union-attr]
        assert session.entries[0].content == "fixed"

    @pytest.mark.asyncio
    async def test_edit_other_users_post_warns(
        self, session: BoardSession, repository: AsyncMock
    ) -> None:
        """Editing someone else's post is refused with a warning."""
        entry = await session.post_update("mine")
        session.notifier.drain()
        session.user_id = uuid.uuid4()

        assert await session.edit_update(entry.id, "hijack") is False  # type: ignore[union-attr]
        assert levels(session) == [NoticeLevel.warning]
        repository.update_entry_content.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_delete_own_post(self, session: BoardSession, repository: AsyncMock) -> None:
        """Authors delete their own posts."""
        entry = await session.post_update("temporary")

        assert await session.delete_update(entry.id) is True  # type: ignore[union-attr]
        assert session.entries == ()
