"""Project board endpoints.

Every board intent is exposed under ``/projects/{project_id}/board``. Each
request opens a BoardSession on the project, runs one intent, and answers
with the outcome, the board as it stands afterwards, and the notices the
intent produced. Store failures inside an intent never surface as HTTP
errors: they come back as ``ok: false`` plus an error notice, exactly as a
user of the board page would see them.

The acting user is taken from the ``X-User-ID`` header; authentication
happens in front of this service.

Example:
    >>> from fastapi import FastAPI
    >>> from phaseboard.web.routes.board import create_board_router
    >>>
    >>> app = FastAPI()
    >>> app.include_router(create_board_router())
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from datetime import date, datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from fastapi import status as http_status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from phaseboard.board.activity import can_modify
from phaseboard.board.models import Item, Phase, PhaseStatus, SubItem, UpdateType
from phaseboard.board.notices import NoticeLevel
from phaseboard.board.repository import BoardRepository
from phaseboard.board.session import BoardSession
from phaseboard.config import BoardConfig
from phaseboard.database.gateway import SqlGateway
from phaseboard.errors import NotFoundError, StoreError
from phaseboard.logging import bind_board_context, clear_board_context, get_logger
from phaseboard.web.routes.health import get_session_factory

logger = get_logger(__name__)


# --- Request schemas ---


class TitleBody(BaseModel):
    title: str = Field(..., max_length=500)


class AssignBody(BaseModel):
    """Assignee to set; null clears the assignment."""

    user_id: UUID | None = None


class ReorderBody(BaseModel):
    """A drag gesture: the dragged id and the id it was dropped over.

    ``over_id`` is null when the drop landed outside any target.
    """

    active_id: UUID
    over_id: UUID | None = None


class SubItemBody(BaseModel):
    id: str
    text: str
    completed: bool = False


class ItemSaveBody(BaseModel):
    """Every drawer field of an item, saved in one update."""

    title: str = Field(..., max_length=500)
    notes: str = ""
    assigned_to: UUID | None = None
    due_date: date | None = None
    sub_items: list[SubItemBody] = Field(default_factory=list)


class ContentBody(BaseModel):
    content: str = Field(..., max_length=10000)


# --- Response schemas ---


class SubItemResponse(BaseModel):
    id: str
    text: str
    completed: bool


class ItemResponse(BaseModel):
    id: UUID
    phase_id: UUID
    title: str
    position: int
    completed: bool
    completed_at: datetime | None
    assigned_to: UUID | None
    due_date: date | None
    notes: str | None
    sub_items: list[SubItemResponse]


class PhaseResponse(BaseModel):
    """A phase with its items.

    Attributes:
        id: Phase UUID
        title: Phase title
        position: Index among active phases (stale for completed phases)
        status: active or completed
        assigned_to: Assignee user id
        completed_at: Completion timestamp, completed phases only
        progress: Completed item count over total item count
        items: Items in board order
    """

    id: UUID
    title: str
    position: int
    status: PhaseStatus
    assigned_to: UUID | None
    completed_at: datetime | None
    progress: str
    items: list[ItemResponse]


class EntryResponse(BaseModel):
    id: UUID
    author_id: UUID | None
    content: str
    update_type: UpdateType
    created_at: datetime
    editable: bool


class MemberResponse(BaseModel):
    id: UUID
    name: str
    avatar_url: str | None


class BoardResponse(BaseModel):
    project_id: UUID
    project_name: str
    active_phases: list[PhaseResponse]
    completed_phases: list[PhaseResponse]
    feed: list[EntryResponse]
    members: list[MemberResponse]


class NoticeResponse(BaseModel):
    level: NoticeLevel
    message: str
    detail: str | None = None


class ActionResponse(BaseModel):
    """Outcome of one board intent.

    Attributes:
        ok: Whether the intent took effect
        board: The board after the intent
        notices: Notices raised while handling the intent
        celebrated: Phases that auto-completed during the intent
    """

    ok: bool
    board: BoardResponse
    notices: list[NoticeResponse]
    celebrated: list[UUID] = Field(default_factory=list)


# --- Conversion ---


def _item_response(item: Item) -> ItemResponse:
    return ItemResponse(
        id=item.id,
        phase_id=item.phase_id,
        title=item.title,
        position=item.position,
        completed=item.completed,
        completed_at=item.completed_at,
        assigned_to=item.assigned_to,
        due_date=item.due_date,
        notes=item.notes,
        sub_items=[
            SubItemResponse(id=s.id, text=s.text, completed=s.completed) for s in item.sub_items
        ],
    )


def _phase_response(phase: Phase) -> PhaseResponse:
    done = sum(1 for item in phase.items if item.completed)
    return PhaseResponse(
        id=phase.id,
        title=phase.title,
        position=phase.position,
        status=phase.status,
        assigned_to=phase.assigned_to,
        completed_at=phase.completed_at,
        progress=f"{done}/{len(phase.items)}",
        items=[_item_response(item) for item in phase.items],
    )


def board_response(session: BoardSession) -> BoardResponse:
    """Snapshot of a session's board, feed and members."""
    return BoardResponse(
        project_id=session.project.id,
        project_name=session.project.name,
        active_phases=[_phase_response(p) for p in session.active_phases],
        completed_phases=[_phase_response(p) for p in session.completed_phases],
        feed=[
            EntryResponse(
                id=e.id,
                author_id=e.author_id,
                content=e.content,
                update_type=e.update_type,
                created_at=e.created_at,
                editable=can_modify(e, session.user_id),
            )
            for e in session.entries
        ],
        members=[
            MemberResponse(id=m.id, name=m.name, avatar_url=m.avatar_url)
            for m in session.members
        ],
    )


class Celebrations:
    """Celebration hook that remembers which phases completed."""

    def __init__(self) -> None:
        self.phase_ids: list[UUID] = []

    def __call__(self, phase: Phase) -> None:
        self.phase_ids.append(phase.id)


def action_response(session: BoardSession, ok: bool) -> ActionResponse:
    celebrated = (
        session.celebrate.phase_ids if isinstance(session.celebrate, Celebrations) else []
    )
    return ActionResponse(
        ok=ok,
        board=board_response(session),
        notices=[
            NoticeResponse(level=n.level, message=n.message, detail=n.detail)
            for n in session.notifier.drain()
        ],
        celebrated=list(celebrated),
    )


# --- Dependencies ---


def get_board_config(request: Request) -> BoardConfig:
    return request.app.state.config.board  # type: ignore[no-any-return]


def get_user_id(x_user_id: UUID | None = Header(default=None)) -> UUID | None:  # noqa: B008
    """The acting user, from the X-User-ID header."""
    return x_user_id


async def get_board_session(
    project_id: UUID,
    user_id: UUID | None = Depends(get_user_id),  # noqa: B008
    board_config: BoardConfig = Depends(get_board_config),  # noqa: B008
    session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
        get_session_factory
    ),
) -> AsyncIterator[BoardSession]:
    """Open a board session for the request's project.

    Raises:
        HTTPException: 404 if the project does not exist, 503 if the
            board cannot be loaded.
    """
    bind_board_context(str(project_id), str(user_id) if user_id else None)
    repository = BoardRepository(SqlGateway(session_factory))
    try:
        session = await BoardSession.open(
            repository,
            project_id,
            user_id,
            celebrate=Celebrations() if board_config.celebrate else None,
            feed_limit=board_config.feed_limit,
        )
    except NotFoundError:
        clear_board_context()
        raise HTTPException(
            status_code=http_status.HTTP_404_NOT_FOUND,
            detail=f"Project {project_id} not found",
        ) from None
    except StoreError as e:
        clear_board_context()
        logger.error("board_load_failed", error=str(e))
        raise HTTPException(
            status_code=http_status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Failed to load project",
        ) from None

    try:
        yield session
    finally:
        clear_board_context()


def create_board_router() -> APIRouter:
    """Create the board router.

    Routes:
        GET    /projects/{project_id}/board - Board snapshot
        POST   .../phases - Add phase
        PATCH  .../phases/{phase_id} - Rename phase
        PUT    .../phases/{phase_id}/assignee - Assign or unassign phase
        DELETE .../phases/{phase_id} - Delete phase
        POST   .../phases/{phase_id}/restore - Restore completed phase
        POST   .../phases/reorder - Reorder active phases
        POST   .../phases/{phase_id}/items - Add item
        POST   .../phases/{phase_id}/items/reorder - Reorder items of a phase
        PUT    .../items/{item_id} - Save item drawer
        DELETE .../items/{item_id} - Delete item
        POST   .../items/{item_id}/toggle - Toggle item completion
        POST   .../items/{item_id}/sub-items/{sub_id}/toggle - Toggle sub-item
        POST   .../updates - Post to the feed
        PATCH  .../updates/{entry_id} - Edit own post
        DELETE .../updates/{entry_id} - Delete own post
    """
    router = APIRouter(prefix="/projects/{project_id}/board", tags=["board"])
    board_session = Depends(get_board_session)

    @router.get("", response_model=BoardResponse)
    async def get_board(session: BoardSession = board_session) -> BoardResponse:
        return board_response(session)

    # --- Phases ---

    @router.post("/phases", response_model=ActionResponse)
    async def add_phase(
        body: TitleBody, session: BoardSession = board_session
    ) -> ActionResponse:
        phase = await session.add_phase(body.title)
        return action_response(session, phase is not None)

    @router.patch("/phases/{phase_id}", response_model=ActionResponse)
    async def rename_phase(
        phase_id: UUID, body: TitleBody, session: BoardSession = board_session
    ) -> ActionResponse:
        return action_response(session, await session.rename_phase(phase_id, body.title))

    @router.put("/phases/{phase_id}/assignee", response_model=ActionResponse)
    async def assign_phase(
        phase_id: UUID, body: AssignBody, session: BoardSession = board_session
    ) -> ActionResponse:
        return action_response(session, await session.assign_phase(phase_id, body.user_id))

    @router.delete("/phases/{phase_id}", response_model=ActionResponse)
    async def delete_phase(
        phase_id: UUID, session: BoardSession = board_session
    ) -> ActionResponse:
        return action_response(session, await session.delete_phase(phase_id))

    @router.post("/phases/{phase_id}/restore", response_model=ActionResponse)
    async def restore_phase(
        phase_id: UUID, session: BoardSession = board_session
    ) -> ActionResponse:
        return action_response(session, await session.restore_phase(phase_id))

    @router.post("/phases/reorder", response_model=ActionResponse)
    async def reorder_phases(
        body: ReorderBody, session: BoardSession = board_session
    ) -> ActionResponse:
        ok = await session.reorder_phases(body.active_id, body.over_id)
        return action_response(session, ok)

    # --- Items ---

    @router.post("/phases/{phase_id}/items", response_model=ActionResponse)
    async def add_item(
        phase_id: UUID, body: TitleBody, session: BoardSession = board_session
    ) -> ActionResponse:
        item = await session.add_item(phase_id, body.title)
        return action_response(session, item is not None)

    @router.post("/phases/{phase_id}/items/reorder", response_model=ActionResponse)
    async def reorder_items(
        phase_id: UUID, body: ReorderBody, session: BoardSession = board_session
    ) -> ActionResponse:
        ok = await session.reorder_items(phase_id, body.active_id, body.over_id)
        return action_response(session, ok)

    @router.put("/items/{item_id}", response_model=ActionResponse)
    async def save_item(
        item_id: UUID, body: ItemSaveBody, session: BoardSession = board_session
    ) -> ActionResponse:
        draft = session.open_item(item_id)
        if draft is None:
            raise HTTPException(
                status_code=http_status.HTTP_404_NOT_FOUND,
                detail=f"Item {item_id} not found",
            )
        draft.title = body.title
        draft.notes = body.notes
        draft.assigned_to = body.assigned_to
        draft.due_date = body.due_date
        draft.sub_items = [
            SubItem(id=s.id, text=s.text, completed=s.completed) for s in body.sub_items
        ]
        return action_response(session, await session.save_item(draft))

    @router.delete("/items/{item_id}", response_model=ActionResponse)
    async def delete_item(
        item_id: UUID, session: BoardSession = board_session
    ) -> ActionResponse:
        return action_response(session, await session.delete_item(item_id))

    @router.post("/items/{item_id}/toggle", response_model=ActionResponse)
    async def toggle_item(
        item_id: UUID, session: BoardSession = board_session
    ) -> ActionResponse:
        return action_response(session, await session.toggle_item(item_id))

    @router.post("/items/{item_id}/sub-items/{sub_id}/toggle", response_model=ActionResponse)
    async def toggle_sub_item(
        item_id: UUID, sub_id: str, session: BoardSession = board_session
    ) -> ActionResponse:
        return action_response(session, await session.toggle_sub_item(item_id, sub_id))

    # --- Activity feed ---

    @router.post("/updates", response_model=ActionResponse)
    async def post_update(
        body: ContentBody, session: BoardSession = board_session
    ) -> ActionResponse:
        entry = await session.post_update(body.content)
        return action_response(session, entry is not None)

    @router.patch("/updates/{entry_id}", response_model=ActionResponse)
    async def edit_update(
        entry_id: UUID, body: ContentBody, session: BoardSession = board_session
    ) -> ActionResponse:
        return action_response(session, await session.edit_update(entry_id, body.content))

    @router.delete("/updates/{entry_id}", response_model=ActionResponse)
    async def delete_update(
        entry_id: UUID, session: BoardSession = board_session
    ) -> ActionResponse:
        return action_response(session, await session.delete_update(entry_id))

    return router
