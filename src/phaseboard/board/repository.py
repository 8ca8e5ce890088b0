"""Board persistence adapter.

Translates between gateway rows and board values. This is the only place
that knows table and column names, and the only caller of the sub-item
codec: ``sub_items`` leave here as ``tuple[SubItem, ...]`` and come back
as encoded strings.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

import structlog

from phaseboard.board import subitems
from phaseboard.board.models import (
    ActivityEntry,
    Board,
    Identity,
    Item,
    Phase,
    PhaseStatus,
    Project,
    ProjectStatus,
    SubItem,
    UpdateType,
)
from phaseboard.database.gateway import DataGateway, Row
from phaseboard.errors import NotFoundError

logger = structlog.get_logger(__name__)

PHASES = "phases"
ITEMS = "phase_items"
UPDATES = "project_updates"


def _enum(enum_cls: Any, value: Any) -> Any:
    return value if isinstance(value, enum_cls) else enum_cls(value)


def _aware(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes; everything stored is UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def project_from_row(row: Row) -> Project:
    return Project(
        id=row["id"],
        name=row["name"],
        description=row.get("description"),
        status=_enum(ProjectStatus, row.get("status") or ProjectStatus.active),
        space_id=row.get("space_id"),
    )


def item_from_row(row: Row) -> Item:
    return Item(
        id=row["id"],
        phase_id=row["phase_id"],
        title=row["title"],
        position=row["position"],
        completed=bool(row.get("completed")),
        completed_at=_aware(row.get("completed_at")),
        assigned_to=row.get("assigned_to"),
        due_date=row.get("due_date"),
        notes=row.get("notes"),
        sub_items=subitems.decode_all(row.get("sub_items")),
    )


def phase_from_row(row: Row, items: Iterable[Item] = ()) -> Phase:
    return Phase(
        id=row["id"],
        project_id=row["project_id"],
        title=row["title"],
        position=row["position"],
        status=_enum(PhaseStatus, row.get("status") or PhaseStatus.active),
        assigned_to=row.get("assigned_to"),
        completed_at=_aware(row.get("completed_at")),
        items=tuple(sorted(items, key=lambda i: i.position)),
    )


def entry_from_row(row: Row) -> ActivityEntry:
    return ActivityEntry(
        id=row["id"],
        project_id=row["project_id"],
        author_id=row.get("author_id"),
        content=row["content"],
        update_type=_enum(UpdateType, row["update_type"]),
        created_at=_aware(row["created_at"]),
    )


def identity_from_row(row: Row) -> Identity:
    return Identity(
        id=row["id"],
        name=row.get("display_name") or row["name"],
        avatar_url=row.get("avatar_url"),
    )


class BoardRepository:
    """Reads and writes board entities through a DataGateway.

    Every method raises StoreError (or NotFoundError) on failure; callers
    decide what a failure means for their operation.

    Attributes:
        gateway: The data-access gateway.
    """

    def __init__(self, gateway: DataGateway) -> None:
        self.gateway = gateway

    # --- Reads ---

    async def get_project(self, project_id: UUID) -> Project:
        rows = await self.gateway.select("projects", {"id": project_id}, limit=1)
        if not rows:
            raise NotFoundError(f"Project {project_id} not found", "projects", "select")
        return project_from_row(rows[0])

    async def load_phases(self, project_id: UUID) -> tuple[Phase, ...]:
        """Load all phases of a project with their items, ordered by position."""
        phase_rows = await self.gateway.select(
            PHASES, {"project_id": project_id}, order=["position", "created_at"]
        )
        if not phase_rows:
            return ()

        item_rows = await self.gateway.select(
            ITEMS,
            {"phase_id": [row["id"] for row in phase_rows]},
            order=["position", "created_at"],
        )
        items_by_phase: dict[UUID, list[Item]] = {row["id"]: [] for row in phase_rows}
        for row in item_rows:
            items_by_phase[row["phase_id"]].append(item_from_row(row))

        return tuple(phase_from_row(row, items_by_phase[row["id"]]) for row in phase_rows)

    async def load_board(self, project_id: UUID) -> Board:
        """Load the project and its full phase/item tree.

        Raises:
            NotFoundError: If the project does not exist.
        """
        project = await self.get_project(project_id)
        phases = await self.load_phases(project_id)
        logger.debug(
            "board_loaded",
            project_id=str(project_id),
            phase_count=len(phases),
            item_count=sum(len(p.items) for p in phases),
        )
        return Board(project=project, phases=phases)

    async def load_feed(self, project_id: UUID, limit: int) -> tuple[ActivityEntry, ...]:
        """Most recent activity entries, newest first."""
        rows = await self.gateway.select(
            UPDATES, {"project_id": project_id}, order=["-created_at"], limit=limit
        )
        return tuple(entry_from_row(row) for row in rows)

    async def list_members(self, space_id: UUID | None) -> tuple[Identity, ...]:
        """The assignable users of a space."""
        if space_id is None:
            return ()
        memberships = await self.gateway.select("space_members", {"space_id": space_id})
        if not memberships:
            return ()
        users = await self.gateway.select(
            "users", {"id": [m["user_id"] for m in memberships]}, order=["name"]
        )
        return tuple(identity_from_row(row) for row in users)

    # --- Phases ---

    async def insert_phase(self, project_id: UUID, title: str, position: int) -> Phase:
        row = await self.gateway.insert(
            PHASES,
            {
                "project_id": project_id,
                "title": title,
                "position": position,
                "status": PhaseStatus.active,
            },
        )
        return phase_from_row(row)

    async def update_phase(self, phase_id: UUID, fields: Mapping[str, Any]) -> None:
        await self.gateway.update(PHASES, phase_id, dict(fields))

    async def set_phase_status(
        self,
        phase_id: UUID,
        status: PhaseStatus,
        completed_at: datetime | None,
        position: int | None = None,
    ) -> None:
        fields: dict[str, Any] = {"status": status, "completed_at": completed_at}
        if position is not None:
            fields["position"] = position
        await self.gateway.update(PHASES, phase_id, fields)

    async def set_phase_position(self, phase_id: UUID, position: int) -> None:
        await self.gateway.update(PHASES, phase_id, {"position": position})

    async def delete_phase(self, phase_id: UUID) -> None:
        await self.gateway.delete(PHASES, phase_id)

    # --- Items ---

    async def insert_item(self, phase_id: UUID, title: str, position: int) -> Item:
        row = await self.gateway.insert(
            ITEMS,
            {
                "phase_id": phase_id,
                "title": title,
                "position": position,
                "completed": False,
                "sub_items": [],
            },
        )
        return item_from_row(row)

    async def set_item_completed(
        self, item_id: UUID, completed: bool, completed_at: datetime | None
    ) -> None:
        await self.gateway.update(
            ITEMS, item_id, {"completed": completed, "completed_at": completed_at}
        )

    async def set_item_position(self, item_id: UUID, position: int) -> None:
        await self.gateway.update(ITEMS, item_id, {"position": position})

    async def set_sub_items(self, item_id: UUID, sub_items: Iterable[SubItem]) -> None:
        await self.gateway.update(ITEMS, item_id, {"sub_items": subitems.encode_all(sub_items)})

    async def save_item(self, item: Item) -> None:
        """Write the drawer-editable fields of an item in one update."""
        await self.gateway.update(
            ITEMS,
            item.id,
            {
                "title": item.title,
                "notes": item.notes,
                "assigned_to": item.assigned_to,
                "due_date": item.due_date,
                "sub_items": subitems.encode_all(item.sub_items),
            },
        )

    async def delete_item(self, item_id: UUID) -> None:
        await self.gateway.delete(ITEMS, item_id)

    # --- Activity feed ---

    async def insert_entry(
        self,
        project_id: UUID,
        author_id: UUID | None,
        content: str,
        update_type: UpdateType,
    ) -> ActivityEntry:
        row = await self.gateway.insert(
            UPDATES,
            {
                "project_id": project_id,
                "author_id": author_id,
                "content": content,
                "update_type": update_type,
            },
        )
        return entry_from_row(row)

    async def update_entry_content(self, entry_id: UUID, content: str) -> None:
        await self.gateway.update(UPDATES, entry_id, {"content": content})

    async def delete_entry(self, entry_id: UUID) -> None:
        await self.gateway.delete(UPDATES, entry_id)
