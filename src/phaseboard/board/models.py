"""Board value types.

The board is held as an immutable tree: a Board owns its Phases, each
Phase owns its Items, and each Item carries its Sub-items. All mutation
goes through pure functions that return new values (``dataclasses.replace``),
so the session that owns the board holds the only mutable reference.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from uuid import UUID


class PhaseStatus(enum.Enum):
    """Lifecycle status of a phase.

    States:
        active: Phase is on the board and takes part in position ordering.
        completed: All items were completed; phase has no meaningful position.
    """

    active = "active"
    completed = "completed"


class ProjectStatus(enum.Enum):
    """Lifecycle status of a project."""

    active = "active"
    on_hold = "on_hold"
    completed = "completed"
    archived = "archived"


class UpdateType(enum.Enum):
    """Kind of activity feed entry.

    Only ``post`` entries are written by people; every other type is a
    system record produced by a board operation and cannot be edited.
    """

    post = "post"
    phase_created = "phase_created"
    phase_deleted = "phase_deleted"
    phase_restored = "phase_restored"
    phase_assigned = "phase_assigned"
    item_completed = "item_completed"
    phase_completed = "phase_completed"

    @property
    def editable(self) -> bool:
        """Whether the author may edit or delete entries of this type."""
        return self is UpdateType.post


@dataclass(frozen=True)
class Identity:
    """A user as shown on the board (assignee avatars, feed authors)."""

    id: UUID
    name: str
    avatar_url: str | None = None


@dataclass(frozen=True)
class Project:
    id: UUID
    name: str
    description: str | None = None
    status: ProjectStatus = ProjectStatus.active
    space_id: UUID | None = None


@dataclass(frozen=True)
class SubItem:
    """A checklist entry embedded in an item; its index is its position."""

    id: str
    text: str
    completed: bool = False


@dataclass(frozen=True)
class Item:
    """A unit of work within a phase.

    Attributes:
        id: Item UUID.
        phase_id: Owning phase.
        title: Item title.
        position: Zero-based index among the phase's items.
        completed: Completion flag.
        completed_at: Set iff completed.
        assigned_to: Optional assignee user id.
        due_date: Optional due date.
        notes: Optional free text.
        sub_items: Ordered checklist.
    """

    id: UUID
    phase_id: UUID
    title: str
    position: int
    completed: bool = False
    completed_at: datetime | None = None
    assigned_to: UUID | None = None
    due_date: date | None = None
    notes: str | None = None
    sub_items: tuple[SubItem, ...] = ()


@dataclass(frozen=True)
class Phase:
    """A named, ordered stage of a project.

    Attributes:
        id: Phase UUID.
        project_id: Owning project.
        title: Phase title.
        position: Zero-based index among the project's active phases.
        status: Active or completed.
        assigned_to: Optional assignee user id.
        completed_at: Set iff status is completed.
        items: Items ordered by position.
    """

    id: UUID
    project_id: UUID
    title: str
    position: int
    status: PhaseStatus = PhaseStatus.active
    assigned_to: UUID | None = None
    completed_at: datetime | None = None
    items: tuple[Item, ...] = ()

    @property
    def is_active(self) -> bool:
        return self.status is PhaseStatus.active

    def item(self, item_id: UUID) -> Item | None:
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    def with_item(self, item: Item) -> Phase:
        """Return a copy with the item of the same id replaced."""
        return replace(
            self,
            items=tuple(item if i.id == item.id else i for i in self.items),
        )


@dataclass(frozen=True)
class ActivityEntry:
    """One entry of a project's activity feed."""

    id: UUID
    project_id: UUID
    author_id: UUID | None
    content: str
    update_type: UpdateType
    created_at: datetime


@dataclass(frozen=True)
class Board:
    """A project and its phases, as held by one board session."""

    project: Project
    phases: tuple[Phase, ...] = field(default=())

    @property
    def active_phases(self) -> tuple[Phase, ...]:
        """Active phases in board order."""
        return tuple(
            sorted((p for p in self.phases if p.is_active), key=lambda p: p.position)
        )

    @property
    def completed_phases(self) -> tuple[Phase, ...]:
        return tuple(p for p in self.phases if not p.is_active)

    def phase(self, phase_id: UUID) -> Phase | None:
        for phase in self.phases:
            if phase.id == phase_id:
                return phase
        return None

    def find_item(self, item_id: UUID) -> tuple[Phase, Item] | None:
        """Locate an item anywhere on the board."""
        for phase in self.phases:
            item = phase.item(item_id)
            if item is not None:
                return phase, item
        return None

    def with_phase(self, phase: Phase) -> Board:
        """Return a copy with the phase of the same id replaced."""
        return replace(
            self,
            phases=tuple(phase if p.id == phase.id else p for p in self.phases),
        )

    def with_phases(self, phases: tuple[Phase, ...]) -> Board:
        """Return a copy with several phases replaced by id."""
        by_id = {p.id: p for p in phases}
        return replace(
            self,
            phases=tuple(by_id.get(p.id, p) for p in self.phases),
        )

    def add_phase(self, phase: Phase) -> Board:
        return replace(self, phases=self.phases + (phase,))

    def remove_phase(self, phase_id: UUID) -> Board:
        return replace(
            self,
            phases=tuple(p for p in self.phases if p.id != phase_id),
        )
