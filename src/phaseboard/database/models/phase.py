"""Phase and phase item models for Phaseboard.

Phases are ordered within their project by ``position`` among the active
phases; items are ordered within their phase. Sub-items are not a table:
they live in the item's ``sub_items`` string array, one encoded sub-item
per element.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime

from sqlalchemy import JSON, Boolean, Date, DateTime, ForeignKey, Integer, Text
from sqlalchemy.dialects.postgresql import ARRAY
from sqlalchemy.orm import Mapped, mapped_column

from phaseboard.board.models import PhaseStatus
from phaseboard.database.models.base import Base, TimestampMixin

# TEXT[] on PostgreSQL, JSON list elsewhere
StringArray = JSON().with_variant(ARRAY(Text), "postgresql")


class Phase(TimestampMixin, Base):
    """A stage of a project.

    Attributes:
        id: UUID primary key (from TimestampMixin).
        project_id: Foreign key to the parent project.
        title: Phase title.
        position: Zero-based index among the project's active phases.
        status: Active or completed.
        assigned_to: Optional assignee user id.
        completed_at: Set while the phase is completed.
    """

    __tablename__ = "phases"

    project_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title: Mapped[str] = mapped_column(Text, nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[PhaseStatus] = mapped_column(
        default=PhaseStatus.active,
        nullable=False,
    )
    assigned_to: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )


class PhaseItem(TimestampMixin, Base):
    """A unit of work within a phase.

    Attributes:
        id: UUID primary key (from TimestampMixin).
        phase_id: Foreign key to the parent phase.
        title: Item title.
        position: Zero-based index among the phase's items.
        completed: Completion flag.
        completed_at: Set while completed.
        assigned_to: Optional assignee user id.
        due_date: Optional due date.
        notes: Optional notes.
        sub_items: Encoded sub-items, in display order.
    """

    __tablename__ = "phase_items"

    phase_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("phases.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title: Mapped[str] = mapped_column(Text, nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    assigned_to: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    due_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    sub_items: Mapped[list[str]] = mapped_column(
        StringArray,
        nullable=False,
        default=list,
    )
