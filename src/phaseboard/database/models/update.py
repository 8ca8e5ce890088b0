"""Project update (activity feed) model for Phaseboard."""

from __future__ import annotations

import uuid

from sqlalchemy import ForeignKey, Text
from sqlalchemy.orm import Mapped, mapped_column

from phaseboard.board.models import UpdateType
from phaseboard.database.models.base import Base, TimestampMixin


class ProjectUpdate(TimestampMixin, Base):
    """An append-only activity feed entry.

    Attributes:
        id: UUID primary key (from TimestampMixin).
        project_id: Project the entry belongs to.
        author_id: User who caused the entry, if known.
        content: Free text.
        update_type: Manual post or one of the system event types.
        created_at: Feed ordering key (from TimestampMixin).
    """

    __tablename__ = "project_updates"

    project_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    author_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    update_type: Mapped[UpdateType] = mapped_column(
        default=UpdateType.post,
        nullable=False,
    )
