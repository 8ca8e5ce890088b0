"""Project model for Phaseboard.

A project owns phases and its activity feed. The board never writes
project rows; they are created and edited elsewhere in the application.
"""

from __future__ import annotations

import uuid

from sqlalchemy import Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from phaseboard.board.models import ProjectStatus
from phaseboard.database.models.base import Base, TimestampMixin


class Project(TimestampMixin, Base):
    """A project whose work is broken down on the board.

    Attributes:
        id: UUID primary key (from TimestampMixin).
        name: Human-readable project name.
        description: Optional description.
        status: Project lifecycle status.
        space_id: Space the project belongs to; its members are assignable.
    """

    __tablename__ = "projects"

    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[ProjectStatus] = mapped_column(
        default=ProjectStatus.active,
        nullable=False,
    )
    space_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True, index=True)
