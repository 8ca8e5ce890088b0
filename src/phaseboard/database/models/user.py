"""User and space membership models for Phaseboard.

Users are owned by the identity service; the board only reads them to
show assignees and to resolve the assignable members of a project's space.
"""

from __future__ import annotations

import uuid

from sqlalchemy import ForeignKey, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from phaseboard.database.models.base import Base, TimestampMixin


class User(TimestampMixin, Base):
    """A person who can be assigned phases and items.

    Attributes:
        name: Account name.
        display_name: Preferred name for display, if set.
        avatar_url: Avatar image URL.
    """

    __tablename__ = "users"

    name: Mapped[str] = mapped_column(Text, nullable=False)
    display_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(Text, nullable=True)


class SpaceMember(TimestampMixin, Base):
    """Membership of a user in a space."""

    __tablename__ = "space_members"
    __table_args__ = (UniqueConstraint("space_id", "user_id"),)

    space_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
