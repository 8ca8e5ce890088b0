"""SQLAlchemy ORM models for Phaseboard.

This module defines the schema the board reads and writes: projects,
phases, phase items, project updates, users, and space members.

All models use SQLAlchemy 2.0 declarative style with Mapped[] type annotations.
"""

from phaseboard.database.models.base import Base, TimestampMixin
from phaseboard.database.models.phase import Phase, PhaseItem
from phaseboard.database.models.project import Project
from phaseboard.database.models.update import ProjectUpdate
from phaseboard.database.models.user import SpaceMember, User

__all__ = [
    "Base",
    "TimestampMixin",
    "Project",
    "Phase",
    "PhaseItem",
    "ProjectUpdate",
    "User",
    "SpaceMember",
]
