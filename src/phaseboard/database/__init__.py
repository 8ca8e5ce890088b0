"""Database layer for Phaseboard.

This module handles database connections, session management, the ORM
schema, and the generic data-access gateway the board persists through.

Public API:
    get_engine: Create an AsyncEngine from DatabaseConfig.
    get_session_factory: Create an async_sessionmaker from an engine.
    create_schema: Create all tables on an engine.
    DataGateway: Protocol of the select/insert/update/delete interface.
    SqlGateway: DataGateway over SQLAlchemy async sessions.
    Base: SQLAlchemy declarative base for all models.
"""

from phaseboard.database.connection import create_schema, get_engine, get_session_factory
from phaseboard.database.gateway import DataGateway, SqlGateway
from phaseboard.database.models import (
    Base,
    Phase,
    PhaseItem,
    Project,
    ProjectUpdate,
    SpaceMember,
    TimestampMixin,
    User,
)

__all__ = [
    "get_engine",
    "get_session_factory",
    "create_schema",
    "DataGateway",
    "SqlGateway",
    "Base",
    "TimestampMixin",
    "Project",
    "Phase",
    "PhaseItem",
    "ProjectUpdate",
    "User",
    "SpaceMember",
]
