"""Pytest fixtures for integration tests.

Provides async database fixtures backed by a file-based SQLite database in
the test's temporary directory. Production runs on PostgreSQL; the board
only relies on portable column types (sub-items fall back to a JSON list),
so the same schema and gateway code run unchanged here.

A file database is used instead of ``:memory:`` because every gateway call
opens its own session, and concurrent reorder writes need separate
connections that see the same data.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import AsyncGenerator
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from phaseboard.board.repository import BoardRepository
from phaseboard.database.connection import create_schema, get_session_factory
from phaseboard.database.gateway import SqlGateway


@dataclass(frozen=True)
class Seed:
    """Ids of the rows every board test starts from."""

    space_id: UUID
    project_id: UUID
    alice_id: UUID
    bob_id: UUID
    outsider_id: UUID


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    """Use asyncio as the async backend for pytest-asyncio."""
    return "asyncio"


@pytest_asyncio.fixture
async def engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    """Create a SQLite async engine on a fresh database file.

    Yields:
        AsyncEngine with the board schema created.
    """
    test_engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'board.db'}", echo=False)
    await create_schema(test_engine)

    yield test_engine

    await test_engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test engine."""
    return get_session_factory(engine)


@pytest.fixture
def gateway(session_factory: async_sessionmaker[AsyncSession]) -> SqlGateway:
    return SqlGateway(session_factory)


@pytest.fixture
def repository(gateway: SqlGateway) -> BoardRepository:
    return BoardRepository(gateway)


@pytest_asyncio.fixture
async def seed(gateway: SqlGateway) -> Seed:
    """Insert two space members, one outsider and an empty project.

    Returns:
        The ids of the inserted rows.
    """
    space_id = uuid4()
    alice = await gateway.insert("users", {"name": "alice", "display_name": "Alice"})
    bob = await gateway.insert("users", {"name": "bob"})
    outsider = await gateway.insert("users", {"name": "mallory"})
    for user in (alice, bob):
        await gateway.insert("space_members", {"space_id": space_id, "user_id": user["id"]})
    project = await gateway.insert(
        "projects", {"name": "Website relaunch", "space_id": space_id}
    )
    return Seed(
        space_id=space_id,
        project_id=project["id"],
        alice_id=alice["id"],
        bob_id=bob["id"],
        outsider_id=outsider["id"],
    )
