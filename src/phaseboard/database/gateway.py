"""Generic request/response data access for Phaseboard.

The board only ever talks to its store through four calls::

    select(table, filters, order, limit) -> rows
    insert(table, record)                -> created row (with generated id)
    update(table, id, fields)            -> None
    delete(table, id)                    -> None

Rows are plain dicts keyed by column name. ``SqlGateway`` implements the
interface on top of SQLAlchemy async sessions; each call is its own short
transaction, so concurrent calls (a reorder batch) are independent writes.

Example:
    >>> gateway = SqlGateway(session_factory)
    >>> rows = await gateway.select("phases", {"project_id": pid}, order=["position"])
    >>> await gateway.update("phases", rows[0]["id"], {"position": 1})
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any, Protocol
from uuid import UUID

import structlog
from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError

from phaseboard.database.models import (
    Base,
    Phase,
    PhaseItem,
    Project,
    ProjectUpdate,
    SpaceMember,
    User,
)
from phaseboard.errors import NotFoundError, StoreError

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

logger = structlog.get_logger(__name__)

Row = dict[str, Any]

TABLES: dict[str, type[Base]] = {
    "projects": Project,
    "phases": Phase,
    "phase_items": PhaseItem,
    "project_updates": ProjectUpdate,
    "users": User,
    "space_members": SpaceMember,
}


class DataGateway(Protocol):
    """The request/response interface of the remote store."""

    async def select(
        self,
        table: str,
        filters: Mapping[str, Any] | None = None,
        order: Sequence[str] | None = None,
        limit: int | None = None,
    ) -> list[Row]: ...

    async def insert(self, table: str, record: Mapping[str, Any]) -> Row: ...

    async def update(self, table: str, row_id: UUID, fields: Mapping[str, Any]) -> None: ...

    async def delete(self, table: str, row_id: UUID) -> None: ...


def _model(table: str) -> type[Base]:
    try:
        return TABLES[table]
    except KeyError:
        raise ValueError(f"Unknown table: {table}") from None


def _column(model: type[Base], name: str) -> Any:
    if name not in model.__table__.columns:
        raise ValueError(f"Unknown column {name!r} on {model.__tablename__}")
    return getattr(model, name)


def _to_row(instance: Base) -> Row:
    return {column.key: getattr(instance, column.key) for column in instance.__table__.columns}


class SqlGateway:
    """DataGateway backed by SQLAlchemy async sessions.

    Attributes:
        session_factory: Factory producing a new AsyncSession per call.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory
        self._logger = logger.bind(component="SqlGateway")

    async def select(
        self,
        table: str,
        filters: Mapping[str, Any] | None = None,
        order: Sequence[str] | None = None,
        limit: int | None = None,
    ) -> list[Row]:
        """Select rows matching all equality filters.

        Args:
            table: Table name.
            filters: Column -> value. A list/tuple/set value matches any of
                its members; None matches NULL.
            order: Column names; a leading ``-`` sorts descending.
            limit: Maximum number of rows.

        Returns:
            Matching rows as dicts.

        Raises:
            StoreError: If the query fails.
        """
        model = _model(table)
        stmt = select(model)
        for name, value in (filters or {}).items():
            column = _column(model, name)
            if isinstance(value, (list, tuple, set, frozenset)):
                stmt = stmt.where(column.in_(list(value)))
            elif value is None:
                stmt = stmt.where(column.is_(None))
            else:
                stmt = stmt.where(column == value)
        for key in order or ():
            if key.startswith("-"):
                stmt = stmt.order_by(_column(model, key[1:]).desc())
            else:
                stmt = stmt.order_by(_column(model, key).asc())
        if limit is not None:
            stmt = stmt.limit(limit)

        try:
            async with self.session_factory() as session:
                result = await session.execute(stmt)
                rows = [_to_row(instance) for instance in result.scalars().all()]
        except SQLAlchemyError as e:
            self._logger.error("select_failed", table=table, error=str(e))
            raise StoreError(f"Select on {table} failed: {e}", table, "select") from e

        self._logger.debug("rows_selected", table=table, count=len(rows))
        return rows

    async def insert(self, table: str, record: Mapping[str, Any]) -> Row:
        """Insert one row and return it with its generated columns.

        Raises:
            StoreError: If the insert fails.
        """
        model = _model(table)
        for name in record:
            _column(model, name)
        instance = model(**record)

        try:
            async with self.session_factory() as session:
                async with session.begin():
                    session.add(instance)
                    await session.flush()
                row = _to_row(instance)
        except SQLAlchemyError as e:
            self._logger.error("insert_failed", table=table, error=str(e))
            raise StoreError(f"Insert into {table} failed: {e}", table, "insert") from e

        self._logger.debug("row_inserted", table=table, row_id=str(row["id"]))
        return row

    async def update(self, table: str, row_id: UUID, fields: Mapping[str, Any]) -> None:
        """Set the given columns on one row.

        Raises:
            NotFoundError: If no row has the id.
            StoreError: If the update fails.
        """
        model = _model(table)
        for name in fields:
            _column(model, name)
        stmt = update(model).where(model.id == row_id).values(**fields)

        try:
            async with self.session_factory() as session:
                async with session.begin():
                    result = await session.execute(stmt)
                    matched = result.rowcount
        except SQLAlchemyError as e:
            self._logger.error("update_failed", table=table, row_id=str(row_id), error=str(e))
            raise StoreError(f"Update of {table} failed: {e}", table, "update") from e

        if matched == 0:
            raise NotFoundError(f"{table} row {row_id} not found", table, "update")
        self._logger.debug("row_updated", table=table, row_id=str(row_id), fields=sorted(fields))

    async def delete(self, table: str, row_id: UUID) -> None:
        """Delete one row.

        Raises:
            NotFoundError: If no row has the id.
            StoreError: If the delete fails.
        """
        model = _model(table)
        stmt = delete(model).where(model.id == row_id)

        try:
            async with self.session_factory() as session:
                async with session.begin():
                    result = await session.execute(stmt)
                    matched = result.rowcount
        except SQLAlchemyError as e:
            self._logger.error("delete_failed", table=table, row_id=str(row_id), error=str(e))
            raise StoreError(f"Delete from {table} failed: {e}", table, "delete") from e

        if matched == 0:
            raise NotFoundError(f"{table} row {row_id} not found", table, "delete")
        self._logger.debug("row_deleted", table=table, row_id=str(row_id))
