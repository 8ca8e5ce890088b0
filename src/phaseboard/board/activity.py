"""Project activity feed.

The feed is append-only and shown newest first. Board operations record
system entries (phase created, item completed, ...) on a best-effort basis:
a failed write is logged and dropped, never undoing or blocking the change
that caused it. People write ``post`` entries, and only the author of a post
may edit or delete it.
"""

from __future__ import annotations

from dataclasses import replace
from uuid import UUID

import structlog

from phaseboard.board.models import ActivityEntry, UpdateType
from phaseboard.board.repository import BoardRepository
from phaseboard.errors import NotFoundError, PermissionDeniedError, StoreError

logger = structlog.get_logger(__name__)


def can_modify(entry: ActivityEntry, user_id: UUID | None) -> bool:
    """Whether the user may edit or delete the entry."""
    return entry.update_type.editable and user_id is not None and entry.author_id == user_id


class ActivityLog:
    """In-memory feed of one project plus its writes.

    Attributes:
        repository: Board persistence adapter.
        project_id: Project the feed belongs to.
    """

    def __init__(
        self,
        repository: BoardRepository,
        project_id: UUID,
        entries: tuple[ActivityEntry, ...] = (),
    ) -> None:
        self.repository = repository
        self.project_id = project_id
        self._entries = list(entries)
        self._logger = logger.bind(component="ActivityLog", project_id=str(project_id))

    @property
    def entries(self) -> tuple[ActivityEntry, ...]:
        """Entries newest first."""
        return tuple(sorted(self._entries, key=lambda e: e.created_at, reverse=True))

    def reset(self, entries: tuple[ActivityEntry, ...]) -> None:
        """Replace the in-memory feed with freshly loaded entries."""
        self._entries = list(entries)

    def get(self, entry_id: UUID) -> ActivityEntry | None:
        for entry in self._entries:
            if entry.id == entry_id:
                return entry
        return None

    async def record(
        self,
        author_id: UUID | None,
        content: str,
        update_type: UpdateType,
    ) -> ActivityEntry | None:
        """Append an entry, best effort.

        Returns:
            The stored entry, or None if the write failed. Failures are
            logged on the error channel and never raised.
        """
        try:
            entry = await self.repository.insert_entry(
                self.project_id, author_id, content, update_type
            )
        except StoreError as e:
            self._logger.error(
                "activity_write_failed",
                update_type=update_type.value,
                error=str(e),
            )
            return None

        self._entries.insert(0, entry)
        self._logger.info(
            "activity_recorded",
            entry_id=str(entry.id),
            update_type=update_type.value,
        )
        return entry

    async def post(self, author_id: UUID | None, content: str) -> ActivityEntry | None:
        """Write a manual post.

        Returns:
            The new entry, or None when the content is blank.

        Raises:
            StoreError: If the write fails.
        """
        text = content.strip()
        if not text:
            return None
        entry = await self.repository.insert_entry(
            self.project_id, author_id, text, UpdateType.post
        )
        self._entries.insert(0, entry)
        self._logger.info("post_created", entry_id=str(entry.id))
        return entry

    def _editable(self, entry_id: UUID, user_id: UUID | None) -> ActivityEntry:
        entry = self.get(entry_id)
        if entry is None:
            raise NotFoundError(f"Update {entry_id} not found", "project_updates")
        if not can_modify(entry, user_id):
            raise PermissionDeniedError(
                f"Update {entry_id} ({entry.update_type.value}) cannot be changed by this user"
            )
        return entry

    async def edit(self, entry_id: UUID, user_id: UUID | None, content: str) -> ActivityEntry | None:
        """Replace the content of a post.

        Returns:
            The edited entry, or None when the new content is blank.

        Raises:
            NotFoundError: If the entry is not in the feed.
            PermissionDeniedError: If the entry is not the user's post.
            StoreError: If the write fails.
        """
        text = content.strip()
        if not text:
            return None
        entry = self._editable(entry_id, user_id)
        await self.repository.update_entry_content(entry_id, text)
        edited = replace(entry, content=text)
        self._entries = [edited if e.id == entry_id else e for e in self._entries]
        self._logger.info("post_edited", entry_id=str(entry_id))
        return edited

    async def delete(self, entry_id: UUID, user_id: UUID | None) -> None:
        """Delete a post.

        Raises:
            NotFoundError: If the entry is not in the feed.
            PermissionDeniedError: If the entry is not the user's post.
            StoreError: If the write fails.
        """
        self._editable(entry_id, user_id)
        await self.repository.delete_entry(entry_id)
        self._entries = [e for e in self._entries if e.id != entry_id]
        self._logger.info("post_deleted", entry_id=str(entry_id))
