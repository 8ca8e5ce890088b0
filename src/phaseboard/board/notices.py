"""Transient user-facing notices.

Board operations never raise store failures to their caller; they report
them here instead, the way a page shows a toast. The web layer returns the
drained notices with each response.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass

import structlog

logger = structlog.get_logger(__name__)


class NoticeLevel(enum.Enum):
    success = "success"
    warning = "warning"
    error = "error"


@dataclass(frozen=True)
class Notice:
    level: NoticeLevel
    message: str
    detail: str | None = None


class Notifier:
    """Collects notices for the current user interaction."""

    def __init__(self) -> None:
        self._notices: list[Notice] = []

    def success(self, message: str) -> None:
        self._notices.append(Notice(NoticeLevel.success, message))

    def warning(self, message: str, detail: str | None = None) -> None:
        self._notices.append(Notice(NoticeLevel.warning, message, detail))

    def error(self, message: str, exc: BaseException | None = None) -> None:
        detail = str(exc) if exc is not None else None
        logger.warning("user_notified_of_error", message=message, detail=detail)
        self._notices.append(Notice(NoticeLevel.error, message, detail))

    @property
    def notices(self) -> tuple[Notice, ...]:
        return tuple(self._notices)

    def drain(self) -> tuple[Notice, ...]:
        """Return and clear pending notices."""
        notices = tuple(self._notices)
        self._notices.clear()
        return notices
