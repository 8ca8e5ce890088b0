"""FastAPI route definitions for Phaseboard."""

from __future__ import annotations

from phaseboard.web.routes.board import (
    ActionResponse,
    BoardResponse,
    create_board_router,
)
from phaseboard.web.routes.health import (
    HealthResponse,
    ReadinessResponse,
    create_health_router,
)

__all__ = [
    # Board
    "ActionResponse",
    "BoardResponse",
    "create_board_router",
    # Health
    "HealthResponse",
    "ReadinessResponse",
    "create_health_router",
]
