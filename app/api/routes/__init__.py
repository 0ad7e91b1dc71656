from __future__ import annotations

from app.api.routes.chat import router as chat_router
from app.api.routes.diagnostics import router as diagnostics_router
from app.api.routes.health import router as health_router

__all__ = ["chat_router", "diagnostics_router", "health_router"]
