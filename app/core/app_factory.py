from __future__ import annotations

"""Application factory for FastAPI app.

Centralizes app construction (metadata, middleware, handlers, routers) so
tests and the ASGI entrypoint build the app the same way.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.api.routes import chat_router, diagnostics_router, health_router
from app.api.routes.chat import get_chat_service
from app.core.config import settings
from app.core.exception_handlers import setup_exception_handlers
from app.core.logging import configure_logging
from app.core.middleware import request_id_middleware

OPENAPI_TAGS = [
    {
        "name": "Chat",
        "description": "Questions about Northstowe answered via the upstream AI search API.",
    },
    {
        "name": "Diagnostics",
        "description": "Upstream connectivity and model availability checks.",
    },
    {
        "name": "Health",
        "description": "Liveness checks.",
    },
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await get_chat_service().aclose()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance.

    Returns:
        Configured FastAPI app with middleware, handlers and routers.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="Northstowe Assistant API",
        description=(
            "Chat backend for Northstowe residents. Questions are filtered for "
            "local relevance, rate limited per client, enriched with local "
            "context and answered by the Perplexity API."
        ),
        version="0.1.0",
        debug=settings.app.debug,
        openapi_tags=OPENAPI_TAGS,
        lifespan=lifespan,
    )

    # Middleware
    app.middleware("http")(request_id_middleware)

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(chat_router)
    app.include_router(diagnostics_router)
    app.include_router(health_router)

    return app
