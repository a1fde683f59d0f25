"""
Memory Arena - FastAPI application.

Serves the streaming chat endpoint, session history, the Arena document and
upload proxies, and the signed-in user's profile, all under /api.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api import (
    arena_router, chat_router, health_router, profile_router, sessions_router, upload_router,
)
from .config import settings
from .core.logging_config import setup_logging
from .middleware import RequestLoggingMiddleware
from .storage.database import close_database, init_database
from .utils.errors import ApiError, api_error_handler

logger = logging.getLogger(__name__)

API_PREFIX = "/api"

ROUTERS = (
    chat_router,
    sessions_router,
    arena_router,
    upload_router,
    profile_router,
    health_router,
)


def _log_missing_upstreams() -> None:
    if not (settings.litellm_api_url and settings.litellm_api_key):
        logger.warning("LiteLLM gateway not configured; Mem0 and Supermemory will answer with errors")
    if not (settings.memorylake_api_url and settings.memorylake_api_key):
        logger.warning("MemoryLake provider not configured; the MemoryLake agent will answer with errors")
    if not settings.arena_api_base:
        logger.warning("ARENA_API_BASE not configured; uploads, documents and attachments are disabled")
    if not settings.main_domain_api_url:
        logger.warning("MAIN_DOMAIN_API_URL not configured; /api/profile is unavailable")


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(settings)
    await init_database(settings.database_url, echo=settings.database_echo)

    logger.info(f"Starting {settings.app_name} v{settings.app_version} (debug={settings.debug})")
    _log_missing_upstreams()
    yield
    await close_database()
    logger.info(f"Shutting down {settings.app_name}")


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Side-by-side chat with three memory-augmented agents",
    lifespan=lifespan
)

app.add_exception_handler(ApiError, api_error_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Added after CORS so it wraps it
if settings.log_api_requests:
    app.add_middleware(RequestLoggingMiddleware)

for router in ROUTERS:
    app.include_router(router, prefix=API_PREFIX)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "arena.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug
    )
