"""
Shared FastAPI dependencies.
Tests swap any of them through ``app.dependency_overrides``.
"""

from functools import lru_cache
from typing import Optional

from fastapi import Depends, status

from ..agents.dispatcher import StreamDispatcher, build_default_dispatcher
from ..config import settings
from ..services.arena_client import ArenaClient, create_arena_client
from ..services.identity_client import IdentityClient, create_identity_client
from ..storage.database import get_session_factory
from ..storage.interface import MessageStoreInterface
from ..storage.sql_store import SqlMessageStore
from ..utils.errors import ApiError


def get_message_store() -> MessageStoreInterface:
    return SqlMessageStore(get_session_factory())


@lru_cache
def get_dispatcher() -> StreamDispatcher:
    return build_default_dispatcher(settings)


def get_arena_client() -> Optional[ArenaClient]:
    return create_arena_client()


def get_identity_client() -> Optional[IdentityClient]:
    return create_identity_client()


def _require(client: Optional[ArenaClient], name: str) -> ArenaClient:
    if client is None:
        raise ApiError(
            status.HTTP_503_SERVICE_UNAVAILABLE,
            f"{name} API is not configured (ARENA_API_BASE)",
        )
    return client


def require_arena_client(client: Optional[ArenaClient] = Depends(get_arena_client)) -> ArenaClient:
    """Arena client for document endpoints; 503 when ARENA_API_BASE is unset."""
    return _require(client, "Arena")


def require_upload_client(client: Optional[ArenaClient] = Depends(get_arena_client)) -> ArenaClient:
    """Arena client for upload endpoints; 503 when ARENA_API_BASE is unset."""
    return _require(client, "Upload")
