"""
Arena document endpoints - register uploaded objects and poll their ingestion.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status

from ..services.arena_client import ArenaClient
from ..utils.auth import get_current_user_id
from ..utils.errors import ApiError
from .deps import require_arena_client
from .proxy import read_json_object, relay

router = APIRouter(prefix="/arena", tags=["arena"])


def _non_empty_str(value) -> bool:
    return isinstance(value, str) and bool(value)


@router.post("/documents")
async def create_document(
    request: Request,
    client: ArenaClient = Depends(require_arena_client),
    user_id: str = Depends(get_current_user_id),
):
    """
    Register an uploaded object as a document of a project.

    Body: ``{project_id, file_name, object_key}``; the caller's id is added as ``user_id``.
    """
    body = await read_json_object(request)
    project_id = body.get("project_id")
    file_name = body.get("file_name")
    object_key = body.get("object_key")
    if not (_non_empty_str(project_id) and _non_empty_str(file_name) and _non_empty_str(object_key)):
        raise ApiError(
            status.HTTP_400_BAD_REQUEST,
            "project_id, file_name, and object_key are required",
        )
    return await relay(client.create_document(user_id, project_id, file_name, object_key))


@router.get("/documents/status")
async def document_status(
    client: ArenaClient = Depends(require_arena_client),
    user_id: str = Depends(get_current_user_id),
    memorylake_document_id: Optional[str] = Query(None),
    supermemory_document_id: Optional[str] = Query(None),
):
    """Ingestion status of a document in both memory backends."""
    if not (memorylake_document_id and supermemory_document_id):
        raise ApiError(
            status.HTTP_400_BAD_REQUEST,
            "memorylake_document_id and supermemory_document_id query params are required",
        )
    return await relay(client.document_status(user_id, memorylake_document_id, supermemory_document_id))
