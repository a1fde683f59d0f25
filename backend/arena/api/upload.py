"""
Multipart upload endpoints.
File bytes go straight from the client to the signed part URLs; only the
small create/complete calls pass through here.
"""

from fastapi import APIRouter, Depends, Request, status

from ..services.arena_client import ArenaClient
from ..utils.auth import get_current_user_id
from ..utils.errors import ApiError
from .deps import require_upload_client
from .proxy import read_json_object, relay

router = APIRouter(prefix="/upload", tags=["upload"])


@router.post("/create-multipart")
async def create_multipart(
    request: Request,
    client: ArenaClient = Depends(require_upload_client),
    user_id: str = Depends(get_current_user_id),
):
    """Body: ``{file_size}``. Returns the upload id, object key and one signed URL per part."""
    body = await read_json_object(request)
    file_size = body.get("file_size")
    if isinstance(file_size, bool) or not isinstance(file_size, (int, float)) or file_size < 0:
        raise ApiError(status.HTTP_400_BAD_REQUEST, "file_size must be a non-negative number")
    return await relay(client.create_multipart(user_id, int(file_size)))


@router.post("/complete-multipart")
async def complete_multipart(
    request: Request,
    client: ArenaClient = Depends(require_upload_client),
    user_id: str = Depends(get_current_user_id),
):
    """Body: ``{upload_id, object_key, part_eTags}``."""
    body = await read_json_object(request)
    upload_id = body.get("upload_id")
    object_key = body.get("object_key")
    part_etags = body.get("part_eTags")
    if not (isinstance(upload_id, str) and isinstance(object_key, str) and isinstance(part_etags, list)):
        raise ApiError(status.HTTP_400_BAD_REQUEST, "upload_id, object_key, part_eTags required")
    return await relay(client.complete_multipart(user_id, upload_id, object_key, part_etags))
