"""
Multipart upload of one file.

create-multipart (through the server proxy) -> PUT each part straight to its
signed URL -> complete-multipart. File bytes never pass through the server.
"""

import logging
from typing import Callable, Dict, List, Optional

import httpx

from .api import ArenaChatClient

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


class UploadError(Exception):
    """Raised when any step of a multipart upload fails."""


def _strip_quotes(etag: str) -> str:
    if len(etag) >= 2 and etag.startswith('"') and etag.endswith('"'):
        return etag[1:-1]
    return etag


async def upload_file(
    api: ArenaChatClient,
    data: bytes,
    user_id: Optional[str] = None,
    on_progress: Optional[ProgressCallback] = None,
) -> str:
    """
    Upload data and return its object key.

    Raises:
        UploadError: With the upstream message, or the failing part number
    """
    total = len(data)
    created = await api.create_multipart(total, user_id=user_id)
    if not (created.ok and created.payload):
        raise UploadError(created.error_message(f"create-multipart failed ({created.status_code})"))

    upload_id = created.payload.get("upload_id")
    object_key = created.payload.get("object_key")
    part_etags: List[Dict] = []
    offset = 0

    for part in created.payload.get("part_items") or []:
        size = int(part.get("size", 0))
        chunk = data[offset:offset + size]
        try:
            response = await api.put_part(part["upload_url"], chunk)
        except httpx.HTTPError as e:
            raise UploadError(f"Part {part.get('number')} upload failed: {e}") from e
        if not response.is_success:
            raise UploadError(f"Part {part.get('number')} upload failed: {response.status_code}")
        part_etags.append({"number": part.get("number"), "etag": _strip_quotes(response.headers.get("ETag", ""))})
        offset += size
        if on_progress:
            on_progress(offset, total)

    completed = await api.complete_multipart(upload_id, object_key, part_etags, user_id=user_id)
    if not completed.ok:
        raise UploadError(completed.error_message(f"complete-multipart failed ({completed.status_code})"))

    logger.info(f"Uploaded {total} bytes as {object_key} in {len(part_etags)} part(s)")
    return object_key
