"""
Attachment resolution.

Files reach a model either as a URL the vendor fetches itself or as base64
content. Which one depends on the vendor of the selected model and on the
media type; drive items are exchanged for download URLs through the Arena API.
"""

import base64
import logging
from typing import Iterable, List, Optional

import httpx

from ..core.catalog import (
    model_vendor,
    supported_types_hint,
    vendor_supports_file_type,
    vendor_supports_file_url,
)
from ..llm.base import ResolvedFile, UpstreamError
from ..models.chat import FileRef
from ..services.arena_client import ArenaClient

logger = logging.getLogger(__name__)

DEFAULT_MEDIA_TYPE = "application/octet-stream"
BASE64_LIMIT_BYTES = 20 * 1024 * 1024


class AttachmentError(Exception):
    """An attachment cannot be delivered to the model; the message is user-presentable."""


def _media_type(ref: FileRef) -> str:
    return (ref.mime_type or DEFAULT_MEDIA_TYPE).strip()


async def resolve_file_refs(
    refs: Iterable[FileRef],
    model_id: str,
    user_id: str,
    arena_client: Optional[ArenaClient],
    size_limit: int = BASE64_LIMIT_BYTES,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> List[ResolvedFile]:
    """
    Resolve drive item references into model-ready files, in order.

    Every media type is checked before anything is downloaded.

    Raises:
        AttachmentError: On the first reference that cannot be resolved
    """
    refs = [r for r in refs if r.drive_item_id]
    if not refs:
        return []

    vendor = model_vendor(model_id)
    for ref in refs:
        media_type = _media_type(ref)
        if not vendor_supports_file_type(vendor, media_type):
            raise AttachmentError(
                f"Unsupported file type for {vendor}: {media_type}. {supported_types_hint(vendor)}"
            )

    if arena_client is None:
        raise AttachmentError("ARENA_API_BASE is not configured")

    resolved: List[ResolvedFile] = []
    for ref in refs:
        media_type = _media_type(ref)
        try:
            download = await arena_client.get_item_download_url(ref.drive_item_id, user_id)
        except UpstreamError as e:
            raise AttachmentError(str(e)) from e

        if vendor_supports_file_url(vendor, media_type):
            resolved.append(ResolvedFile(download.url, media_type, ref.filename, is_url=True))
            continue

        size = ref.size or 0
        if size >= size_limit:
            raise AttachmentError(f"File too large for base64 (max {size_limit // (1024 * 1024)}MB)")
        if size == 0:
            raise AttachmentError("File size unknown; cannot use base64")

        try:
            async with httpx.AsyncClient(timeout=arena_client.timeout, transport=transport) as client:
                response = await client.get(download.url, headers=download.headers)
        except httpx.HTTPError as e:
            logger.error(f"Attachment download failed: {e}", exc_info=True)
            raise AttachmentError(f"Failed to fetch file: {e}") from e
        if not response.is_success:
            raise AttachmentError(f"Failed to fetch file: {response.status_code}")

        resolved.append(
            ResolvedFile(base64.b64encode(response.content).decode("ascii"), media_type, ref.filename)
        )
        logger.debug(f"Attachment inlined as base64: {ref.drive_item_id} ({size} bytes)")

    return resolved
