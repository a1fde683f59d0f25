"""
Attachment readiness.

An uploaded file becomes usable by the agents once a document has been
created for it on the Arena API and its Memory Lake side reports ``okay``.
Attachments are processed one after another; the first failure wins.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional, Sequence

from .api import ArenaChatClient

logger = logging.getLogger(__name__)

POLL_INTERVAL_SECONDS = 2.0
MAX_POLL_SECONDS = 5 * 60

READY_STATUS = "okay"
FAILED_STATUSES = frozenset({"error", "invalid"})


class DocumentProcessingError(Exception):
    """Raised when an attachment cannot be made ready; the message is user-facing."""


@dataclass
class DocumentAttachment:
    object_key: str
    filename: Optional[str] = None
    size: Optional[int] = None
    mime_type: Optional[str] = None

    @property
    def file_name(self) -> str:
        return self.filename or self.object_key.rsplit("/", 1)[-1] or "file"


async def _create_and_poll(
    api: ArenaChatClient,
    user_id: Optional[str],
    project_id: str,
    attachment: DocumentAttachment,
    sleep: Callable[[float], Awaitable[None]],
    clock: Callable[[], float],
    poll_interval: float,
    timeout: float,
) -> str:
    created = await api.create_document(project_id, attachment.file_name, attachment.object_key, user_id=user_id)
    if not (created.ok and created.payload):
        raise DocumentProcessingError(created.error_message(f"Create document failed ({created.status_code})"))

    data = created.payload
    drive_item_id = data.get("drive_item_id")
    memorylake_id = data.get("memorylake_document_id")
    supermemory_id = data.get("supermemory_document_id")
    if not (drive_item_id and memorylake_id and supermemory_id):
        raise DocumentProcessingError(
            "Create document response missing drive_item_id, memorylake_document_id or supermemory_document_id"
        )

    started_at = clock()
    while True:
        status = await api.document_status(memorylake_id, supermemory_id, user_id=user_id)
        memorylake_status = status.payload.get("memorylake_status")
        if memorylake_status == READY_STATUS:
            return drive_item_id
        if memorylake_status in FAILED_STATUSES:
            raise DocumentProcessingError(
                f"Document processing failed (memorylake_status: {memorylake_status})"
            )
        if clock() - started_at >= timeout:
            raise DocumentProcessingError("Document processing timed out")
        logger.debug(f"Document {memorylake_id} not ready yet (memorylake_status: {memorylake_status})")
        await sleep(poll_interval)


async def ensure_documents_ready(
    api: ArenaChatClient,
    user_id: Optional[str],
    project_id: Optional[str],
    attachments: Sequence[DocumentAttachment],
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    clock: Callable[[], float] = time.monotonic,
    poll_interval: float = POLL_INTERVAL_SECONDS,
    timeout: float = MAX_POLL_SECONDS,
) -> List[str]:
    """
    Create and poll a document for each attachment until it is ready.

    Args:
        api: Arena client
        user_id: Caller identity sent as X-User-ID
        project_id: Arena project the documents belong to
        attachments: Uploaded objects, in order
        sleep: Awaitable sleep, replaceable in tests
        clock: Monotonic clock, replaceable in tests

    Returns:
        Drive item ids, one per attachment and in the same order

    Raises:
        DocumentProcessingError: On the first attachment that fails
    """
    if not (project_id and project_id.strip()):
        raise DocumentProcessingError("Arena profile or project is missing")

    drive_item_ids: List[str] = []
    for attachment in attachments:
        drive_item_ids.append(
            await _create_and_poll(
                api, user_id, project_id, attachment, sleep, clock, poll_interval, timeout
            )
        )
    return drive_item_ids
