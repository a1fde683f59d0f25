"""
Sessions API endpoints - session list, rename/delete, and message history.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, status

from ..models.session import (
    OperationResult,
    RenameSession,
    SaveUserMessage,
    SavedUserMessage,
    SessionCreated,
    SessionListItem,
    SessionMessage,
)
from ..storage.interface import MessageStoreInterface
from ..storage.records import MessageRecord
from .deps import get_message_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sessions", tags=["sessions"])


def to_session_message(record: MessageRecord) -> SessionMessage:
    return SessionMessage(
        id=record.id,
        role=record.role,
        content=record.content,
        agent_id=record.agent_id,
        provider_id=record.provider_id,
        attachments=record.attachments,
        metadata=record.meta,
        reply_to_message_id=record.reply_to_message_id,
        created_at=record.created_at,
    )


@router.get("", response_model=List[SessionListItem])
async def list_sessions(store: MessageStoreInterface = Depends(get_message_store)):
    """All sessions, newest first."""
    sessions = await store.list_sessions()
    return [SessionListItem(id=s.id, title=s.title, updated_at=s.updated_at) for s in sessions]


@router.post("", response_model=SessionCreated, status_code=status.HTTP_201_CREATED)
async def create_session(store: MessageStoreInterface = Depends(get_message_store)):
    """Start a new chat."""
    session = await store.create_session()
    logger.info(f"Session created: {session.id}")
    return SessionCreated(id=session.id)


@router.patch("/{session_id}", response_model=OperationResult)
async def rename_session(
    session_id: str,
    body: RenameSession,
    store: MessageStoreInterface = Depends(get_message_store),
):
    try:
        updated = await store.update_session(session_id, title=body.title)
    except Exception as e:
        logger.error(f"Failed to rename session {session_id}: {str(e)}", exc_info=True)
        return OperationResult(ok=False, error=str(e) or "Unknown error")
    return OperationResult(ok=updated is not None)


@router.delete("/{session_id}", response_model=OperationResult)
async def delete_session(
    session_id: str,
    store: MessageStoreInterface = Depends(get_message_store),
):
    try:
        await store.delete_session(session_id)
    except Exception as e:
        logger.error(f"Failed to delete session {session_id}: {str(e)}", exc_info=True)
        return OperationResult(ok=False, error=str(e) or "Unknown error")
    return OperationResult(ok=True)


@router.get("/{session_id}/messages", response_model=List[SessionMessage])
async def get_session_messages(
    session_id: str,
    store: MessageStoreInterface = Depends(get_message_store),
):
    """Stored messages of a session, oldest first, for history replay."""
    records = await store.get_messages_by_session_id(session_id)
    return [to_session_message(r) for r in records]


@router.post("/{session_id}/messages", response_model=SavedUserMessage, status_code=status.HTTP_201_CREATED)
async def save_user_message(
    session_id: str,
    body: SaveUserMessage,
    store: MessageStoreInterface = Depends(get_message_store),
):
    """Save the user turn of a round before its agent streams start."""
    if await store.get_session(session_id) is None:
        await store.create_session(session_id)
    attachments = [a.to_record() for a in body.attachments or []]
    record = await store.create_message(
        session_id=session_id,
        role="user",
        content=body.content,
        attachments=attachments or None,
    )
    return SavedUserMessage(user_message_id=record.id)
