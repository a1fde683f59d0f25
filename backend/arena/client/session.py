"""
Chat session controller: one user turn fanned out to the three agents.

Owns one AgentChat per agent. A send persists the user message once, appends
it to every agent's list and starts the three streams concurrently; each
stream can finish, fail or be stopped without touching the others.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence

import httpx

from ..config import settings
from ..core.catalog import AGENT_IDS, MEMORYLAKE_AGENT_ID
from ..models.chat import MessagePart, UIMessage
from .agent_chat import AgentChat, ChatStatus
from .api import ArenaChatClient, ChatClientError
from .documents import DocumentAttachment, ensure_documents_ready
from .relay import PendingSend, PendingSendRelay
from .rounds import Round, build_rounds, dto_to_ui_message, file_ref_parts, partition_session_messages

logger = logging.getLogger(__name__)


class ChatSessionController:
    """Drives one chat session from the client side."""

    def __init__(
        self,
        api: ArenaChatClient,
        relay: PendingSendRelay,
        model_id: Optional[str] = None,
        user_id: Optional[str] = None,
        memorylake_profile: Optional[Dict[str, Any]] = None,
        agent_ids: Sequence[str] = AGENT_IDS,
    ):
        self.api = api
        self.relay = relay
        self.model_id = model_id or settings.default_model_id
        self.user_id = user_id
        self.memorylake_profile = memorylake_profile
        self.session_id: Optional[str] = None
        self.chats: List[AgentChat] = [
            AgentChat(agent_id, self._stream_fn(agent_id)) for agent_id in agent_ids
        ]

    def _stream_fn(self, agent_id: str):
        def stream(messages: List[UIMessage]):
            # Model is read at call time: every agent of a round uses the same one.
            profile = self.memorylake_profile if agent_id == MEMORYLAKE_AGENT_ID else None
            return self.api.stream_chat(self.session_id, messages, agent_id, self.model_id, profile)
        return stream

    @property
    def rounds(self) -> List[Round]:
        return build_rounds([chat.messages for chat in self.chats])

    @property
    def is_busy(self) -> bool:
        return any(chat.status in (ChatStatus.SUBMITTED, ChatStatus.STREAMING) for chat in self.chats)

    async def prepare_attachments(
        self, uploads: Sequence[DocumentAttachment], project_id: Optional[str]
    ) -> List[Dict[str, Any]]:
        """Make uploads ready and return attachment descriptors for the user message."""
        if not uploads:
            return []
        drive_item_ids = await ensure_documents_ready(self.api, self.user_id, project_id, uploads)
        attachments = []
        for upload, drive_item_id in zip(uploads, drive_item_ids):
            descriptor = {"drive_item_id": drive_item_id, "filename": upload.filename,
                          "size": upload.size, "mimeType": upload.mime_type}
            attachments.append({k: v for k, v in descriptor.items() if v is not None})
        return attachments

    async def load_history(self, session_id: str) -> None:
        """Replace every agent's list with the stored history of session_id."""
        try:
            dtos = await self.api.get_session_messages(session_id)
        except (ChatClientError, httpx.HTTPError) as e:
            logger.error(f"Failed to load messages for session {session_id}: {e}")
            dtos = []
        per_agent = partition_session_messages(dtos, [chat.agent_id for chat in self.chats])
        for chat, messages in zip(self.chats, per_agent):
            chat.set_messages([dto_to_ui_message(m) for m in messages])

    async def open(self, session_id: str) -> None:
        """
        Switch to session_id: load its history, then send the message
        relayed from the sender, if any.
        """
        self.stop_all()
        self.session_id = session_id
        await self.load_history(session_id)

        pending = await self.relay.take(session_id)
        if pending is None:
            return
        self.model_id = pending.provider_id
        await self._start_round(pending.text, pending.attachments)

    async def send(self, text: str, attachments: Optional[List[Dict[str, Any]]] = None) -> Optional[str]:
        """
        Send one user turn to all agents.

        Without an open session a new one is created and the turn is relayed
        to it; the new session id is returned and the caller opens it.
        """
        if self.session_id is None:
            session_id = await self.api.create_session()
            await self.relay.stash(session_id, PendingSend(self.model_id, text, attachments or None))
            return session_id

        await self._start_round(text, attachments)
        return None

    async def _start_round(self, text: str, attachments: Optional[List[Dict[str, Any]]]) -> None:
        user_message_id = await self.api.save_user_message(self.session_id, text, attachments)
        parts = [MessagePart(type="text", text=text)] + file_ref_parts(attachments)
        for chat in self.chats:
            chat.append(UIMessage(id=user_message_id, role="user", parts=list(parts)))

        results = await asyncio.gather(*(chat.send() for chat in self.chats), return_exceptions=True)
        for chat, result in zip(self.chats, results):
            if isinstance(result, asyncio.CancelledError):
                logger.info(f"Agent {chat.agent_id} stream stopped")
            elif isinstance(result, Exception):
                logger.error(f"Agent {chat.agent_id} stream crashed: {result}")

    def stop_all(self) -> None:
        for chat in self.chats:
            chat.stop()
