"""
Pending-send relay.

The first message of a new session is sent before the session view exists:
the sender creates the session, stashes the message here and switches to
the session, which takes the entry (exactly once) and sends it.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from ..config import settings
from ..storage.relay_store import FileKeyValueStore, KeyValueStore

logger = logging.getLogger(__name__)

RELAY_KEY_PREFIX = "chat-pending-streams-"


@dataclass
class PendingSend:
    provider_id: str
    text: str
    attachments: Optional[List[Dict[str, Any]]] = None

    def to_json(self) -> str:
        data: Dict[str, Any] = {"providerId": self.provider_id, "text": self.text}
        if self.attachments is not None:
            data["attachments"] = self.attachments
        return json.dumps(data, ensure_ascii=False)

    @classmethod
    def from_json(cls, raw: str) -> "PendingSend":
        """
        Raises:
            ValueError: If raw is not a well-formed entry
        """
        data = json.loads(raw)
        if not isinstance(data, dict):
            raise ValueError("pending send must be an object")
        provider_id, text = data.get("providerId"), data.get("text")
        if not isinstance(provider_id, str) or not isinstance(text, str):
            raise ValueError("pending send needs providerId and text")
        attachments = data.get("attachments")
        if attachments is not None and not isinstance(attachments, list):
            raise ValueError("attachments must be a list")
        return cls(provider_id=provider_id, text=text, attachments=attachments)


class PendingSendRelay:
    """Stash and take pending first messages, keyed by session id."""

    def __init__(self, store: KeyValueStore):
        self.store = store

    @staticmethod
    def key(session_id: str) -> str:
        return f"{RELAY_KEY_PREFIX}{session_id}"

    async def stash(self, session_id: str, pending: PendingSend) -> None:
        await self.store.set(self.key(session_id), pending.to_json())

    async def take(self, session_id: str) -> Optional[PendingSend]:
        """Consume the entry; malformed entries are dropped and yield None."""
        raw = await self.store.take(self.key(session_id))
        if raw is None:
            return None
        try:
            return PendingSend.from_json(raw)
        except ValueError as e:
            logger.warning(f"Discarding malformed pending send for session {session_id}: {e}")
            return None


def create_pending_send_relay(base_dir: Optional[str] = None) -> PendingSendRelay:
    """Relay backed by files under RELAY_STORAGE_PATH."""
    return PendingSendRelay(FileKeyValueStore(base_dir or settings.relay_storage_path))
