"""
Message Store Interface - contract for session and message persistence.
The HTTP layer depends on this interface only, so the SQL implementation can
be swapped for any other backend.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from .records import MessageRecord, SessionRecord


class MessageStoreInterface(ABC):
    """
    Abstract message store.

    Every method is a single unit of work; implementations must not hold
    state between calls.
    """

    @abstractmethod
    async def create_session(
        self,
        session_id: Optional[str] = None,
        title: Optional[str] = None
    ) -> SessionRecord:
        """
        Create a session.

        Args:
            session_id: Explicit id; a new UUID is generated when omitted
            title: Optional initial title

        Returns:
            SessionRecord: The stored session
        """
        pass

    @abstractmethod
    async def get_session(self, session_id: str) -> Optional[SessionRecord]:
        pass

    @abstractmethod
    async def list_sessions(self) -> List[SessionRecord]:
        """All sessions, most recently created first."""
        pass

    @abstractmethod
    async def update_session(self, session_id: str, title: Optional[str] = None) -> Optional[SessionRecord]:
        """
        Update session fields and bump ``updated_at``.

        Returns:
            Optional[SessionRecord]: The updated session, or None if it doesn't exist
        """
        pass

    @abstractmethod
    async def delete_session(self, session_id: str) -> bool:
        """Delete a session together with all its messages."""
        pass

    @abstractmethod
    async def create_message(
        self,
        session_id: str,
        role: str,
        content: str = "",
        agent_id: Optional[str] = None,
        provider_id: Optional[str] = None,
        attachments: Optional[List[Dict[str, Any]]] = None,
        metadata: Optional[Dict[str, Any]] = None,
        reply_to_message_id: Optional[str] = None,
        message_id: Optional[str] = None
    ) -> MessageRecord:
        """
        Create a message.

        Assistant messages must carry ``agent_id`` and ``reply_to_message_id``;
        user messages must not carry ``reply_to_message_id``.

        Raises:
            ValueError: If the role/link combination is invalid
        """
        pass

    @abstractmethod
    async def get_messages_by_session_id(self, session_id: str) -> List[MessageRecord]:
        """Messages of a session, oldest first."""
        pass

    @abstractmethod
    async def get_message(self, message_id: str) -> Optional[MessageRecord]:
        pass

    @abstractmethod
    async def get_messages_by_reply_to(self, reply_to_message_id: str) -> List[MessageRecord]:
        """Assistant messages answering the given user message."""
        pass

    @abstractmethod
    async def update_message_content(self, message_id: str, content: str) -> bool:
        pass

    @abstractmethod
    async def update_message(
        self,
        message_id: str,
        content: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> bool:
        """Update content and/or metadata; fields left as None are untouched."""
        pass

    @abstractmethod
    async def append_message_content(self, message_id: str, delta: str) -> bool:
        pass

    @abstractmethod
    async def update_assistant_message(
        self,
        session_id: str,
        agent_id: str,
        reply_to_message_id: str,
        content: str
    ) -> bool:
        """Set the content of the assistant message identified by its round and agent."""
        pass
