"""
SQLAlchemy implementation of the message store.
Opens one AsyncSession per operation so callers never share a session
across requests or background stream completions.
"""

import logging
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .interface import MessageStoreInterface
from .records import MessageRecord, SessionRecord, utcnow

logger = logging.getLogger(__name__)

ROLES = ("user", "assistant")


class SqlMessageStore(MessageStoreInterface):
    """Message store backed by any SQLAlchemy async engine."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    async def create_session(
        self,
        session_id: Optional[str] = None,
        title: Optional[str] = None
    ) -> SessionRecord:
        now = utcnow()
        record = SessionRecord(
            id=session_id or str(uuid.uuid4()),
            title=title,
            created_at=now,
            updated_at=now,
        )
        async with self._session_factory() as session:
            session.add(record)
            await session.commit()
        logger.debug(f"Session created: {record.id}")
        return record

    async def get_session(self, session_id: str) -> Optional[SessionRecord]:
        async with self._session_factory() as session:
            return await session.get(SessionRecord, session_id)

    async def list_sessions(self) -> List[SessionRecord]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(SessionRecord).order_by(SessionRecord.created_at.desc())
            )
            return list(result.scalars().all())

    async def update_session(self, session_id: str, title: Optional[str] = None) -> Optional[SessionRecord]:
        async with self._session_factory() as session:
            record = await session.get(SessionRecord, session_id)
            if record is None:
                return None
            if title is not None:
                record.title = title
            record.updated_at = utcnow()
            await session.commit()
            return record

    async def delete_session(self, session_id: str) -> bool:
        async with self._session_factory() as session:
            # SQLite does not enforce ON DELETE CASCADE without a pragma
            await session.execute(delete(MessageRecord).where(MessageRecord.session_id == session_id))
            result = await session.execute(delete(SessionRecord).where(SessionRecord.id == session_id))
            await session.commit()
        deleted = result.rowcount > 0
        if deleted:
            logger.info(f"Session deleted: {session_id}")
        return deleted

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

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
        if role not in ROLES:
            raise ValueError(f"Invalid message role: {role}")
        if role == "assistant" and (not agent_id or not reply_to_message_id):
            raise ValueError("Assistant messages require agent_id and reply_to_message_id")
        if role == "user" and reply_to_message_id:
            raise ValueError("User messages cannot reply to another message")

        record = MessageRecord(
            id=message_id or str(uuid.uuid4()),
            session_id=session_id,
            role=role,
            agent_id=agent_id,
            provider_id=provider_id,
            content=content,
            attachments=attachments or None,
            meta=metadata,
            reply_to_message_id=reply_to_message_id,
            created_at=utcnow(),
        )
        async with self._session_factory() as session:
            session.add(record)
            await session.commit()
        return record

    async def get_messages_by_session_id(self, session_id: str) -> List[MessageRecord]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(MessageRecord)
                .where(MessageRecord.session_id == session_id)
                .order_by(MessageRecord.created_at.asc())
            )
            return list(result.scalars().all())

    async def get_message(self, message_id: str) -> Optional[MessageRecord]:
        async with self._session_factory() as session:
            return await session.get(MessageRecord, message_id)

    async def get_messages_by_reply_to(self, reply_to_message_id: str) -> List[MessageRecord]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(MessageRecord)
                .where(MessageRecord.reply_to_message_id == reply_to_message_id)
                .order_by(MessageRecord.created_at.asc())
            )
            return list(result.scalars().all())

    async def update_message_content(self, message_id: str, content: str) -> bool:
        return await self.update_message(message_id, content=content)

    async def update_message(
        self,
        message_id: str,
        content: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> bool:
        values: Dict[str, Any] = {}
        if content is not None:
            values["content"] = content
        if metadata is not None:
            values["meta"] = metadata
        if not values:
            return False
        async with self._session_factory() as session:
            result = await session.execute(
                update(MessageRecord).where(MessageRecord.id == message_id).values(**values)
            )
            await session.commit()
        return result.rowcount > 0

    async def append_message_content(self, message_id: str, delta: str) -> bool:
        async with self._session_factory() as session:
            result = await session.execute(
                update(MessageRecord)
                .where(MessageRecord.id == message_id)
                .values(content=MessageRecord.content + delta)
            )
            await session.commit()
        return result.rowcount > 0

    async def update_assistant_message(
        self,
        session_id: str,
        agent_id: str,
        reply_to_message_id: str,
        content: str
    ) -> bool:
        async with self._session_factory() as session:
            result = await session.execute(
                update(MessageRecord)
                .where(
                    MessageRecord.session_id == session_id,
                    MessageRecord.role == "assistant",
                    MessageRecord.agent_id == agent_id,
                    MessageRecord.reply_to_message_id == reply_to_message_id,
                )
                .values(content=content)
            )
            await session.commit()
        return result.rowcount > 0
