"""
Memory-augmented gateway agent.

Shared flow of the Mem0 and Supermemory agents: look up the user's memories
relevant to the latest user text, inject them as a system turn, stream the
reply from the LLM gateway, then record the exchange as new memories.
"""

import logging
from abc import abstractmethod
from typing import Any, AsyncGenerator, List, Optional

import httpx

from ..llm.base import LLMMessage, LLMProvider
from ..streaming.fragments import Fragment
from .base_agent import BaseAgent

logger = logging.getLogger(__name__)

MEMORY_PROMPT_HEADER = "Relevant memories about the user (use them when they help answer):"


def last_user_text(history: List[LLMMessage]) -> str:
    for msg in reversed(history):
        if msg.role == "user":
            return msg.text_content()
    return ""


def inject_memories(history: List[LLMMessage], memories: List[str]) -> List[LLMMessage]:
    """Prepend a system turn listing the memories; history is returned as-is when there are none."""
    if not memories:
        return list(history)
    lines = "\n".join(f"- {m}" for m in memories)
    return [LLMMessage.text("system", f"{MEMORY_PROMPT_HEADER}\n{lines}"), *history]


class MemoryAugmentedAgent(BaseAgent):
    """
    Base for agents whose memory layer sits beside the LLM gateway.
    Subclasses implement memory search and add against their provider.
    """

    missing_config_message: str = ""

    def __init__(
        self,
        llm_provider: Optional[LLMProvider],
        api_url: str,
        api_key: Optional[str],
        search_limit: int = 5,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._llm_provider = llm_provider
        self.api_url = api_url.rstrip("/")
        self.api_key = api_key
        self.search_limit = search_limit
        self.timeout = timeout
        self.transport = transport

    @property
    def is_configured(self) -> bool:
        return self._llm_provider is not None and bool(self.api_key)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    @abstractmethod
    async def search_memories(self, query: str, user_id: str) -> List[str]:
        """Memories of ``user_id`` relevant to ``query``."""
        pass

    @abstractmethod
    async def add_memory(self, user_text: str, assistant_text: str, user_id: str) -> None:
        """Record one exchange for ``user_id``."""
        pass

    async def _add_memory_best_effort(self, user_text: str, assistant_text: str, user_id: str) -> None:
        if not (user_text or assistant_text):
            return
        try:
            await self.add_memory(user_text, assistant_text, user_id)
        except Exception as e:
            logger.warning(
                f"Agent {self.agent_id} failed to add memory: {str(e)}",
                extra={"extra_fields": {"agent": self.agent_id, "user_id": user_id, "error": str(e)}}
            )

    async def stream(
        self,
        history: List[LLMMessage],
        model_id: str,
        user_id: str,
        assistant_message_id: str,
        profile: Optional[Any] = None,
    ) -> AsyncGenerator[Fragment, None]:
        if not self.is_configured:
            yield self.configuration_error(self.missing_config_message)
            return

        query = last_user_text(history)
        try:
            memories = await self.search_memories(query, user_id) if query else []
        except Exception as e:
            logger.error(
                f"Agent {self.agent_id} memory search failed: {str(e)}",
                exc_info=True,
                extra={"extra_fields": {"agent": self.agent_id, "user_id": user_id, "error": str(e)}}
            )
            yield Fragment.error(self.error_text(e))
            return

        logger.debug(f"Agent {self.agent_id} injected {len(memories)} memories for user {user_id}")
        messages = inject_memories(history, memories)
        tokens = self._llm_provider.chat_completion_stream(messages, model=model_id)

        async def remember(reply: str) -> None:
            await self._add_memory_best_effort(query, reply, user_id)

        async for fragment in self.stream_text(tokens, assistant_message_id, on_complete=remember):
            yield fragment
