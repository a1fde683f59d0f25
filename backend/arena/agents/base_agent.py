"""
Base Agent Class - Abstract base for all arena agents.

An agent turns a conversation into a stream of response fragments. Whatever
happens upstream, the stream ends with exactly one terminal fragment
(``finish`` or ``error``); agents never raise out of ``stream``.
"""

import logging
import time
from abc import ABC, abstractmethod
from typing import Any, AsyncGenerator, AsyncIterator, Awaitable, Callable, Dict, List, Optional

import httpx

from ..llm.base import LLMMessage, UpstreamError
from ..streaming.fragments import Fragment

logger = logging.getLogger(__name__)

OnComplete = Callable[[str], Awaitable[None]]


class BaseAgent(ABC):
    """
    Abstract base class for all arena agents.
    Each agent implements ``stream``.
    """

    agent_id: str = ""
    display_name: str = ""
    # Whether resolved file content may be merged into the last user turn
    accepts_files: bool = False

    @property
    def message_metadata(self) -> Dict[str, Any]:
        return {"agentId": self.agent_id}

    @abstractmethod
    def stream(
        self,
        history: List[LLMMessage],
        model_id: str,
        user_id: str,
        assistant_message_id: str,
        profile: Optional[Any] = None,
    ) -> AsyncIterator[Fragment]:
        """
        Stream the reply to ``history``.

        Args:
            history: Normalized conversation, last turn from the user
            model_id: Model picked for the round
            user_id: Caller identity; scopes the agent's memories
            assistant_message_id: Id of the pre-created assistant row, echoed in ``start``
            profile: Agent specific profile (Memory Lake ids)

        Yields:
            Fragment: start, text blocks, then one finish or error
        """
        pass

    def error_text(self, error: Exception) -> str:
        """User-presentable text for an upstream failure."""
        if isinstance(error, UpstreamError):
            return str(error)
        if isinstance(error, httpx.TimeoutException):
            return f"{self.display_name} request timed out"
        if isinstance(error, httpx.HTTPError):
            return f"{self.display_name} request failed: {error}"
        return str(error) or error.__class__.__name__

    def configuration_error(self, message: str) -> Fragment:
        logger.warning(f"Agent {self.agent_id} not configured: {message}")
        return Fragment.error(message)

    async def stream_text(
        self,
        tokens: AsyncIterator[str],
        assistant_message_id: str,
        on_complete: Optional[OnComplete] = None,
    ) -> AsyncGenerator[Fragment, None]:
        """
        Wrap a plain token stream into fragments.

        Emits start, one text block holding every token, and finish. A failure
        of the token stream ends it with an error fragment instead; a block
        already opened is left unclosed. ``on_complete`` receives the full text
        before the finish fragment is emitted.
        """
        start_time = time.time()
        block_id = f"text-{assistant_message_id}"
        opened = False
        parts: List[str] = []

        yield Fragment.start(assistant_message_id, self.message_metadata)
        try:
            async for token in tokens:
                if not token:
                    continue
                if not opened:
                    opened = True
                    yield Fragment.text_start(block_id)
                parts.append(token)
                yield Fragment.text_delta(block_id, token)
        except Exception as e:
            logger.error(
                f"Agent {self.agent_id} stream failed: {str(e)}",
                exc_info=True,
                extra={"extra_fields": {"agent": self.agent_id, "error": str(e)}}
            )
            yield Fragment.error(self.error_text(e))
            return

        if opened:
            yield Fragment.text_end(block_id)

        text = "".join(parts)
        if on_complete is not None:
            await on_complete(text)

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                f"Agent {self.agent_id} completed stream: length={len(text)} chars, "
                f"duration_ms={round((time.time() - start_time) * 1000, 2)}"
            )
        yield Fragment.finish("stop", self.message_metadata)
