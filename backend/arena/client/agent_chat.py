"""
Per-agent chat state.

One AgentChat exists per agent of the arena. It owns that agent's message
list and status, and changes them only in response to fragments of its own
stream, so the three agents progress and fail independently.
"""

import asyncio
import enum
import logging
from typing import AsyncGenerator, Callable, Dict, List, Optional

import httpx

from ..models.chat import MessagePart, UIMessage
from ..streaming.fragments import ERROR, FINISH, START, TEXT_DELTA, TEXT_END, TEXT_START, Fragment
from .api import ChatClientError

logger = logging.getLogger(__name__)

StreamFn = Callable[[List[UIMessage]], AsyncGenerator[Fragment, None]]


class ChatStatus(str, enum.Enum):
    IDLE = "idle"
    SUBMITTED = "submitted"
    STREAMING = "streaming"
    READY = "ready"
    ERROR = "error"


class AgentChat:
    """
    Message list and status of one agent.

    Status: ``send`` -> submitted; first text-delta -> streaming;
    finish -> ready; error -> error; ``stop`` -> ready.
    """

    def __init__(self, agent_id: str, stream_fn: StreamFn):
        self.agent_id = agent_id
        self._stream_fn = stream_fn
        self.messages: List[UIMessage] = []
        self.status = ChatStatus.IDLE
        self.error: Optional[str] = None
        self._task: Optional[asyncio.Task] = None
        self._pending_id: Optional[str] = None
        self._pending_metadata: Dict = {}
        self._assistant: Optional[UIMessage] = None
        self._blocks: Dict[str, MessagePart] = {}

    def set_messages(self, messages: List[UIMessage]) -> None:
        self.messages = list(messages)

    def append(self, message: UIMessage) -> None:
        self.messages.append(message)

    # -- fragment handling ------------------------------------------------

    def _ensure_assistant(self) -> UIMessage:
        if self._assistant is None:
            metadata = dict(self._pending_metadata)
            metadata.setdefault("agentId", self.agent_id)
            self._assistant = UIMessage(id=self._pending_id, role="assistant", parts=[], metadata=metadata)
            self.messages.append(self._assistant)
        return self._assistant

    def _block(self, block_id: Optional[str]) -> MessagePart:
        key = block_id or ""
        part = self._blocks.get(key)
        if part is None:
            part = MessagePart(type="text", text="")
            self._ensure_assistant().parts.append(part)
            self._blocks[key] = part
        return part

    def apply(self, fragment: Fragment) -> None:
        """Apply one fragment of this agent's stream."""
        if fragment.type == START:
            self._pending_id = fragment.message_id
            self._pending_metadata = dict(fragment.message_metadata or {})
        elif fragment.type == TEXT_START:
            self._block(fragment.id)
        elif fragment.type == TEXT_DELTA:
            part = self._block(fragment.id)
            part.text = (part.text or "") + (fragment.delta or "")
            if self.status is ChatStatus.SUBMITTED:
                self.status = ChatStatus.STREAMING
        elif fragment.type == TEXT_END:
            self._blocks.pop(fragment.id or "", None)
        elif fragment.type == FINISH:
            if self._assistant is not None and fragment.message_metadata:
                self._assistant.metadata = {**(self._assistant.metadata or {}), **fragment.message_metadata}
            self.status = ChatStatus.READY
        elif fragment.type == ERROR:
            self.error = fragment.error_text or "Unknown error"
            self.status = ChatStatus.ERROR

    # -- lifecycle --------------------------------------------------------

    def _reset_stream_state(self) -> None:
        self._pending_id = None
        self._pending_metadata = {}
        self._assistant = None
        self._blocks = {}

    async def send(self) -> None:
        """Stream a reply to the current message list."""
        self._task = asyncio.current_task()
        self._reset_stream_state()
        self.status = ChatStatus.SUBMITTED
        self.error = None
        stream = self._stream_fn(list(self.messages))
        terminated = False
        try:
            # Read to [DONE]: the server persists the reply after the terminal fragment
            async for fragment in stream:
                if terminated:
                    continue
                self.apply(fragment)
                terminated = fragment.is_terminal
        except asyncio.CancelledError:
            self.status = ChatStatus.READY
            raise
        except (ChatClientError, httpx.HTTPError) as e:
            logger.warning(f"Agent {self.agent_id} stream request failed: {e}")
            self.error = str(e) or e.__class__.__name__
            self.status = ChatStatus.ERROR
            return
        finally:
            self._task = None
            await stream.aclose()

        if self.status in (ChatStatus.SUBMITTED, ChatStatus.STREAMING):
            self.status = ChatStatus.READY

    def stop(self) -> None:
        """Cancel the in-flight stream, if any."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
        if self.status in (ChatStatus.SUBMITTED, ChatStatus.STREAMING):
            self.status = ChatStatus.READY
