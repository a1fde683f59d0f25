"""
Stream Dispatcher - routes one chat request to its agent.

The dispatcher normalizes the UI history, resolves attachments for agents
that take files, and merges the agent's fragments into the response writer.
It has no persistence side effects; failures are reported through the
``on_stream_error`` hook of the request.
"""

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional

import httpx

from ..config.settings import Settings
from ..llm.base import LLMMessage
from ..llm.factory import create_llm_provider
from ..llm.messages import to_llm_messages
from ..models.chat import UIMessage
from ..services.arena_client import ArenaClient
from ..streaming.fragments import ERROR, Fragment
from ..streaming.writer import StreamWriter
from .attachments import AttachmentError, resolve_file_refs
from .base_agent import BaseAgent
from .mem0_agent import Mem0Agent
from .memorylake_agent import MemoryLakeAgent
from .supermemory_agent import SupermemoryAgent

logger = logging.getLogger(__name__)

OnStreamError = Callable[[str], Awaitable[None]]


@dataclass
class ChatStreamParams:
    """Everything an agent stream needs for one request."""
    agent_id: str
    model_id: str
    user_id: str
    messages: List[UIMessage]
    assistant_message_id: str
    memorylake_profile: Optional[Any] = None
    on_stream_error: Optional[OnStreamError] = None


class StreamDispatcher:
    """
    agentId -> agent mapping plus attachment resolution.
    """

    def __init__(
        self,
        agents: Dict[str, BaseAgent],
        arena_client: Optional[ArenaClient] = None,
        attachment_size_limit: int = 20 * 1024 * 1024,
        download_transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.agents = agents
        self.arena_client = arena_client
        self.attachment_size_limit = attachment_size_limit
        self.download_transport = download_transport

    def get_agent(self, agent_id: str) -> Optional[BaseAgent]:
        return self.agents.get(agent_id)

    async def _report_error(self, params: ChatStreamParams, error_text: str) -> None:
        if params.on_stream_error is None:
            return
        try:
            await params.on_stream_error(error_text)
        except Exception as e:
            logger.error(
                f"on_stream_error hook failed: {str(e)}",
                exc_info=True,
                extra={"extra_fields": {"agent": params.agent_id, "message_id": params.assistant_message_id}}
            )

    async def _fail(self, writer: StreamWriter, params: ChatStreamParams, error_text: str) -> None:
        writer.write(Fragment.error(error_text))
        await self._report_error(params, error_text)

    async def _build_history(self, agent: BaseAgent, params: ChatStreamParams) -> List[LLMMessage]:
        history = to_llm_messages(params.messages)
        if not agent.accepts_files or not params.messages or params.messages[-1].role != "user":
            return history

        files = await resolve_file_refs(
            params.messages[-1].file_refs(),
            params.model_id,
            params.user_id,
            self.arena_client,
            size_limit=self.attachment_size_limit,
            transport=self.download_transport,
        )
        if files:
            last = history[-1]
            history[-1] = LLMMessage.multimodal(last.role, last.text_content(), files)
        return history

    async def _fail_unexpected(
        self, writer: StreamWriter, params: ChatStreamParams, agent: BaseAgent, error: Exception
    ) -> None:
        logger.error(
            f"Agent {params.agent_id} dispatch failed: {str(error)}",
            exc_info=True,
            extra={"extra_fields": {"agent": params.agent_id, "message_id": params.assistant_message_id}}
        )
        await self._fail(writer, params, agent.error_text(error))

    async def dispatch(self, writer: StreamWriter, params: ChatStreamParams) -> None:
        """
        Write the agent's fragments for ``params`` into ``writer``; always ends with a terminal.
        Every error terminal, expected or not, is also passed to ``on_stream_error``.
        """
        agent = self.get_agent(params.agent_id)
        if agent is None:
            logger.warning(f"Unknown agent requested: {params.agent_id}")
            await self._fail(writer, params, f"Unknown agent: {params.agent_id}")
            return

        try:
            history = await self._build_history(agent, params)
        except AttachmentError as e:
            logger.info(
                f"Attachment resolution failed: {str(e)}",
                extra={"extra_fields": {"agent": params.agent_id, "user_id": params.user_id}}
            )
            await self._fail(writer, params, str(e))
            return
        except Exception as e:
            await self._fail_unexpected(writer, params, agent, e)
            return

        logger.info(
            f"Dispatching stream to {params.agent_id}",
            extra={"extra_fields": {
                "agent": params.agent_id,
                "model": params.model_id,
                "user_id": params.user_id,
                "message_id": params.assistant_message_id,
                "turns": len(history),
            }}
        )
        try:
            await writer.merge(agent.stream(
                history,
                params.model_id,
                params.user_id,
                params.assistant_message_id,
                params.memorylake_profile,
            ))
        except Exception as e:
            if not writer.terminated:
                await self._fail_unexpected(writer, params, agent, e)
                return
            logger.warning(f"Agent {params.agent_id} stream raised after its terminal: {str(e)}")

        terminal = writer.terminal
        if terminal is None:
            await self._fail(writer, params, f"{params.agent_id} stream ended unexpectedly")
        elif terminal.type == ERROR:
            await self._report_error(params, terminal.error_text or "")


def build_default_dispatcher(
    config: Settings,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> StreamDispatcher:
    """
    Wire the three agents from settings.

    Args:
        config: Application settings
        transport: Optional httpx transport shared by every upstream client (tests)
    """
    llm_provider = create_llm_provider(
        config.litellm_api_url,
        config.litellm_api_key,
        max_tokens=config.max_output_tokens,
        timeout=config.llm_timeout,
        transport=transport,
    )
    agents: Dict[str, BaseAgent] = {
        "memorylake": MemoryLakeAgent(
            config.memorylake_api_url,
            config.memorylake_api_key,
            max_tokens=config.max_output_tokens,
            timeout=config.llm_timeout,
            transport=transport,
        ),
        "mem0": Mem0Agent(
            llm_provider,
            config.mem0_api_url,
            config.mem0_api_key,
            search_limit=config.memory_search_limit,
            transport=transport,
        ),
        "supermemory": SupermemoryAgent(
            llm_provider,
            config.supermemory_api_url,
            config.supermemory_api_key,
            search_limit=config.memory_search_limit,
            transport=transport,
        ),
    }
    arena_client = None
    if config.arena_api_base:
        arena_client = ArenaClient(config.arena_api_base, timeout=config.arena_timeout, transport=transport)
    return StreamDispatcher(
        agents,
        arena_client=arena_client,
        attachment_size_limit=config.attachment_base64_limit_bytes,
        download_transport=transport,
    )
