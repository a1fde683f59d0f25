"""
MemoryLake Agent - Anthropic Messages compatible endpoint with server-side memory.

The request is a plain Claude Messages call; memory scoping travels in the
x-memorylake-* headers built from the caller's profile.
"""

import logging
import time
from typing import Any, AsyncGenerator, Dict, List, Optional

import httpx

from ..core.catalog import MEMORYLAKE_AGENT_ID
from ..llm.base import LLMMessage, UpstreamError
from ..llm.sse import iter_sse_json, read_error_message
from ..models.chat import MemorylakeProfile
from ..streaming.fragments import Fragment
from ..streaming.translator import ClaudeStreamTranslator
from .base_agent import BaseAgent

logger = logging.getLogger(__name__)

ANTHROPIC_VERSION = "2023-06-01"


class MemoryLakeAgent(BaseAgent):
    """Streams from Memory Lake and translates Claude events into fragments."""

    agent_id = MEMORYLAKE_AGENT_ID
    display_name = "MemoryLake"

    def __init__(
        self,
        api_url: Optional[str],
        api_key: Optional[str],
        max_tokens: int = 4096,
        timeout: float = 120.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_url = api_url.rstrip("/") if api_url else None
        self.api_key = api_key
        self.max_tokens = max_tokens
        self.timeout = timeout
        self.transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self.api_url and self.api_key)

    def build_request(self, history: List[LLMMessage], model_id: str) -> Dict[str, Any]:
        """
        Claude request body.
        System turns are joined into the top-level ``system`` field; turns
        without text are dropped.
        """
        system_parts: List[str] = []
        messages: List[Dict[str, Any]] = []
        for msg in history:
            text = msg.text_content()
            if msg.role == "system":
                if text:
                    system_parts.append(text)
                continue
            if msg.role not in ("user", "assistant") or not text:
                continue
            messages.append({"role": msg.role, "content": text})

        body: Dict[str, Any] = {
            "model": model_id,
            "max_tokens": self.max_tokens,
            "messages": messages,
            "stream": True,
        }
        if system_parts:
            body["system"] = "\n\n".join(system_parts)
        return body

    def build_headers(self, profile: Optional[Any]) -> Dict[str, str]:
        headers = {
            "x-api-key": self.api_key or "",
            "anthropic-version": ANTHROPIC_VERSION,
            "content-type": "application/json",
            "accept": "text/event-stream",
        }
        parsed = MemorylakeProfile.parse(profile)
        if parsed is not None:
            headers.update(parsed.to_headers())
        return headers

    async def stream(
        self,
        history: List[LLMMessage],
        model_id: str,
        user_id: str,
        assistant_message_id: str,
        profile: Optional[Any] = None,
    ) -> AsyncGenerator[Fragment, None]:
        if not self.is_configured:
            yield self.configuration_error(
                "Memory Lake is not configured (MEMORYLAKE_API_URL, MEMORYLAKE_API_KEY)"
            )
            return

        start_time = time.time()
        translator = ClaudeStreamTranslator(assistant_message_id, self.message_metadata)
        url = f"{self.api_url}/v1/messages"
        body = self.build_request(history, model_id)

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                async with client.stream("POST", url, json=body, headers=self.build_headers(profile)) as response:
                    if response.status_code >= 400:
                        raise UpstreamError(await read_error_message(response), response.status_code)

                    async for event in iter_sse_json(response):
                        for fragment in translator.feed(event):
                            yield fragment
                        if translator.terminated:
                            break

            for fragment in translator.close():
                yield fragment

            logger.info(
                "MemoryLake stream completed",
                extra={"extra_fields": {
                    "agent": self.agent_id,
                    "model": model_id,
                    "finish_reason": translator.finish_reason,
                    "duration_ms": round((time.time() - start_time) * 1000, 2),
                }}
            )

        except Exception as e:
            logger.error(
                f"MemoryLake stream failed: {str(e)}",
                exc_info=True,
                extra={"extra_fields": {
                    "agent": self.agent_id,
                    "model": model_id,
                    "duration_ms": round((time.time() - start_time) * 1000, 2),
                    "error": str(e),
                }}
            )
            for fragment in translator.fail(self.error_text(e)):
                yield fragment
