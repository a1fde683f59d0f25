"""
LiteLLM gateway provider.
Streams OpenAI-compatible chat completions for both OpenAI and Anthropic
models through a single LiteLLM proxy.
"""

import httpx
import logging
import time
from typing import Optional, List, Dict, Any, AsyncGenerator

from .base import LLMProvider, LLMMessage, StreamUsage, UpstreamError
from .sse import iter_sse_json, read_error_message

logger = logging.getLogger(__name__)


class LiteLLMProvider(LLMProvider):
    """
    Provider for an OpenAI-compatible ``/chat/completions`` endpoint.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str,
        default_max_tokens: int = 4096,
        timeout: float = 120.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(api_key, base_url, default_max_tokens, timeout)
        self.transport = transport
        self.last_usage: Optional[StreamUsage] = None

    def _get_headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    async def chat_completion_stream(
        self,
        messages: List[LLMMessage],
        model: str,
        max_tokens: Optional[int] = None,
        **kwargs
    ) -> AsyncGenerator[str, None]:
        """Stream completion tokens from the gateway."""
        start_time = time.time()
        url = f"{self.base_url}/chat/completions"
        payload: Dict[str, Any] = {
            "model": model,
            "messages": self._format_messages(messages),
            "max_tokens": max_tokens or self.default_max_tokens,
            "stream": True,
            "stream_options": {"include_usage": True},
        }
        payload.update(kwargs)

        if logger.isEnabledFor(logging.DEBUG):
            message_summary = f"{len(messages)} messages"
            if messages:
                message_summary += f", last: {messages[-1].text_content()[:200]}"
            logger.debug(f"LLM API stream starting: provider=litellm, model={model}, {message_summary}")

        content_length = 0
        usage: Dict[str, Any] = {}

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                async with client.stream("POST", url, json=payload, headers=self._get_headers()) as response:
                    if response.status_code >= 400:
                        raise UpstreamError(await read_error_message(response), response.status_code)

                    async for chunk in iter_sse_json(response):
                        if chunk.get("error"):
                            error = chunk["error"]
                            message = error.get("message") if isinstance(error, dict) else str(error)
                            raise UpstreamError(message or "LLM stream error")

                        choices = chunk.get("choices") or []
                        if choices:
                            content = (choices[0].get("delta") or {}).get("content")
                            if content:
                                content_length += len(content)
                                yield content

                        if chunk.get("usage"):
                            usage = chunk["usage"]

            self.last_usage = StreamUsage(
                prompt_tokens=usage.get("prompt_tokens", 0),
                completion_tokens=usage.get("completion_tokens", 0),
                total_tokens=usage.get("total_tokens", 0),
                raw=usage,
            )
            logger.info(
                "LLM API stream completed",
                extra={"extra_fields": {
                    "provider": "litellm",
                    "model": model,
                    "prompt_tokens": self.last_usage.prompt_tokens,
                    "completion_tokens": self.last_usage.completion_tokens,
                    "total_tokens": self.last_usage.total_tokens,
                    "duration_ms": round((time.time() - start_time) * 1000, 2),
                    "content_length": content_length,
                }}
            )

        except Exception as e:
            logger.error(
                f"LLM API stream failed: {str(e)}",
                exc_info=True,
                extra={"extra_fields": {
                    "provider": "litellm",
                    "model": model,
                    "duration_ms": round((time.time() - start_time) * 1000, 2),
                    "error": str(e),
                }}
            )
            raise
