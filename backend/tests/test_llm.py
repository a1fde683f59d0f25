"""
Unit tests for the LLM module.
Tests LLMMessage, message normalization, the LiteLLM provider, and factory.
"""

import json

import httpx
import pytest

from arena.llm.base import LLMMessage, ResolvedFile, UpstreamError
from arena.llm.factory import create_llm_provider
from arena.llm.litellm_provider import LiteLLMProvider
from arena.llm.messages import extract_text, to_llm_messages
from arena.models.chat import UIMessage


def sse_body(*chunks) -> bytes:
    lines = [f"data: {json.dumps(c)}\n\n" for c in chunks]
    lines.append("data: [DONE]\n\n")
    return "".join(lines).encode()


def delta_chunk(text):
    return {"choices": [{"index": 0, "delta": {"content": text}}]}


class TestLLMMessage:
    """Tests for LLMMessage dataclass."""

    def test_text_message(self):
        msg = LLMMessage.text("user", "Hello")
        assert msg.role == "user"
        assert msg.content == "Hello"

    def test_multimodal_with_image_url(self):
        msg = LLMMessage.multimodal(
            "user", "What is this?",
            files=[ResolvedFile(data="https://example.com/img.jpg", media_type="image/jpeg", is_url=True)],
        )
        assert msg.content[0] == {"type": "text", "text": "What is this?"}
        assert msg.content[1]["type"] == "image_url"
        assert msg.content[1]["image_url"]["url"] == "https://example.com/img.jpg"

    def test_multimodal_with_base64_pdf(self):
        msg = LLMMessage.multimodal(
            "user", "Summarize",
            files=[ResolvedFile(data="JVBERi0=", media_type="application/pdf", filename="a.pdf")],
        )
        file_part = msg.content[1]
        assert file_part["type"] == "file"
        assert file_part["file"]["file_data"] == "data:application/pdf;base64,JVBERi0="
        assert file_part["file"]["filename"] == "a.pdf"

    def test_multimodal_with_base64_audio(self):
        msg = LLMMessage.multimodal("user", "Listen", files=[ResolvedFile(data="UklG", media_type="audio/wav")])
        assert msg.content[1] == {"type": "input_audio", "input_audio": {"data": "UklG", "format": "wav"}}

    def test_text_content_of_multimodal(self):
        msg = LLMMessage.multimodal("user", "Just text")
        assert msg.text_content() == "Just text"


class TestMessageNormalization:
    """Tests for UI message -> LLM message conversion."""

    def test_extract_text_skips_data_parts(self):
        parts = [
            {"type": "text", "text": "Hello "},
            {"type": "data-file-ref", "data": {"drive_item_id": "d1"}},
            {"type": "text", "text": "world"},
        ]
        assert extract_text(parts) == "Hello world"

    def test_to_llm_messages(self):
        messages = [
            UIMessage(role="user", parts=[{"type": "text", "text": "Hi"}]),
            UIMessage(role="assistant", parts=[{"type": "text", "text": "Hello"}]),
        ]
        result = to_llm_messages(messages)
        assert [(m.role, m.content) for m in result] == [("user", "Hi"), ("assistant", "Hello")]


class TestLiteLLMProvider:
    """Tests for the streaming gateway provider."""

    @pytest.mark.asyncio
    async def test_streams_content_and_usage(self):
        captured = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["url"] = str(request.url)
            captured["auth"] = request.headers["authorization"]
            captured["body"] = json.loads(request.content)
            body = sse_body(
                delta_chunk("Hel"),
                delta_chunk("lo"),
                {"choices": [], "usage": {"prompt_tokens": 3, "completion_tokens": 2, "total_tokens": 5}},
            )
            return httpx.Response(200, content=body, headers={"content-type": "text/event-stream"})

        provider = LiteLLMProvider(
            api_key="k", base_url="https://gateway.test/v1/", transport=httpx.MockTransport(handler)
        )
        tokens = [t async for t in provider.chat_completion_stream(
            [LLMMessage.text("user", "Hi")], model="gpt-5-mini"
        )]

        assert tokens == ["Hel", "lo"]
        assert captured["url"] == "https://gateway.test/v1/chat/completions"
        assert captured["auth"] == "Bearer k"
        assert captured["body"]["stream"] is True
        assert captured["body"]["model"] == "gpt-5-mini"
        assert captured["body"]["messages"] == [{"role": "user", "content": "Hi"}]
        assert provider.last_usage.total_tokens == 5

    @pytest.mark.asyncio
    async def test_http_error_raises_upstream_error(self):
        def handler(request):
            return httpx.Response(401, json={"error": {"message": "Invalid API key"}})

        provider = LiteLLMProvider(api_key="k", base_url="https://gateway.test", transport=httpx.MockTransport(handler))
        with pytest.raises(UpstreamError, match="Invalid API key") as exc_info:
            async for _ in provider.chat_completion_stream([LLMMessage.text("user", "Hi")], model="m"):
                pass
        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_error_chunk_raises(self):
        def handler(request):
            return httpx.Response(200, content=sse_body(delta_chunk("a"), {"error": {"message": "rate limited"}}))

        provider = LiteLLMProvider(api_key="k", base_url="https://gateway.test", transport=httpx.MockTransport(handler))
        received = []
        with pytest.raises(UpstreamError, match="rate limited"):
            async for token in provider.chat_completion_stream([LLMMessage.text("user", "Hi")], model="m"):
                received.append(token)
        assert received == ["a"]


class TestLLMFactory:
    """Tests for the provider factory."""

    def test_create_provider(self):
        provider = create_llm_provider("https://gateway.test", "k", max_tokens=100)
        assert isinstance(provider, LiteLLMProvider)
        assert provider.default_max_tokens == 100

    @pytest.mark.parametrize("url,key", [(None, "k"), ("https://gateway.test", None), ("", "")])
    def test_unconfigured_returns_none(self, url, key):
        assert create_llm_provider(url, key) is None
