"""
LLM Provider Base - shared message model and streaming provider contract.
Supports multimodal user turns (text + resolved files).
"""

from abc import ABC, abstractmethod
from typing import Dict, Any, Optional, List, Union, AsyncGenerator
from dataclasses import dataclass, field


class UpstreamError(Exception):
    """An upstream API answered with a failure; the message is user-presentable."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class ResolvedFile:
    """
    File content ready to hand to a model.

    ``data`` is either a URL the model fetches itself (``is_url``) or the
    base64-encoded bytes.
    """
    data: str
    media_type: str
    filename: Optional[str] = None
    is_url: bool = False

    def data_uri(self) -> str:
        if self.is_url:
            return self.data
        return f"data:{self.media_type};base64,{self.data}"


@dataclass
class LLMMessage:
    """
    One conversation turn.
    Content is plain text or a list of OpenAI-style content parts.
    """
    role: str  # "system", "user", "assistant"
    content: Union[str, List[Dict[str, Any]]]

    @staticmethod
    def text(role: str, text: str) -> "LLMMessage":
        """Create a text-only message."""
        return LLMMessage(role=role, content=text)

    @staticmethod
    def multimodal(role: str, text: str, files: Optional[List[ResolvedFile]] = None) -> "LLMMessage":
        """
        Create a message with text followed by file parts.

        Args:
            role: Message role
            text: Text content
            files: Resolved files (URLs or base64 payloads)
        """
        content_parts: List[Dict[str, Any]] = [{"type": "text", "text": text}]
        for f in files or []:
            content_parts.append(file_content_part(f))
        return LLMMessage(role=role, content=content_parts)

    def text_content(self) -> str:
        """Concatenated text of the message, ignoring non-text parts."""
        if isinstance(self.content, str):
            return self.content
        return "".join(
            p.get("text", "") for p in self.content
            if p.get("type") == "text" and isinstance(p.get("text"), str)
        )


def file_content_part(f: ResolvedFile) -> Dict[str, Any]:
    """OpenAI chat-completions content part for a resolved file."""
    media_type = f.media_type.lower()
    if media_type.startswith("image/"):
        return {"type": "image_url", "image_url": {"url": f.data_uri()}}
    if media_type.startswith("audio/") and not f.is_url:
        audio_format = "wav" if "wav" in media_type else "mp3"
        return {"type": "input_audio", "input_audio": {"data": f.data, "format": audio_format}}
    file_part: Dict[str, Any] = {"format": f.media_type}
    if f.is_url:
        file_part["file_id"] = f.data
    else:
        file_part["file_data"] = f.data_uri()
    if f.filename:
        file_part["filename"] = f.filename
    return {"type": "file", "file": file_part}


@dataclass
class StreamUsage:
    """Token usage reported at the end of a stream."""
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
    raw: Dict[str, Any] = field(default_factory=dict)


class LLMProvider(ABC):
    """
    Abstract base class for streaming LLM providers.
    """

    def __init__(self, api_key: str, base_url: str, default_max_tokens: int = 4096,
                 timeout: float = 120.0):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.default_max_tokens = default_max_tokens
        self.timeout = timeout

    @abstractmethod
    async def chat_completion_stream(
        self,
        messages: List[LLMMessage],
        model: str,
        max_tokens: Optional[int] = None,
        **kwargs
    ) -> AsyncGenerator[str, None]:
        """
        Stream completion text.

        Args:
            messages: Conversation turns (multimodal allowed)
            model: Model id understood by the provider
            max_tokens: Max tokens override
            **kwargs: Additional provider-specific parameters

        Yields:
            str: Text chunks in arrival order
        """
        pass

    def _format_messages(self, messages: List[LLMMessage]) -> List[Dict[str, Any]]:
        """Convert LLMMessage list to API-compatible format."""
        return [{"role": m.role, "content": m.content} for m in messages]
