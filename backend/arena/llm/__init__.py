"""LLM module - streaming gateway provider and message normalization."""

from .base import LLMProvider, LLMMessage, ResolvedFile, StreamUsage, UpstreamError
from .litellm_provider import LiteLLMProvider
from .factory import create_llm_provider
from .messages import extract_text, to_llm_messages

__all__ = [
    'LLMProvider',
    'LLMMessage',
    'ResolvedFile',
    'StreamUsage',
    'UpstreamError',
    'LiteLLMProvider',
    'create_llm_provider',
    'extract_text',
    'to_llm_messages',
]
