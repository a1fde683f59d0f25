"""
LLM Provider Factory - Creates the configured gateway provider instance.
"""

from typing import Optional

import httpx

from .base import LLMProvider
from .litellm_provider import LiteLLMProvider


def create_llm_provider(
    base_url: Optional[str],
    api_key: Optional[str],
    max_tokens: int = 4096,
    timeout: float = 120.0,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Optional[LLMProvider]:
    """
    Create the LiteLLM gateway provider.

    Args:
        base_url: Gateway base URL (e.g. https://litellm.internal/v1)
        api_key: Gateway API key
        max_tokens: Default max output tokens
        timeout: Request timeout in seconds
        transport: Optional httpx transport (tests)

    Returns:
        LLMProvider instance, or None if the gateway is not configured
    """
    if not (base_url and api_key):
        return None
    return LiteLLMProvider(
        api_key=api_key,
        base_url=base_url,
        default_max_tokens=max_tokens,
        timeout=timeout,
        transport=transport,
    )
