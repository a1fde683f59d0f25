"""
Agent and model catalogues.

The three agents are fixed; the model list backs the model selector. All
three agents of one round share the model picked by the user.
"""

from dataclasses import dataclass
from typing import List, Literal, Optional, Tuple

AgentId = Literal["memorylake", "mem0", "supermemory"]
Vendor = Literal["openai", "anthropic"]


@dataclass(frozen=True)
class AgentInfo:
    agent_id: str
    display_name: str


@dataclass(frozen=True)
class ModelInfo:
    model_id: str
    display_name: str
    group: str
    vendor: str


AGENTS: List[AgentInfo] = [
    AgentInfo("memorylake", "MemoryLake"),
    AgentInfo("mem0", "Mem0"),
    AgentInfo("supermemory", "Supermemory"),
]

# Display order is also round order: agent 1 drives round assembly.
AGENT_IDS: Tuple[str, ...] = tuple(a.agent_id for a in AGENTS)

# The only agent that reads the Memory Lake profile
MEMORYLAKE_AGENT_ID = "memorylake"

MODELS: List[ModelInfo] = [
    ModelInfo("claude-haiku-4-5-20251001", "Claude 4.5 Haiku", "Anthropic", "anthropic"),
    ModelInfo("claude-sonnet-4-5-20250929", "Claude 4.5 Sonnet", "Anthropic", "anthropic"),
    ModelInfo("gpt-5-mini", "GPT-5 Mini", "OpenAI", "openai"),
    ModelInfo("gpt-5.2", "GPT-5.2", "OpenAI", "openai"),
]

_IMAGE_PREFIX = "image/"
_PDF = "application/pdf"


def get_model(model_id: str) -> Optional[ModelInfo]:
    return next((m for m in MODELS if m.model_id == model_id), None)


def model_vendor(model_id: str) -> str:
    """Vendor whose file rules apply to model_id (unknown ids fall back on prefix)."""
    known = get_model(model_id)
    if known:
        return known.vendor
    lowered = model_id.lower()
    if lowered.startswith("gpt") or lowered.startswith("o"):
        return "openai"
    return "anthropic"


def vendor_supports_file_type(vendor: str, media_type: str) -> bool:
    """Whether the vendor accepts this media type as a file part at all."""
    media_type = media_type.strip().lower()
    if media_type.startswith(_IMAGE_PREFIX) or media_type == _PDF:
        return True
    if vendor == "anthropic":
        return media_type == "text/plain"
    return media_type in ("audio/wav", "audio/x-wav", "audio/mpeg", "audio/mp3")


def vendor_supports_file_url(vendor: str, media_type: str) -> bool:
    """Whether the vendor can fetch this media type from a URL itself."""
    media_type = media_type.strip().lower()
    if media_type.startswith(_IMAGE_PREFIX):
        return True
    return vendor == "anthropic" and media_type == _PDF


def supported_types_hint(vendor: str) -> str:
    extra = "txt (text/plain)." if vendor == "anthropic" else "audio (wav/mp3)."
    return f"Supported: image/*, PDF; {extra}"
