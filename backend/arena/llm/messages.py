"""
Normalization of chat UI messages into provider-neutral LLM messages.
"""

from typing import Any, Iterable, List

from .base import LLMMessage

MODEL_ROLES = ("system", "user", "assistant")


def _field(part: Any, name: str) -> Any:
    if isinstance(part, dict):
        return part.get(name)
    return getattr(part, name, None)


def extract_text(parts: Iterable[Any]) -> str:
    """Concatenate the text of ``text`` parts; every other part type is ignored."""
    return "".join(
        _field(p, "text") for p in parts or []
        if _field(p, "type") == "text" and isinstance(_field(p, "text"), str)
    )


def to_llm_messages(ui_messages: Iterable[Any]) -> List[LLMMessage]:
    """
    Map UI messages (role + parts) to text LLM messages.

    Data parts such as ``data-file-ref`` never reach the model; attachments
    are resolved separately and merged into the last user turn.
    """
    result: List[LLMMessage] = []
    for msg in ui_messages:
        if msg.role not in MODEL_ROLES:
            continue
        result.append(LLMMessage.text(msg.role, extract_text(msg.parts)))
    return result
