"""
Response fragments - the uniform unit every agent stream is made of.

Serialized field names follow the UI message stream protocol used by the web
client (``messageId``, ``errorText``...). Each fragment travels as one SSE
``data:`` line; the stream ends with ``data: [DONE]``.
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, Optional

START = "start"
TEXT_START = "text-start"
TEXT_DELTA = "text-delta"
TEXT_END = "text-end"
FINISH = "finish"
ERROR = "error"

TERMINAL_TYPES = frozenset({FINISH, ERROR})

SSE_DONE = "data: [DONE]\n\n"


@dataclass
class Fragment:
    """One typed piece of an agent's response stream."""
    type: str
    id: Optional[str] = None  # text block id
    delta: Optional[str] = None
    message_id: Optional[str] = None
    message_metadata: Optional[Dict[str, Any]] = None
    finish_reason: Optional[str] = None
    error_text: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.type in TERMINAL_TYPES

    @staticmethod
    def start(message_id: str, metadata: Optional[Dict[str, Any]] = None) -> "Fragment":
        return Fragment(type=START, message_id=message_id, message_metadata=metadata or {})

    @staticmethod
    def text_start(block_id: str) -> "Fragment":
        return Fragment(type=TEXT_START, id=block_id)

    @staticmethod
    def text_delta(block_id: str, delta: str) -> "Fragment":
        return Fragment(type=TEXT_DELTA, id=block_id, delta=delta)

    @staticmethod
    def text_end(block_id: str) -> "Fragment":
        return Fragment(type=TEXT_END, id=block_id)

    @staticmethod
    def finish(reason: str = "stop", metadata: Optional[Dict[str, Any]] = None) -> "Fragment":
        return Fragment(type=FINISH, finish_reason=reason, message_metadata=metadata)

    @staticmethod
    def error(text: str) -> "Fragment":
        return Fragment(type=ERROR, error_text=text)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"type": self.type}
        if self.type == START:
            data["messageId"] = self.message_id
            data["messageMetadata"] = self.message_metadata or {}
        elif self.type in (TEXT_START, TEXT_END):
            data["id"] = self.id
        elif self.type == TEXT_DELTA:
            data["id"] = self.id
            data["delta"] = self.delta or ""
        elif self.type == FINISH:
            data["finishReason"] = self.finish_reason or "stop"
            if self.message_metadata is not None:
                data["messageMetadata"] = self.message_metadata
        elif self.type == ERROR:
            data["errorText"] = self.error_text or ""
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Fragment":
        return cls(
            type=str(data.get("type", "")),
            id=data.get("id"),
            delta=data.get("delta"),
            message_id=data.get("messageId"),
            message_metadata=data.get("messageMetadata"),
            finish_reason=data.get("finishReason"),
            error_text=data.get("errorText"),
        )


def encode_sse(fragment: Fragment) -> str:
    """Serialize a fragment as one SSE event."""
    return f"data: {json.dumps(fragment.to_dict(), ensure_ascii=False)}\n\n"


def parse_sse_line(line: str) -> Optional[Fragment]:
    """
    Parse one line of a fragment stream.

    Returns None for blank lines, comments, ``[DONE]`` and undecodable data.
    """
    line = line.strip()
    if not line.startswith("data:"):
        return None
    payload = line[5:].strip()
    if not payload or payload == "[DONE]":
        return None
    try:
        data = json.loads(payload)
    except json.JSONDecodeError:
        return None
    if not isinstance(data, dict):
        return None
    return Fragment.from_dict(data)
