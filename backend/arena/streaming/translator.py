"""
Claude Messages stream -> response fragments.

The Messages API streams typed events (message_start, content_block_start,
content_block_delta, content_block_stop, message_delta, message_stop, error).
The translator is a two-state machine over the text block: a transition table
keyed by (state, event type) picks the handler, and each handler returns the
fragments to emit plus the next state.
"""

import enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from .fragments import Fragment

STOP_REASONS = {
    "end_turn": "stop",
    "stop_sequence": "stop",
    "max_tokens": "length",
    "tool_use": "tool-calls",
}


class BlockState(enum.Enum):
    CLOSED = "closed"
    OPEN = "open"
    TERMINATED = "terminated"


Event = Dict[str, Any]
Transition = Tuple[List[Fragment], BlockState]
Handler = Callable[["ClaudeStreamTranslator", Event], Transition]


class ClaudeStreamTranslator:
    """
    Stateful mapper from Claude stream events to fragments.

    Feed events with ``feed``; call ``close`` when the upstream ends so a
    stream that never sent message_stop still finishes exactly once.
    """

    def __init__(self, message_id: str, message_metadata: Optional[Dict[str, Any]] = None):
        self.message_id = message_id
        self.message_metadata = message_metadata or {}
        self.state = BlockState.CLOSED
        self.block_id: Optional[str] = None
        self.finish_reason = "stop"
        self._started = False

    @property
    def terminated(self) -> bool:
        return self.state is BlockState.TERMINATED

    def feed(self, event: Event) -> List[Fragment]:
        if self.terminated:
            return []
        event_type = event.get("type", "")
        handler = self.TRANSITIONS.get((self.state, event_type)) or self.TRANSITIONS.get((None, event_type))
        if handler is None:
            return []  # ping and unknown events
        fragments, self.state = handler(self, event)
        return fragments

    def close(self) -> List[Fragment]:
        """Finish a stream whose upstream ended without message_stop."""
        if self.terminated:
            return []
        return self._finish()

    def fail(self, error_text: str) -> List[Fragment]:
        if self.terminated:
            return []
        self.state = BlockState.TERMINATED
        return [Fragment.error(error_text)]

    # -- handlers ---------------------------------------------------------

    def _start(self, event: Event) -> Transition:
        if self._started:
            return [], self.state
        self._started = True
        return [Fragment.start(self.message_id, self.message_metadata)], self.state

    def _open_block(self, event: Event) -> Transition:
        block = event.get("content_block") or {}
        if block.get("type") != "text":
            return [], BlockState.CLOSED
        self.block_id = f"block-{event.get('index', 0)}"
        fragments = self._ensure_started()
        fragments.append(Fragment.text_start(self.block_id))
        if block.get("text"):
            fragments.append(Fragment.text_delta(self.block_id, block["text"]))
        return fragments, BlockState.OPEN

    def _delta_open(self, event: Event) -> Transition:
        text = self._text_of(event)
        if not text:
            return [], BlockState.OPEN
        return [Fragment.text_delta(self.block_id, text)], BlockState.OPEN

    def _delta_closed(self, event: Event) -> Transition:
        text = self._text_of(event)
        if not text:
            return [], BlockState.CLOSED
        self.block_id = f"block-{event.get('index', 0)}"
        fragments = self._ensure_started()
        fragments += [Fragment.text_start(self.block_id), Fragment.text_delta(self.block_id, text)]
        return fragments, BlockState.OPEN

    def _close_block(self, event: Event) -> Transition:
        fragments = [Fragment.text_end(self.block_id)]
        self.block_id = None
        return fragments, BlockState.CLOSED

    def _ignore(self, event: Event) -> Transition:
        return [], self.state

    def _message_delta(self, event: Event) -> Transition:
        stop_reason = (event.get("delta") or {}).get("stop_reason")
        if stop_reason:
            self.finish_reason = STOP_REASONS.get(stop_reason, "other")
        return [], self.state

    def _message_stop(self, event: Event) -> Transition:
        return self._finish(), BlockState.TERMINATED

    def _error(self, event: Event) -> Transition:
        message = (event.get("error") or {}).get("message") or "Unknown Memory Lake error"
        return [Fragment.error(message)], BlockState.TERMINATED

    # -- helpers ----------------------------------------------------------

    def _ensure_started(self) -> List[Fragment]:
        fragments, _ = self._start({})
        return fragments

    def _finish(self) -> List[Fragment]:
        fragments = self._ensure_started()
        if self.state is BlockState.OPEN:
            fragments.append(Fragment.text_end(self.block_id))
            self.block_id = None
        fragments.append(Fragment.finish(self.finish_reason, self.message_metadata))
        self.state = BlockState.TERMINATED
        return fragments

    @staticmethod
    def _text_of(event: Event) -> str:
        delta = event.get("delta") or {}
        if delta.get("type") != "text_delta":
            return ""
        return delta.get("text") or ""

    # (state, event type) -> handler; a None state matches any live state.
    TRANSITIONS: Dict[Tuple[Optional[BlockState], str], Handler] = {
        (None, "message_start"): _start,
        (BlockState.CLOSED, "content_block_start"): _open_block,
        (BlockState.OPEN, "content_block_start"): _ignore,
        (BlockState.OPEN, "content_block_delta"): _delta_open,
        (BlockState.CLOSED, "content_block_delta"): _delta_closed,
        (BlockState.OPEN, "content_block_stop"): _close_block,
        (BlockState.CLOSED, "content_block_stop"): _ignore,
        (None, "message_delta"): _message_delta,
        (None, "message_stop"): _message_stop,
        (None, "error"): _error,
    }
