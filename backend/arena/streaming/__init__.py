"""Streaming module - response fragments, outbound channel and protocol translation."""

from .fragments import Fragment, encode_sse, parse_sse_line, SSE_DONE
from .translator import ClaudeStreamTranslator
from .ui_stream import StreamResult, run_ui_message_stream
from .writer import StreamWriter

__all__ = [
    'Fragment',
    'encode_sse',
    'parse_sse_line',
    'SSE_DONE',
    'ClaudeStreamTranslator',
    'StreamResult',
    'run_ui_message_stream',
    'StreamWriter',
]
