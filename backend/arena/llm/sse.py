"""
Server-Sent Events reader for upstream streaming APIs.
"""

import json
import logging
from typing import Any, AsyncGenerator, Dict

import httpx

logger = logging.getLogger(__name__)


async def iter_sse_json(response: httpx.Response) -> AsyncGenerator[Dict[str, Any], None]:
    """
    Yield the JSON payload of every ``data:`` line of an SSE response.

    ``event:`` lines are ignored (both OpenAI-style and Claude-style streams
    repeat the event type inside the payload). Iteration stops at
    ``data: [DONE]``; malformed payloads are skipped.
    """
    async for line in response.aiter_lines():
        if not line or not line.startswith("data:"):
            continue

        data_str = line[5:].strip()
        if data_str == "[DONE]":
            break
        if not data_str:
            continue

        try:
            payload = json.loads(data_str)
        except json.JSONDecodeError:
            logger.debug(f"Skipping malformed SSE payload: {data_str[:200]}")
            continue
        if isinstance(payload, dict):
            yield payload


async def read_error_message(response: httpx.Response) -> str:
    """Best-effort human-readable message from a failed upstream response."""
    try:
        body = await response.aread()
        data = json.loads(body)
    except (json.JSONDecodeError, httpx.HTTPError, UnicodeDecodeError):
        return f"Upstream request failed ({response.status_code})"
    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        for key in ("message", "detail", "error"):
            if isinstance(data.get(key), str) and data[key]:
                return data[key]
    return f"Upstream request failed ({response.status_code})"
