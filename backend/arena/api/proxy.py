"""
Helpers for endpoints that relay to the Arena API.
"""

from typing import Any, Awaitable, Dict

from fastapi import Request, status
from fastapi.responses import JSONResponse

from ..llm.base import UpstreamError
from ..services.arena_client import UpstreamResponse
from ..utils.errors import ApiError


async def read_json_object(request: Request) -> Dict[str, Any]:
    """
    Request body as a JSON object.

    Raises:
        ApiError: 400 when the body is not valid JSON
    """
    try:
        body = await request.json()
    except ValueError:
        raise ApiError(status.HTTP_400_BAD_REQUEST, "Invalid JSON")
    if not isinstance(body, dict):
        raise ApiError(status.HTTP_400_BAD_REQUEST, "Invalid JSON")
    return body


async def relay(call: Awaitable[UpstreamResponse]) -> JSONResponse:
    """Await an Arena call and answer with its JSON and status unchanged."""
    try:
        result = await call
    except UpstreamError as e:
        raise ApiError(status.HTTP_502_BAD_GATEWAY, str(e))
    return JSONResponse(content=result.data, status_code=result.status_code)
