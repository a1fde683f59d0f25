"""
API errors rendered as ``{"success": false, "message": ..., "issues"?: [...]}``.
"""

import logging
from typing import Any, List, Optional

from fastapi import Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Error answered directly to the client with the given status."""

    def __init__(self, status_code: int, message: str, issues: Optional[List[Any]] = None):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.issues = issues

    def to_dict(self) -> dict:
        body = {"success": False, "message": self.message}
        if self.issues is not None:
            body["issues"] = self.issues
        return body


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    logger.info(
        f"{request.method} {request.url.path} rejected: {exc.status_code} {exc.message}",
        extra={"extra_fields": {"status_code": exc.status_code, "path": request.url.path}}
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())
