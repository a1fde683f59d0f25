"""
Caller identity.

Identity is asserted by the trusted frontend in the X-User-ID header; this
service does not validate it further.
"""

from typing import Optional

from fastapi import Header, status

from .errors import ApiError

USER_ID_HEADER = "X-User-ID"


async def get_current_user_id(
    x_user_id: Optional[str] = Header(None, alias=USER_ID_HEADER)
) -> str:
    """
    Get current user ID from the X-User-ID header.

    Raises:
        ApiError: 401 if the header is missing or blank
    """
    user_id = (x_user_id or "").strip()
    if not user_id:
        raise ApiError(status.HTTP_401_UNAUTHORIZED, "X-User-ID header required")
    return user_id
