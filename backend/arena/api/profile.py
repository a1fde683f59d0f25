"""
Profile API endpoint - resolves the signed-in user and their Arena profile.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request, status

from ..config import settings
from ..llm.base import UpstreamError
from ..models.profile import ProfileResponse
from ..services.arena_client import ArenaClient
from ..services.identity_client import IdentityClient
from ..utils.errors import ApiError
from .deps import get_arena_client, get_identity_client

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/profile", tags=["profile"])


@router.get("", response_model=ProfileResponse)
async def get_profile(
    request: Request,
    identity: Optional[IdentityClient] = Depends(get_identity_client),
    arena: Optional[ArenaClient] = Depends(get_arena_client),
):
    """
    Session cookie -> main-domain user -> Arena profile.

    Returns:
        The user and the Memory Lake ids (plus the optional project id) used by the chat
    """
    session_token = request.cookies.get(settings.session_cookie_name)
    if not session_token:
        raise ApiError(status.HTTP_401_UNAUTHORIZED, "Not signed in or session expired")
    if identity is None:
        raise ApiError(status.HTTP_503_SERVICE_UNAVAILABLE, "MAIN_DOMAIN_API_URL is not configured")
    if arena is None:
        raise ApiError(status.HTTP_503_SERVICE_UNAVAILABLE, "ARENA_API_BASE is not configured")

    try:
        user = await identity.get_current_user(session_token)
    except UpstreamError as e:
        raise ApiError(status.HTTP_401_UNAUTHORIZED, str(e))

    try:
        arena_profile = await arena.get_profile(user.id)
    except UpstreamError as e:
        logger.warning(f"Arena profile lookup failed for user {user.id}: {e}")
        raise ApiError(status.HTTP_502_BAD_GATEWAY, str(e))

    return ProfileResponse(user=user, arenaProfile=arena_profile)
