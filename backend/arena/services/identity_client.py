"""
Main-domain identity client.
Resolves the signed-in user from the session cookie issued by the main site.
"""

import logging
from typing import Optional

import httpx

from ..config import settings
from ..llm.base import UpstreamError
from ..models.profile import ProfileUser

logger = logging.getLogger(__name__)


class IdentityClient:
    """Calls ``GET /api/user/self`` on the main domain, forwarding the session cookie."""

    def __init__(
        self,
        base_url: str,
        cookie_name: str = "session",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.cookie_name = cookie_name
        self.timeout = timeout
        self.transport = transport

    async def get_current_user(self, session_token: str) -> ProfileUser:
        """
        Resolve the user owning a session cookie.

        Raises:
            UpstreamError: If the main domain rejects the cookie or is unreachable
        """
        url = f"{self.base_url}/api/user/self"
        headers = {
            "Cookie": f"{self.cookie_name}={session_token}",
            "Accept": "application/json",
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.get(url, headers=headers)
        except httpx.HTTPError as e:
            logger.error(f"Identity request failed: {e}", exc_info=True)
            raise UpstreamError(f"Identity request failed: {e}") from e

        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        data = body.get("data")
        if not (response.is_success and body.get("success") and isinstance(data, dict) and data.get("id")):
            message = body.get("message") if isinstance(body.get("message"), str) else None
            raise UpstreamError(message or "Memorylake profile request failed", response.status_code)

        return ProfileUser.model_validate(data)


def create_identity_client(transport: Optional[httpx.AsyncBaseTransport] = None) -> Optional[IdentityClient]:
    """Identity client from settings, or None when MAIN_DOMAIN_API_URL is not set."""
    if not settings.main_domain_api_url:
        return None
    return IdentityClient(
        settings.main_domain_api_url,
        cookie_name=settings.session_cookie_name,
        timeout=settings.arena_timeout,
        transport=transport,
    )
