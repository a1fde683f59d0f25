"""
Arena API client.
Documents, multipart uploads, drive item download URLs and the Arena profile
all live behind ARENA_API_BASE and authenticate with the X-User-ID header.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from ..config import settings
from ..llm.base import UpstreamError
from ..models.profile import ArenaProfile

logger = logging.getLogger(__name__)


@dataclass
class UpstreamResponse:
    """Status and JSON body of an upstream call, relayed verbatim by the proxies."""
    status_code: int
    data: Any

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300 and isinstance(self.data, dict) and bool(self.data.get("success"))

    @property
    def message(self) -> Optional[str]:
        if isinstance(self.data, dict) and isinstance(self.data.get("message"), str):
            return self.data["message"]
        return None


@dataclass
class DownloadUrl:
    url: str
    headers: Dict[str, str] = field(default_factory=dict)


def _first_str(data: Dict[str, Any], *keys: str) -> Optional[str]:
    for key in keys:
        value = data.get(key)
        if isinstance(value, str) and value:
            return value
    return None


def parse_arena_profile(value: Any) -> Optional[ArenaProfile]:
    """
    Parse an Arena profile payload.
    Accepts camelCase (``mem0rgId``) or snake_case (``mem0_org_id``) keys.
    """
    if not isinstance(value, dict):
        return None
    mem0rg_id = _first_str(value, "mem0rgId", "mem0_org_id", "mem0OrgId")
    mem0_proj_id = _first_str(value, "mem0ProjId", "mem0_proj_id")
    dataset_id = _first_str(value, "datasetId", "dataset_id")
    if not (mem0rg_id and mem0_proj_id and dataset_id):
        return None
    return ArenaProfile(
        mem0rgId=mem0rg_id,
        mem0ProjId=mem0_proj_id,
        datasetId=dataset_id,
        projId=_first_str(value, "projId", "proj_id"),
    )


class ArenaClient:
    """
    Thin async client for the Arena backend.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    async def _request(
        self,
        method: str,
        path: str,
        user_id: str,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> UpstreamResponse:
        start_time = time.time()
        url = f"{self.base_url}{path}"
        headers = {"X-User-ID": user_id, "Accept": "application/json"}
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.request(method, url, json=json, params=params, headers=headers)
        except httpx.HTTPError as e:
            logger.error(f"Arena API request failed: {method} {path}: {e}", exc_info=True)
            raise UpstreamError(f"Arena API request failed: {e}") from e

        try:
            data = response.json()
        except ValueError:
            data = {"success": False, "message": f"Invalid Arena API response ({response.status_code})"}

        logger.info(
            f"Arena API {method} {path} -> {response.status_code}",
            extra={"extra_fields": {
                "user_id": user_id,
                "status_code": response.status_code,
                "duration_ms": round((time.time() - start_time) * 1000, 2),
            }}
        )
        return UpstreamResponse(status_code=response.status_code, data=data)

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    async def create_document(
        self, user_id: str, project_id: str, file_name: str, object_key: str
    ) -> UpstreamResponse:
        return await self._request(
            "POST",
            "/api/v1/arena/documents",
            user_id,
            json={
                "project_id": project_id,
                "file_name": file_name,
                "object_key": object_key,
                "user_id": user_id,
            },
        )

    async def document_status(
        self, user_id: str, memorylake_document_id: str, supermemory_document_id: str
    ) -> UpstreamResponse:
        return await self._request(
            "GET",
            "/api/v1/arena/documents/status",
            user_id,
            params={
                "memorylake_document_id": memorylake_document_id,
                "supermemory_document_id": supermemory_document_id,
            },
        )

    # ------------------------------------------------------------------
    # Multipart upload
    # ------------------------------------------------------------------

    async def create_multipart(self, user_id: str, file_size: int) -> UpstreamResponse:
        return await self._request(
            "POST", "/api/v1/upload/create-multipart", user_id, json={"file_size": file_size}
        )

    async def complete_multipart(
        self, user_id: str, upload_id: str, object_key: str, part_etags: List[Dict[str, Any]]
    ) -> UpstreamResponse:
        return await self._request(
            "POST",
            "/api/v1/upload/complete-multipart",
            user_id,
            json={"upload_id": upload_id, "object_key": object_key, "part_eTags": part_etags},
        )

    # ------------------------------------------------------------------
    # Drive items and profile
    # ------------------------------------------------------------------

    async def get_item_download_url(self, item_id: str, user_id: str) -> DownloadUrl:
        """
        Exchange a drive item id for a time-limited download URL.

        Raises:
            UpstreamError: With the Arena message when the exchange fails
        """
        result = await self._request(
            "GET", f"/api/v1/drives/items/{quote(item_id, safe='')}/download-url", user_id
        )
        data = result.data.get("data") if isinstance(result.data, dict) else None
        if not (result.ok and isinstance(data, dict) and data.get("download_url")):
            raise UpstreamError(
                result.message or f"Get download URL failed ({result.status_code})",
                result.status_code,
            )
        return DownloadUrl(url=data["download_url"], headers=data.get("headers") or {})

    async def get_profile(self, user_id: str) -> ArenaProfile:
        """
        Fetch the Arena profile of a user.

        Raises:
            UpstreamError: If the request fails or the payload has no usable ids
        """
        result = await self._request("POST", "/api/v1/arena/profile", user_id, json={})
        if not 200 <= result.status_code < 300:
            raise UpstreamError(result.message or "Profile request failed", result.status_code)
        raw = result.data
        if isinstance(raw, dict) and raw.get("data") is not None:
            raw = raw["data"]
        profile = parse_arena_profile(raw)
        if profile is None:
            raise UpstreamError("Invalid arena profile response")
        return profile


def create_arena_client(transport: Optional[httpx.AsyncBaseTransport] = None) -> Optional[ArenaClient]:
    """Arena client from settings, or None when ARENA_API_BASE is not set."""
    if not settings.arena_api_base:
        return None
    return ArenaClient(settings.arena_api_base, timeout=settings.arena_timeout, transport=transport)
