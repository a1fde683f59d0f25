"""
Async client for the arena HTTP API.

Used by the chat session controller and by scripts; every call sends the
caller identity in X-User-ID.
"""

import logging
from dataclasses import dataclass
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence

import httpx

from ..models.chat import UIMessage
from ..models.session import SessionMessage
from ..streaming.fragments import Fragment, parse_sse_line

logger = logging.getLogger(__name__)


class ChatClientError(Exception):
    """The arena API rejected a call; ``message`` is what the server said."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


@dataclass
class ApiResult:
    status_code: int
    data: Any

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300 and isinstance(self.data, dict) and bool(self.data.get("success"))

    @property
    def payload(self) -> Dict[str, Any]:
        """The ``data`` object of an Arena envelope, or an empty dict."""
        if isinstance(self.data, dict) and isinstance(self.data.get("data"), dict):
            return self.data["data"]
        return {}

    def error_message(self, fallback: str) -> str:
        if isinstance(self.data, dict):
            for key in ("message", "error_code"):
                if isinstance(self.data.get(key), str) and self.data[key]:
                    return self.data[key]
        return fallback


def _json_or_none(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


class ArenaChatClient:
    """
    Thin wrapper over ``httpx.AsyncClient``.

    Use as an async context manager, or call ``aclose`` when done.
    """

    def __init__(
        self,
        base_url: str,
        user_id: Optional[str] = None,
        timeout: float = 120.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.user_id = user_id
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)

    async def __aenter__(self) -> "ArenaChatClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    def _headers(self, user_id: Optional[str] = None) -> Dict[str, str]:
        uid = user_id or self.user_id
        return {"X-User-ID": uid} if uid else {}

    @staticmethod
    def _raise_for_status(response: httpx.Response, fallback: str) -> None:
        if response.is_success:
            return
        body = _json_or_none(response)
        message = body.get("message") if isinstance(body, dict) else None
        raise ChatClientError(message or f"{fallback} ({response.status_code})", response.status_code)

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    async def list_sessions(self) -> List[Dict[str, Any]]:
        response = await self._client.get("/api/sessions", headers=self._headers())
        self._raise_for_status(response, "List sessions failed")
        return response.json()

    async def create_session(self) -> str:
        response = await self._client.post("/api/sessions", headers=self._headers())
        self._raise_for_status(response, "Create session failed")
        return response.json()["id"]

    async def rename_session(self, session_id: str, title: str) -> bool:
        response = await self._client.patch(
            f"/api/sessions/{session_id}", json={"title": title}, headers=self._headers()
        )
        self._raise_for_status(response, "Rename session failed")
        return bool(response.json().get("ok"))

    async def delete_session(self, session_id: str) -> bool:
        response = await self._client.delete(f"/api/sessions/{session_id}", headers=self._headers())
        self._raise_for_status(response, "Delete session failed")
        return bool(response.json().get("ok"))

    async def get_session_messages(self, session_id: str) -> List[SessionMessage]:
        response = await self._client.get(f"/api/sessions/{session_id}/messages", headers=self._headers())
        self._raise_for_status(response, "Load messages failed")
        return [SessionMessage.model_validate(item) for item in response.json()]

    async def save_user_message(
        self,
        session_id: str,
        content: str,
        attachments: Optional[List[Dict[str, Any]]] = None,
    ) -> str:
        body: Dict[str, Any] = {"content": content}
        if attachments:
            body["attachments"] = attachments
        response = await self._client.post(
            f"/api/sessions/{session_id}/messages", json=body, headers=self._headers()
        )
        self._raise_for_status(response, "Save message failed")
        return response.json()["userMessageId"]

    # ------------------------------------------------------------------
    # Chat stream
    # ------------------------------------------------------------------

    async def stream_chat(
        self,
        session_id: str,
        messages: Sequence[UIMessage],
        agent_id: str,
        model_id: str,
        memorylake_profile: Optional[Dict[str, Any]] = None,
    ) -> AsyncIterator[Fragment]:
        """
        Open one agent stream and yield its fragments.

        Raises:
            ChatClientError: If the server rejects the request before streaming
        """
        body: Dict[str, Any] = {
            "id": session_id,
            "messages": [m.model_dump(exclude_none=True) for m in messages],
            "agentId": agent_id,
            "modelId": model_id,
        }
        if memorylake_profile:
            body["memorylakeProfile"] = memorylake_profile

        async with self._client.stream("POST", "/api/chat", json=body, headers=self._headers()) as response:
            if not response.is_success:
                await response.aread()
                self._raise_for_status(response, "Chat request failed")
            async for line in response.aiter_lines():
                fragment = parse_sse_line(line)
                if fragment is not None:
                    yield fragment

    # ------------------------------------------------------------------
    # Documents and uploads
    # ------------------------------------------------------------------

    async def _call(self, method: str, url: str, user_id: Optional[str] = None, **kwargs) -> ApiResult:
        response = await self._client.request(method, url, headers=self._headers(user_id), **kwargs)
        return ApiResult(response.status_code, _json_or_none(response))

    async def create_document(
        self, project_id: str, file_name: str, object_key: str, user_id: Optional[str] = None
    ) -> ApiResult:
        return await self._call(
            "POST",
            "/api/arena/documents",
            user_id,
            json={"project_id": project_id, "file_name": file_name, "object_key": object_key},
        )

    async def document_status(
        self, memorylake_document_id: str, supermemory_document_id: str, user_id: Optional[str] = None
    ) -> ApiResult:
        return await self._call(
            "GET",
            "/api/arena/documents/status",
            user_id,
            params={
                "memorylake_document_id": memorylake_document_id,
                "supermemory_document_id": supermemory_document_id,
            },
        )

    async def create_multipart(self, file_size: int, user_id: Optional[str] = None) -> ApiResult:
        return await self._call("POST", "/api/upload/create-multipart", user_id, json={"file_size": file_size})

    async def complete_multipart(
        self, upload_id: str, object_key: str, part_etags: List[Dict[str, Any]], user_id: Optional[str] = None
    ) -> ApiResult:
        return await self._call(
            "POST",
            "/api/upload/complete-multipart",
            user_id,
            json={"upload_id": upload_id, "object_key": object_key, "part_eTags": part_etags},
        )

    async def put_part(self, upload_url: str, data: bytes) -> httpx.Response:
        """PUT one part to its signed URL (absolute; no arena headers)."""
        return await self._client.put(upload_url, content=data)
