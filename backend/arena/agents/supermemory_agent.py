"""
Supermemory Agent - Supermemory container memories in front of the LLM gateway.
Every exchange is added back to the user's container.
"""

from typing import Any, Dict, List

from ..llm.base import UpstreamError
from ..llm.sse import read_error_message
from .memory_agent import MemoryAugmentedAgent


def _result_texts(payload: Any) -> List[str]:
    results = payload.get("results", []) if isinstance(payload, dict) else []
    texts: List[str] = []
    for result in results or []:
        if not isinstance(result, dict):
            continue
        chunks = [
            c["content"] for c in result.get("chunks") or []
            if isinstance(c, dict) and isinstance(c.get("content"), str) and c["content"]
        ]
        if chunks:
            texts.append(" ".join(chunks))
            continue
        for key in ("memory", "content", "summary"):
            if isinstance(result.get(key), str) and result[key]:
                texts.append(result[key])
                break
    return texts


class SupermemoryAgent(MemoryAugmentedAgent):
    """Text only; the user's id is the container tag."""

    agent_id = "supermemory"
    display_name = "Supermemory"
    missing_config_message = (
        "Supermemory is not configured (LITELLM_API_URL, LITELLM_API_KEY, SUPERMEMORY_API_KEY)"
    )

    def _headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"}

    async def search_memories(self, query: str, user_id: str) -> List[str]:
        async with self._client() as client:
            response = await client.post(
                f"{self.api_url}/v3/search",
                json={"q": query, "containerTags": [user_id], "limit": self.search_limit},
                headers=self._headers(),
            )
            if response.status_code >= 400:
                raise UpstreamError(await read_error_message(response), response.status_code)
            return _result_texts(response.json())[: self.search_limit]

    async def add_memory(self, user_text: str, assistant_text: str, user_id: str) -> None:
        content = f"User: {user_text}\nAssistant: {assistant_text}"
        async with self._client() as client:
            response = await client.post(
                f"{self.api_url}/v3/documents",
                json={"content": content, "containerTags": [user_id]},
                headers=self._headers(),
            )
            if response.status_code >= 400:
                raise UpstreamError(await read_error_message(response), response.status_code)
