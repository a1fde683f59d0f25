"""
Mem0 Agent - Mem0 platform memories in front of the LLM gateway.
"""

from typing import Any, List

from ..llm.base import UpstreamError
from ..llm.sse import read_error_message
from .memory_agent import MemoryAugmentedAgent


def _memory_texts(payload: Any) -> List[str]:
    # v1 search answers with a bare list; newer deployments wrap it in "results"
    items = payload.get("results", []) if isinstance(payload, dict) else payload
    texts: List[str] = []
    for item in items or []:
        if isinstance(item, dict) and isinstance(item.get("memory"), str) and item["memory"]:
            texts.append(item["memory"])
    return texts


class Mem0Agent(MemoryAugmentedAgent):
    """Accepts resolved files: they reach the model in the last user turn."""

    agent_id = "mem0"
    display_name = "Mem0"
    accepts_files = True
    missing_config_message = "Mem0 is not configured (LITELLM_API_URL, LITELLM_API_KEY, MEM0_API_KEY)"

    def _headers(self):
        return {"Authorization": f"Token {self.api_key}", "Content-Type": "application/json"}

    async def search_memories(self, query: str, user_id: str) -> List[str]:
        async with self._client() as client:
            response = await client.post(
                f"{self.api_url}/v1/memories/search/",
                json={"query": query, "user_id": user_id, "limit": self.search_limit},
                headers=self._headers(),
            )
            if response.status_code >= 400:
                raise UpstreamError(await read_error_message(response), response.status_code)
            return _memory_texts(response.json())[: self.search_limit]

    async def add_memory(self, user_text: str, assistant_text: str, user_id: str) -> None:
        messages = []
        if user_text:
            messages.append({"role": "user", "content": user_text})
        if assistant_text:
            messages.append({"role": "assistant", "content": assistant_text})
        async with self._client() as client:
            response = await client.post(
                f"{self.api_url}/v1/memories/",
                json={"messages": messages, "user_id": user_id},
                headers=self._headers(),
            )
            if response.status_code >= 400:
                raise UpstreamError(await read_error_message(response), response.status_code)
