"""
Integration tests for the streaming chat endpoint.
Tests validation, the SSE wire format, and persistence of each agent's reply.
"""

import json

import pytest

from arena.agents.base_agent import BaseAgent
from arena.agents.dispatcher import StreamDispatcher
from arena.api.deps import get_dispatcher
from arena.llm.base import UpstreamError

USER_HEADERS = {"X-User-ID": "user-1"}


class ScriptedAgent(BaseAgent):
    """Streams the given tokens; raises ``error`` after them when set."""

    def __init__(self, agent_id, tokens, error=None):
        self.agent_id = agent_id
        self.display_name = agent_id
        self.tokens = tokens
        self.error = error

    async def stream(self, history, model_id, user_id, assistant_message_id, profile=None):
        async def tokens():
            for token in self.tokens:
                yield token
            if self.error:
                raise self.error

        async for fragment in self.stream_text(tokens(), assistant_message_id):
            yield fragment


class CrashingAgent(BaseAgent):
    """Raises from its stream without emitting any fragment."""

    def __init__(self, agent_id):
        self.agent_id = agent_id
        self.display_name = agent_id

    async def stream(self, history, model_id, user_id, assistant_message_id, profile=None):
        raise RuntimeError("socket closed")
        yield  # pragma: no cover


def use_agents(overrides, *agents):
    dispatcher = StreamDispatcher({a.agent_id: a for a in agents})
    overrides[get_dispatcher] = lambda: dispatcher


def chat_body(text="Hello agents", agent_id="mem0", session_id="s1", user_message_id="u-msg-1", **extra):
    body = {
        "id": session_id,
        "messages": [{"id": user_message_id, "role": "user", "parts": [{"type": "text", "text": text}]}],
        "agentId": agent_id,
        "modelId": "gpt-5-mini",
    }
    body.update(extra)
    return body


async def seed_user_message(store, session_id="s1", text="Hello agents"):
    if await store.get_session(session_id) is None:
        await store.create_session(session_id)
    return await store.create_message(session_id, "user", text)


def parse_events(text):
    events = []
    for block in text.split("\n\n"):
        if not block.startswith("data: "):
            continue
        payload = block[len("data: "):]
        events.append(payload if payload == "[DONE]" else json.loads(payload))
    return events


class TestChatValidation:
    """Tests for request rejection."""

    @pytest.mark.asyncio
    async def test_requires_user_header(self, client):
        response = await client.post("/api/chat", json=chat_body())
        assert response.status_code == 401
        assert response.json() == {"success": False, "message": "X-User-ID header required"}

    @pytest.mark.asyncio
    async def test_invalid_json(self, client):
        response = await client.post(
            "/api/chat", content=b"{not json", headers={**USER_HEADERS, "content-type": "application/json"}
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Bad Request"

    @pytest.mark.asyncio
    async def test_schema_violation_lists_issues(self, client):
        body = chat_body()
        body["messages"] = []
        response = await client.post("/api/chat", json=body, headers=USER_HEADERS)
        assert response.status_code == 400
        data = response.json()
        assert data["message"] == "Validation failed"
        assert data["issues"]

    @pytest.mark.asyncio
    async def test_unknown_agent_rejected(self, client):
        response = await client.post("/api/chat", json=chat_body(agent_id="gpt"), headers=USER_HEADERS)
        assert response.status_code == 400
        assert response.json()["message"] == "Validation failed"

    @pytest.mark.asyncio
    async def test_last_message_must_be_user(self, client):
        body = chat_body()
        body["messages"].append({"id": "a1", "role": "assistant", "parts": [{"type": "text", "text": "hi"}]})
        response = await client.post("/api/chat", json=body, headers=USER_HEADERS)
        assert response.status_code == 400
        assert response.json()["message"] == "last message must be user"


class TestChatStreaming:
    """Tests for the SSE stream and what it persists."""

    @pytest.mark.asyncio
    async def test_streams_and_persists(self, client, overrides, store):
        use_agents(overrides, ScriptedAgent("mem0", ["Hel", "lo ", "there"]))
        user = await seed_user_message(store)

        response = await client.post("/api/chat", json=chat_body(user_message_id=user.id), headers=USER_HEADERS)
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        assert response.headers["cache-control"] == "no-cache"
        assert response.headers["x-accel-buffering"] == "no"

        events = parse_events(response.text)
        assert events[-1] == "[DONE]"
        fragments = events[:-1]
        assert [f["type"] for f in fragments] == [
            "start", "text-start", "text-delta", "text-delta", "text-delta", "text-end", "finish",
        ]
        assert fragments[0]["messageMetadata"] == {"agentId": "mem0"}

        replies = await store.get_messages_by_reply_to(user.id)
        assert len(replies) == 1
        reply = replies[0]
        assert reply.id == fragments[0]["messageId"]
        assert reply.agent_id == "mem0"
        assert reply.provider_id == "gpt-5-mini"
        assert reply.content == "".join(f["delta"] for f in fragments if f["type"] == "text-delta")
        assert reply.content == "Hello there"

    @pytest.mark.asyncio
    async def test_title_truncated_to_100(self, client, overrides, store):
        use_agents(overrides, ScriptedAgent("mem0", ["ok"]))
        text = "x" * 150
        user = await seed_user_message(store, text=text)
        await client.post("/api/chat", json=chat_body(text=text, user_message_id=user.id), headers=USER_HEADERS)
        session = await store.get_session("s1")
        assert session.title == "x" * 100

    @pytest.mark.asyncio
    async def test_error_persisted_with_flag(self, client, overrides, store):
        use_agents(overrides, ScriptedAgent("supermemory", ["partial"], error=UpstreamError("quota exceeded")))
        user = await seed_user_message(store)
        response = await client.post(
            "/api/chat", json=chat_body(agent_id="supermemory", user_message_id=user.id), headers=USER_HEADERS
        )
        fragments = parse_events(response.text)[:-1]
        assert fragments[-1] == {"type": "error", "errorText": "quota exceeded"}
        assert [f["type"] for f in fragments].count("error") == 1

        reply = (await store.get_messages_by_reply_to(user.id))[0]
        assert reply.content == "quota exceeded"
        assert reply.meta == {"isError": True}

    @pytest.mark.asyncio
    async def test_three_agents_share_user_turn(self, client, overrides, store):
        use_agents(
            overrides,
            ScriptedAgent("memorylake", ["A"]),
            ScriptedAgent("mem0", ["B"]),
            ScriptedAgent("supermemory", ["C"]),
        )
        user = await seed_user_message(store)
        for agent_id in ("memorylake", "mem0", "supermemory"):
            body = chat_body(agent_id=agent_id, user_message_id=user.id)
            response = await client.post("/api/chat", json=body, headers=USER_HEADERS)
            assert response.status_code == 200

        replies = await store.get_messages_by_reply_to(user.id)
        assert {r.agent_id: r.content for r in replies} == {"memorylake": "A", "mem0": "B", "supermemory": "C"}
        assert {r.provider_id for r in replies} == {"gpt-5-mini"}

    @pytest.mark.asyncio
    async def test_resend_reuses_assistant_row(self, client, overrides, store):
        user = await seed_user_message(store)
        use_agents(overrides, ScriptedAgent("mem0", ["first"]))
        await client.post("/api/chat", json=chat_body(user_message_id=user.id), headers=USER_HEADERS)
        use_agents(overrides, ScriptedAgent("mem0", ["second"]))
        await client.post("/api/chat", json=chat_body(user_message_id=user.id), headers=USER_HEADERS)

        replies = await store.get_messages_by_reply_to(user.id)
        assert len(replies) == 1
        assert replies[0].content == "second"
        assert replies[0].meta == {}

    @pytest.mark.asyncio
    async def test_unconfigured_agent_streams_error(self, client, store):
        user = await seed_user_message(store)
        body = chat_body(agent_id="memorylake", user_message_id=user.id)
        response = await client.post("/api/chat", json=body, headers=USER_HEADERS)
        fragments = parse_events(response.text)[:-1]
        assert [f["type"] for f in fragments] == ["error"]
        reply = (await store.get_messages_by_reply_to(user.id))[0]
        assert reply.meta == {"isError": True}

    @pytest.mark.asyncio
    async def test_unexpected_agent_failure_persisted(self, client, overrides, store):
        use_agents(overrides, CrashingAgent("mem0"))
        user = await seed_user_message(store)
        response = await client.post("/api/chat", json=chat_body(user_message_id=user.id), headers=USER_HEADERS)
        fragments = parse_events(response.text)[:-1]
        assert fragments == [{"type": "error", "errorText": "socket closed"}]

        reply = (await store.get_messages_by_reply_to(user.id))[0]
        assert reply.content == "socket closed"
        assert reply.meta == {"isError": True}


class TestChatReplyTarget:
    """The replied-to message must be a stored user message of the requested session."""

    @pytest.mark.asyncio
    async def test_other_session_message_rejected(self, client, overrides, store):
        use_agents(overrides, ScriptedAgent("mem0", ["hijacked"]))
        user_a = await seed_user_message(store, session_id="sA", text="hi A")
        await store.create_message(
            "sA", "assistant", "A-reply", agent_id="mem0", provider_id="gpt-5-mini", reply_to_message_id=user_a.id
        )

        response = await client.post(
            "/api/chat", json=chat_body(session_id="sB", user_message_id=user_a.id), headers=USER_HEADERS
        )
        assert response.status_code == 400
        assert response.json()["message"] == "user message not found in session"

        session_a = await store.get_messages_by_session_id("sA")
        assert [(m.role, m.content) for m in session_a] == [("user", "hi A"), ("assistant", "A-reply")]
        assert await store.get_messages_by_session_id("sB") == []

    @pytest.mark.asyncio
    async def test_missing_message_id_rejected(self, client, overrides, store):
        use_agents(overrides, ScriptedAgent("mem0", ["ok"]))
        await seed_user_message(store)
        body = chat_body()
        del body["messages"][0]["id"]

        response = await client.post("/api/chat", json=body, headers=USER_HEADERS)
        assert response.status_code == 400
        assert [m.role for m in await store.get_messages_by_session_id("s1")] == ["user"]

    @pytest.mark.asyncio
    async def test_unknown_message_id_rejected(self, client, overrides, store):
        use_agents(overrides, ScriptedAgent("mem0", ["ok"]))
        response = await client.post("/api/chat", json=chat_body(user_message_id="nope"), headers=USER_HEADERS)
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_assistant_message_as_target_rejected(self, client, overrides, store):
        use_agents(overrides, ScriptedAgent("mem0", ["ok"]))
        user = await seed_user_message(store)
        reply = await store.create_message("s1", "assistant", "hi", agent_id="mem0", reply_to_message_id=user.id)
        response = await client.post("/api/chat", json=chat_body(user_message_id=reply.id), headers=USER_HEADERS)
        assert response.status_code == 400
