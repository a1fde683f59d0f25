"""
Unit tests for the client toolkit.
Tests round assembly, per-agent chat state, the pending-send relay,
document polling, multipart upload, and the session controller end to end.
"""

import asyncio
import json
from datetime import datetime, timezone

import httpx
import pytest
import pytest_asyncio

from arena.agents.base_agent import BaseAgent
from arena.agents.dispatcher import StreamDispatcher
from arena.api.deps import get_dispatcher, get_message_store
from arena.client.agent_chat import AgentChat, ChatStatus
from arena.client.api import ApiResult, ArenaChatClient
from arena.client.documents import DocumentAttachment, DocumentProcessingError, ensure_documents_ready
from arena.client.relay import PendingSend, PendingSendRelay
from arena.client.rounds import (
    build_rounds,
    dto_to_ui_message,
    is_error_message,
    is_waiting,
    partition_session_messages,
    should_show_error,
)
from arena.client.session import ChatSessionController
from arena.client.upload import UploadError, upload_file
from arena.main import app
from arena.models.chat import UIMessage
from arena.models.session import SessionMessage
from arena.storage.database import Base, create_engine, create_session_factory
from arena.storage.relay_store import MemoryKeyValueStore
from arena.storage.sql_store import SqlMessageStore
from arena.streaming.fragments import Fragment


def ui(message_id, role, text=""):
    return UIMessage(id=message_id, role=role, parts=[{"type": "text", "text": text}])


def dto(message_id, role, content="", agent_id=None, reply_to=None, **extra):
    return SessionMessage(
        id=message_id,
        role=role,
        content=content,
        agent_id=agent_id,
        reply_to_message_id=reply_to,
        created_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
        **extra,
    )


class TestRounds:
    """Tests for round assembly and display rules."""

    def test_missing_reply_is_none(self):
        user = ui("u1", "user", "Hi")
        asst1a, asst1c = ui("a", "assistant"), ui("c", "assistant")
        rounds = build_rounds([[user, asst1a], [user], [user, asst1c]])
        assert len(rounds) == 1
        assert rounds[0].user is user
        assert rounds[0].assistants == [asst1a, None, asst1c]

    def test_multiple_rounds(self):
        u1, u2 = ui("u1", "user"), ui("u2", "user")
        a1, a2, b2 = ui("a1", "assistant"), ui("a2", "assistant"), ui("b2", "assistant")
        rounds = build_rounds([[u1, a1, u2, a2], [u1, u2, b2], [u1, u2]])
        assert [r.user.id for r in rounds] == ["u1", "u2"]
        assert rounds[0].assistants == [a1, None, None]
        assert rounds[1].assistants == [a2, b2, None]

    def test_empty(self):
        assert build_rounds([]) == []
        assert build_rounds([[], [], []]) == []

    def test_error_only_on_last_round(self):
        assert should_show_error(1, 2, None, "boom")
        assert not should_show_error(0, 2, None, "boom")
        assert not should_show_error(1, 2, ui("a", "assistant"), "boom")
        assert not should_show_error(1, 2, None, None)

    def test_waiting(self):
        assert is_waiting(None, ChatStatus.SUBMITTED)
        assert is_waiting(None, ChatStatus.STREAMING)
        assert not is_waiting(None, ChatStatus.READY)
        assert not is_waiting(ui("a", "assistant"), ChatStatus.STREAMING)

    def test_partition_session_messages(self):
        history = [
            dto("u1", "user", "Hi"),
            dto("m1", "assistant", "A", agent_id="memorylake", reply_to="u1"),
            dto("s1", "assistant", "C", agent_id="supermemory", reply_to="u1"),
            dto("u2", "user", "Again"),
            dto("x2", "assistant", "B", agent_id="mem0", reply_to="u2"),
        ]
        lists = partition_session_messages(history, ["memorylake", "mem0", "supermemory"])
        assert [[m.id for m in l] for l in lists] == [
            ["u1", "m1", "u2"],
            ["u1", "u2", "x2"],
            ["u1", "s1", "u2"],
        ]

    def test_dto_to_ui_message(self):
        message = dto_to_ui_message(dto(
            "a1", "assistant", "quota exceeded", agent_id="mem0", reply_to="u1",
            provider_id="gpt-5-mini", metadata={"isError": True},
        ))
        assert message.parts[0].text == "quota exceeded"
        assert message.metadata == {"agentId": "mem0", "providerId": "gpt-5-mini", "isError": True}
        assert is_error_message(message)
        assert not is_error_message(None)

    def test_dto_attachments_become_file_refs(self):
        message = dto_to_ui_message(dto(
            "u1", "user", "See file",
            attachments=[{"drive_item_id": "d1", "filename": "a.png", "size": 5, "mimeType": "image/png", "x": 1}],
        ))
        assert [p.type for p in message.parts] == ["text", "data-file-ref"]
        assert message.parts[1].data == {"drive_item_id": "d1", "filename": "a.png", "size": 5, "mimeType": "image/png"}
        assert message.metadata is None


def scripted(*fragments, error=None):
    """Stream function replaying fragments, optionally raising afterwards."""
    async def stream(messages):
        for fragment in fragments:
            yield fragment
        if error:
            raise error
    return stream


class TestAgentChat:
    """Tests for the per-agent state machine."""

    def test_status_transitions(self):
        chat = AgentChat("mem0", scripted())
        chat.status = ChatStatus.SUBMITTED
        chat.apply(Fragment.start("m-1", {"agentId": "mem0"}))
        assert chat.status is ChatStatus.SUBMITTED
        assert chat.messages == []

        chat.apply(Fragment.text_start("t"))
        chat.apply(Fragment.text_delta("t", "Hel"))
        assert chat.status is ChatStatus.STREAMING
        chat.apply(Fragment.text_delta("t", "lo"))
        chat.apply(Fragment.text_end("t"))
        chat.apply(Fragment.finish("stop", {"agentId": "mem0"}))

        assert chat.status is ChatStatus.READY
        assert chat.messages[0].id == "m-1"
        assert chat.messages[0].parts[0].text == "Hello"

    @pytest.mark.asyncio
    async def test_error_keeps_partial_text(self):
        chat = AgentChat("mem0", scripted(
            Fragment.start("m-1"),
            Fragment.text_start("t"),
            Fragment.text_delta("t", "part"),
            Fragment.error("quota exceeded"),
        ))
        chat.append(ui("u1", "user", "Hi"))
        await chat.send()
        assert chat.status is ChatStatus.ERROR
        assert chat.error == "quota exceeded"
        assert chat.messages[-1].parts[0].text == "part"

    @pytest.mark.asyncio
    async def test_ignores_fragments_after_terminal(self):
        chat = AgentChat("mem0", scripted(
            Fragment.start("m-1"),
            Fragment.text_delta("t", "done"),
            Fragment.finish(),
            Fragment.text_delta("t", " extra"),
        ))
        await chat.send()
        assert chat.status is ChatStatus.READY
        assert chat.messages[-1].parts[0].text == "done"

    @pytest.mark.asyncio
    async def test_request_failure_sets_error(self):
        chat = AgentChat("mem0", scripted(error=httpx.ConnectError("refused")))
        await chat.send()
        assert chat.status is ChatStatus.ERROR
        assert chat.error == "refused"

    @pytest.mark.asyncio
    async def test_stop_cancels_only_this_chat(self):
        release = asyncio.Event()

        async def slow(messages):
            yield Fragment.start("m")
            await release.wait()
            yield Fragment.finish()

        stopped = AgentChat("mem0", slow)
        other = AgentChat("supermemory", slow)
        tasks = [asyncio.create_task(stopped.send()), asyncio.create_task(other.send())]
        await asyncio.sleep(0)
        await asyncio.sleep(0)

        stopped.stop()
        release.set()
        results = await asyncio.gather(*tasks, return_exceptions=True)

        assert isinstance(results[0], asyncio.CancelledError)
        assert stopped.status is ChatStatus.READY
        assert other.status is ChatStatus.READY
        assert results[1] is None


class TestPendingSendRelay:
    """Tests for the first-message relay."""

    @pytest.mark.asyncio
    async def test_round_trip_consumes_entry(self):
        kv = MemoryKeyValueStore()
        relay = PendingSendRelay(kv)
        pending = PendingSend(provider_id="m", text="hello", attachments=[])

        await relay.stash("s1", pending)
        assert await kv.get("chat-pending-streams-s1") is not None

        assert await relay.take("s1") == pending
        assert await kv.get("chat-pending-streams-s1") is None
        assert await relay.take("s1") is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("raw", ["{oops", "[]", '{"text": "hi"}', '{"providerId": "m", "text": "x", "attachments": 3}'])
    async def test_malformed_entry_discarded(self, raw):
        kv = MemoryKeyValueStore()
        await kv.set("chat-pending-streams-s1", raw)
        assert await PendingSendRelay(kv).take("s1") is None
        assert await kv.get("chat-pending-streams-s1") is None

    def test_wire_shape(self):
        assert json.loads(PendingSend("m", "hi").to_json()) == {"providerId": "m", "text": "hi"}


class FakeArenaApi:
    """Stands in for ArenaChatClient in polling and upload tests."""

    def __init__(self, statuses=(), create=None, multipart=None, put_status=200, complete=None):
        self.statuses = list(statuses)
        self.status_calls = 0
        self.create = create or ApiResult(200, {"success": True, "data": {
            "drive_item_id": "d1", "memorylake_document_id": "ml", "supermemory_document_id": "sm",
        }})
        self.multipart = multipart
        self.put_status = put_status
        self.complete = complete or ApiResult(200, {"success": True})
        self.puts = []
        self.completed = None

    async def create_document(self, project_id, file_name, object_key, user_id=None):
        self.created_with = (project_id, file_name, object_key, user_id)
        return self.create

    async def document_status(self, memorylake_document_id, supermemory_document_id, user_id=None):
        self.status_calls += 1
        status = self.statuses.pop(0) if self.statuses else "pending"
        return ApiResult(200, {"success": True, "data": {"memorylake_status": status}})

    async def create_multipart(self, file_size, user_id=None):
        return self.multipart

    async def put_part(self, upload_url, data):
        self.puts.append((upload_url, data))
        return httpx.Response(self.put_status, headers={"ETag": f'"etag-{len(self.puts)}"'})

    async def complete_multipart(self, upload_id, object_key, part_etags, user_id=None):
        self.completed = (upload_id, object_key, part_etags)
        return self.complete


class FakeClock:

    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self):
        return self.now

    async def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


class TestEnsureDocumentsReady:
    """Tests for attachment readiness polling."""

    async def run(self, api, clock=None, project_id="p1"):
        clock = clock or FakeClock()
        return await ensure_documents_ready(
            api, "user-1", project_id, [DocumentAttachment(object_key="uploads/a.pdf")],
            sleep=clock.sleep, clock=clock,
        )

    @pytest.mark.asyncio
    async def test_pending_pending_okay(self):
        api = FakeArenaApi(statuses=["pending", "pending", "okay"])
        clock = FakeClock()
        assert await self.run(api, clock) == ["d1"]
        assert api.status_calls == 3
        assert clock.sleeps == [2.0, 2.0]
        assert api.created_with == ("p1", "a.pdf", "uploads/a.pdf", "user-1")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("terminal", ["error", "invalid"])
    async def test_failed_status(self, terminal):
        api = FakeArenaApi(statuses=["pending", terminal])
        with pytest.raises(DocumentProcessingError, match=f"memorylake_status: {terminal}"):
            await self.run(api)

    @pytest.mark.asyncio
    async def test_timeout(self):
        api = FakeArenaApi(statuses=[])
        clock = FakeClock()
        with pytest.raises(DocumentProcessingError, match="Document processing timed out"):
            await self.run(api, clock)
        assert clock.now >= 300
        assert api.status_calls == 151

    @pytest.mark.asyncio
    async def test_missing_drive_item_id(self):
        api = FakeArenaApi(statuses=["okay"], create=ApiResult(200, {"success": True, "data": {
            "memorylake_document_id": "ml", "supermemory_document_id": "sm",
        }}))
        with pytest.raises(DocumentProcessingError, match="missing drive_item_id"):
            await self.run(api)
        assert api.status_calls == 0

    @pytest.mark.asyncio
    async def test_missing_project(self):
        with pytest.raises(DocumentProcessingError, match="Arena profile or project is missing"):
            await self.run(FakeArenaApi(), project_id="  ")

    @pytest.mark.asyncio
    async def test_create_failure_message(self):
        api = FakeArenaApi(create=ApiResult(403, {"success": False, "message": "Forbidden project"}))
        with pytest.raises(DocumentProcessingError, match="Forbidden project"):
            await self.run(api)
        api = FakeArenaApi(create=ApiResult(500, None))
        with pytest.raises(DocumentProcessingError, match=r"Create document failed \(500\)"):
            await self.run(api)


class TestUploadFile:
    """Tests for multipart upload."""

    def multipart(self, sizes):
        return ApiResult(200, {"success": True, "data": {
            "upload_id": "up-1",
            "object_key": "uploads/file.bin",
            "part_items": [
                {"number": i + 1, "size": size, "upload_url": f"https://s3.test/part/{i + 1}"}
                for i, size in enumerate(sizes)
            ],
        }})

    @pytest.mark.asyncio
    async def test_uploads_parts_and_completes(self):
        api = FakeArenaApi(multipart=self.multipart([4, 2]))
        progress = []
        key = await upload_file(api, b"abcdef", on_progress=lambda loaded, total: progress.append((loaded, total)))

        assert key == "uploads/file.bin"
        assert api.puts == [("https://s3.test/part/1", b"abcd"), ("https://s3.test/part/2", b"ef")]
        assert api.completed == ("up-1", "uploads/file.bin", [
            {"number": 1, "etag": "etag-1"},
            {"number": 2, "etag": "etag-2"},
        ])
        assert progress == [(4, 6), (6, 6)]

    @pytest.mark.asyncio
    async def test_part_failure(self):
        api = FakeArenaApi(multipart=self.multipart([3]), put_status=403)
        with pytest.raises(UploadError, match="Part 1 upload failed: 403"):
            await upload_file(api, b"abc")
        assert api.completed is None

    @pytest.mark.asyncio
    async def test_create_failure(self):
        api = FakeArenaApi(multipart=ApiResult(400, {"success": False, "error_code": "TOO_LARGE"}))
        with pytest.raises(UploadError, match="TOO_LARGE"):
            await upload_file(api, b"abc")


class EchoAgent(BaseAgent):
    """Replies with a fixed prefix plus the last user text."""

    def __init__(self, agent_id, fail=False):
        self.agent_id = agent_id
        self.display_name = agent_id
        self.fail = fail

    async def stream(self, history, model_id, user_id, assistant_message_id, profile=None):
        if self.fail:
            yield Fragment.error(f"{self.agent_id} is down")
            return

        async def tokens():
            yield f"{self.agent_id}: "
            yield history[-1].text_content()

        async for fragment in self.stream_text(tokens(), assistant_message_id):
            yield fragment


@pytest_asyncio.fixture
async def file_store(tmp_path):
    """File-backed store: concurrent agent streams each get their own connection."""
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'arena.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield SqlMessageStore(create_session_factory(engine))
    await engine.dispose()


class TestChatSessionController:
    """End-to-end: controller -> HTTP API -> dispatcher -> store."""

    @pytest.mark.asyncio
    async def test_new_session_round(self, overrides, file_store):
        store = file_store
        overrides[get_message_store] = lambda: store
        dispatcher = StreamDispatcher({
            "memorylake": EchoAgent("memorylake"),
            "mem0": EchoAgent("mem0", fail=True),
            "supermemory": EchoAgent("supermemory"),
        })
        overrides[get_dispatcher] = lambda: dispatcher

        api = ArenaChatClient("http://arena.test", user_id="user-1", transport=httpx.ASGITransport(app=app))
        relay = PendingSendRelay(MemoryKeyValueStore())
        async with api:
            sender = ChatSessionController(api, relay, model_id="claude-sonnet-4-5-20250929")
            session_id = await sender.send("Hello")
            assert session_id is not None

            view = ChatSessionController(api, relay)
            await view.open(session_id)

            rounds = view.rounds
            assert len(rounds) == 1
            memorylake, mem0, supermemory = rounds[0].assistants
            assert memorylake.parts[0].text == "memorylake: Hello"
            assert mem0 is None
            assert supermemory.parts[0].text == "supermemory: Hello"
            assert view.model_id == "claude-sonnet-4-5-20250929"
            assert view.chats[1].status is ChatStatus.ERROR
            assert should_show_error(0, len(rounds), mem0, view.chats[1].error)
            assert not view.is_busy

            # Relay entry was consumed; reopening replays stored history only
            reloaded = ChatSessionController(api, relay)
            await reloaded.open(session_id)
            replayed = reloaded.rounds
            assert len(replayed) == 1
            assert replayed[0].assistants[1].metadata["isError"] is True
            assert replayed[0].assistants[1].parts[0].text == "mem0 is down"

        session = await store.get_session(session_id)
        assert session.title == "Hello"

    @pytest.mark.asyncio
    async def test_prepare_attachments(self):
        api = FakeArenaApi(statuses=["okay"])
        controller = ChatSessionController(api, PendingSendRelay(MemoryKeyValueStore()), user_id="user-1")
        upload = DocumentAttachment(object_key="uploads/a.pdf", filename="a.pdf", size=3, mime_type="application/pdf")

        attachments = await controller.prepare_attachments([upload], "p1")

        assert attachments == [{"drive_item_id": "d1", "filename": "a.pdf", "size": 3, "mimeType": "application/pdf"}]
        assert await controller.prepare_attachments([], None) == []


class RecordingChatApi:
    """Records stream_chat calls and answers every stream with an empty finish."""

    def __init__(self):
        self.calls = []

    async def save_user_message(self, session_id, content, attachments=None):
        return "u1"

    async def stream_chat(self, session_id, messages, agent_id, model_id, memorylake_profile=None):
        self.calls.append((agent_id, memorylake_profile))
        yield Fragment.start(f"a-{agent_id}")
        yield Fragment.finish()


class TestMemorylakeProfileRouting:

    @pytest.mark.asyncio
    async def test_profile_sent_to_memorylake_only(self):
        api = RecordingChatApi()
        profile = {"mem0rgId": "org", "mem0ProjId": "proj", "datasetId": "ds"}
        controller = ChatSessionController(api, PendingSendRelay(MemoryKeyValueStore()), memorylake_profile=profile)
        controller.session_id = "s1"

        await controller.send("Hi")

        assert sorted(api.calls, key=lambda c: c[0]) == [
            ("mem0", None),
            ("memorylake", profile),
            ("supermemory", None),
        ]
