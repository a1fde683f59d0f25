"""
Chat API endpoint - one streaming reply per agent.

The web client opens three requests per round (one per agent). Each request
creates the assistant row up front, streams the agent's fragments as SSE and
persists the final text when the stream completes.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import StreamingResponse
from pydantic import ValidationError

from ..agents.dispatcher import ChatStreamParams, StreamDispatcher
from ..config import settings
from ..llm.messages import extract_text
from ..models.chat import ChatRequest
from ..storage.interface import MessageStoreInterface
from ..streaming.fragments import SSE_DONE, encode_sse
from ..streaming.ui_stream import StreamResult, run_ui_message_stream
from ..streaming.writer import StreamWriter
from ..utils.auth import get_current_user_id
from ..utils.errors import ApiError
from .deps import get_dispatcher, get_message_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chat", tags=["chat"])

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",  # Disable nginx buffering
}


async def parse_chat_request(request: Request) -> ChatRequest:
    """
    Parse and validate the chat body.

    Raises:
        ApiError: 400 for invalid JSON, schema violations, or a last message not from the user
    """
    try:
        payload = await request.json()
    except ValueError:
        raise ApiError(status.HTTP_400_BAD_REQUEST, "Bad Request")

    try:
        body = ChatRequest.model_validate(payload)
    except ValidationError as e:
        raise ApiError(
            status.HTTP_400_BAD_REQUEST,
            "Validation failed",
            issues=e.errors(include_url=False, include_context=False, include_input=False),
        )

    if body.messages[-1].role != "user":
        raise ApiError(status.HTTP_400_BAD_REQUEST, "last message must be user")
    return body


async def prepare_assistant_message(
    store: MessageStoreInterface,
    body: ChatRequest,
    user_message_id: Optional[str],
) -> str:
    """
    Create the assistant row for this round and agent, or reset the existing one.

    The reply target must be a stored user message of the requested session.

    Returns:
        The assistant message id

    Raises:
        ApiError: 400 when the last message is not a stored user message of the session
    """
    user_message = await store.get_message(user_message_id) if user_message_id else None
    if user_message is None or user_message.role != "user" or user_message.session_id != body.id:
        raise ApiError(status.HTTP_400_BAD_REQUEST, "user message not found in session")

    for existing in await store.get_messages_by_reply_to(user_message_id):
        if existing.agent_id == body.agent_id and existing.session_id == body.id:
            await store.update_message(existing.id, content="", metadata={})
            return existing.id

    record = await store.create_message(
        session_id=body.id,
        role="assistant",
        content="",
        agent_id=body.agent_id,
        provider_id=body.model_id,
        reply_to_message_id=user_message_id,
    )
    return record.id


@router.post("")
async def chat(
    request: Request,
    user_id: str = Depends(get_current_user_id),
    store: MessageStoreInterface = Depends(get_message_store),
    dispatcher: StreamDispatcher = Depends(get_dispatcher),
):
    """
    Stream one agent's reply.

    Body: ``{id, messages, agentId, modelId, memorylakeProfile?}``.
    Response: ``text/event-stream`` of fragments, terminated by ``data: [DONE]``.
    """
    body = await parse_chat_request(request)
    last_message = body.messages[-1]
    user_text = extract_text(last_message.parts)

    assistant_message_id = await prepare_assistant_message(store, body, last_message.id)

    log_fields = {
        "session_id": body.id,
        "agent": body.agent_id,
        "model": body.model_id,
        "user_id": user_id,
        "message_id": assistant_message_id,
    }
    logger.info(f"Chat stream requested for {body.agent_id}", extra={"extra_fields": log_fields})

    async def on_stream_error(error_text: str) -> None:
        await store.update_message(assistant_message_id, content=error_text, metadata={"isError": True})

    params = ChatStreamParams(
        agent_id=body.agent_id,
        model_id=body.model_id,
        user_id=user_id,
        messages=body.messages,
        assistant_message_id=assistant_message_id,
        memorylake_profile=body.memorylake_profile,
        on_stream_error=on_stream_error,
    )

    async def execute(writer: StreamWriter) -> None:
        await dispatcher.dispatch(writer, params)

    async def on_finish(result: StreamResult) -> None:
        if user_text:
            await store.update_session(body.id, title=user_text[: settings.title_max_length])
        if not result.errored:
            await store.update_message_content(assistant_message_id, result.text)
        logger.info(
            f"Chat stream finished for {body.agent_id}",
            extra={"extra_fields": {
                **log_fields,
                "finish_reason": result.finish_reason,
                "errored": result.errored,
                "content_length": len(result.text),
            }}
        )

    async def event_generator():
        async for fragment in run_ui_message_stream(execute, on_finish=on_finish):
            yield encode_sse(fragment)
        yield SSE_DONE

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )
