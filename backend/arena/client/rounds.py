"""
Round assembly for the three-column chat view.

A round is one user message plus, per agent, that agent's reply (or None
while it has not replied). Agent 1's list drives the rounds; every list is
expected to alternate ``[user, assistant?, user, assistant?, ...]``.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from ..models.chat import MessagePart, UIMessage
from ..models.session import SessionMessage
from .agent_chat import ChatStatus


@dataclass
class Round:
    user: UIMessage
    assistants: List[Optional[UIMessage]]


def build_rounds(lists: Sequence[Sequence[UIMessage]]) -> List[Round]:
    """
    Zip per-agent message lists into rounds.

    For each user message in the first list, every list contributes the
    message right after its own copy of that user turn (matched by id) if
    it is an assistant message, otherwise None.
    """
    if not lists:
        return []

    positions = [{m.id: i for i, m in enumerate(messages) if m.role == "user"} for messages in lists]
    rounds: List[Round] = []
    for user in lists[0]:
        if user.role != "user":
            continue
        assistants: List[Optional[UIMessage]] = []
        for messages, index in zip(lists, positions):
            pos = index.get(user.id)
            reply = None
            if pos is not None and pos + 1 < len(messages) and messages[pos + 1].role == "assistant":
                reply = messages[pos + 1]
            assistants.append(reply)
        rounds.append(Round(user=user, assistants=assistants))
    return rounds


def is_waiting(assistant: Optional[UIMessage], status: ChatStatus) -> bool:
    """True while the agent has no reply for the round and a request is in flight."""
    return assistant is None and status in (ChatStatus.SUBMITTED, ChatStatus.STREAMING)


def should_show_error(
    round_index: int,
    total_rounds: int,
    assistant: Optional[UIMessage],
    error: Optional[str],
) -> bool:
    """A live stream error belongs to the last round's empty slot only."""
    return assistant is None and round_index == total_rounds - 1 and error is not None


def is_error_message(message: Optional[UIMessage]) -> bool:
    return bool(message is not None and message.metadata and message.metadata.get("isError"))


def _attachment_data(attachment: Dict[str, Any]) -> Dict[str, Any]:
    data: Dict[str, Any] = {}
    for key, kind in (("drive_item_id", str), ("filename", str), ("size", int), ("mimeType", str)):
        value = attachment.get(key)
        if isinstance(value, kind) and not isinstance(value, bool):
            data[key] = value
    return data


def file_ref_parts(attachments: Optional[Sequence[Dict[str, Any]]]) -> List[MessagePart]:
    return [MessagePart(type="data-file-ref", data=_attachment_data(a)) for a in attachments or []]


def dto_to_ui_message(dto: SessionMessage) -> UIMessage:
    """Stored message -> UI message: one text part, then one part per attachment."""
    metadata: Dict[str, Any] = {}
    if dto.agent_id is not None:
        metadata["agentId"] = dto.agent_id
    if dto.provider_id is not None:
        metadata["providerId"] = dto.provider_id
    if dto.metadata and isinstance(dto.metadata.get("isError"), bool):
        metadata["isError"] = dto.metadata["isError"]

    parts = [MessagePart(type="text", text=dto.content)] + file_ref_parts(dto.attachments)
    return UIMessage(id=dto.id, role=dto.role, parts=parts, metadata=metadata or None)


def partition_session_messages(
    dtos: Sequence[SessionMessage], agent_ids: Sequence[str]
) -> List[List[SessionMessage]]:
    """
    Split a session's flat history into one list per agent.

    Each list is ``[user1, reply1?, user2, reply2?, ...]`` where a reply is
    the assistant message of that agent whose reply_to points at the user
    message.
    """
    grouped = []
    for message in dtos:
        if message.role != "user":
            continue
        replies = [m for m in dtos if m.role == "assistant" and m.reply_to_message_id == message.id]
        grouped.append((message, replies))

    result: List[List[SessionMessage]] = []
    for agent_id in agent_ids:
        per_agent: List[SessionMessage] = []
        for user, replies in grouped:
            per_agent.append(user)
            reply = next((r for r in replies if r.agent_id == agent_id), None)
            if reply is not None:
                per_agent.append(reply)
        result.append(per_agent)
    return result
