"""
Session Models - DTOs for chat sessions and their stored messages.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base for DTOs serialized with camelCase keys."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class Attachment(BaseModel):
    """Attachment descriptor stored on a user message."""
    model_config = ConfigDict(populate_by_name=True)

    drive_item_id: Optional[str] = None
    filename: Optional[str] = None
    size: Optional[int] = None
    mime_type: Optional[str] = Field(None, alias="mimeType")

    def to_record(self) -> Dict[str, Any]:
        """Stored shape: only the keys that are set, mimeType in camelCase."""
        return self.model_dump(by_alias=True, exclude_none=True)


class SessionListItem(CamelModel):
    id: str
    title: Optional[str] = None
    updated_at: datetime


class SessionCreated(BaseModel):
    id: str


class RenameSession(BaseModel):
    title: str = Field(..., min_length=1)


class OperationResult(BaseModel):
    ok: bool
    error: Optional[str] = None


class SessionMessage(CamelModel):
    """Stored message as returned to clients for history replay."""
    id: str
    role: str
    content: str
    agent_id: Optional[str] = None
    provider_id: Optional[str] = None
    attachments: Optional[List[Dict[str, Any]]] = None
    metadata: Optional[Dict[str, Any]] = None
    reply_to_message_id: Optional[str] = None
    created_at: datetime


class SaveUserMessage(BaseModel):
    content: str
    attachments: Optional[List[Attachment]] = None


class SavedUserMessage(CamelModel):
    user_message_id: str
