"""
Chat Models - request body of the streaming chat endpoint.
Field names on the wire follow the web client (camelCase).
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

AgentIdField = Literal["memorylake", "mem0", "supermemory"]

_FILE_REF_FIELDS = (
    ("drive_item_id", str),
    ("url", str),
    ("filename", str),
    ("mimeType", str),
    ("size", int),
)


class FileRef(BaseModel):
    """Reference to an uploaded file (drive item); never sent to a model as-is."""
    model_config = ConfigDict(populate_by_name=True)

    drive_item_id: Optional[str] = None
    url: Optional[str] = None
    filename: Optional[str] = None
    mime_type: Optional[str] = Field(None, alias="mimeType")
    size: Optional[int] = None

    @classmethod
    def from_part_data(cls, data: Dict[str, Any]) -> "FileRef":
        """Build from client part data; badly typed fields are treated as unknown."""
        fields: Dict[str, Any] = {}
        for key, kind in _FILE_REF_FIELDS:
            value = data.get(key)
            if isinstance(value, kind) and not isinstance(value, bool):
                fields[key] = value
        return cls.model_validate(fields)


class MessagePart(BaseModel):
    """A part of a UI message: text, data-file-ref, or any stream part type."""
    model_config = ConfigDict(extra="allow")

    type: str
    text: Optional[str] = None
    data: Optional[Dict[str, Any]] = None

    def file_ref(self) -> Optional[FileRef]:
        if self.type != "data-file-ref" or not isinstance(self.data, dict):
            return None
        return FileRef.from_part_data(self.data)


class UIMessage(BaseModel):
    """Single chat UI message."""
    id: Optional[str] = None
    role: Literal["user", "system", "assistant"]
    parts: List[MessagePart]
    metadata: Optional[Dict[str, Any]] = None

    def file_refs(self) -> List[FileRef]:
        return [ref for ref in (p.file_ref() for p in self.parts) if ref is not None]


class MemorylakeProfile(BaseModel):
    """Memory Lake profile ids, forwarded to the provider as request headers."""
    mem0rgId: str = Field(..., min_length=1)
    mem0ProjId: str = Field(..., min_length=1)
    datasetId: str = Field(..., min_length=1)

    @classmethod
    def parse(cls, value: Any) -> Optional["MemorylakeProfile"]:
        """Return a profile when value has all three ids, otherwise None."""
        if isinstance(value, MemorylakeProfile):
            return value
        if not isinstance(value, dict):
            return None
        fields = {key: value.get(key) for key in ("mem0rgId", "mem0ProjId", "datasetId")}
        if not all(isinstance(v, str) and v for v in fields.values()):
            return None
        return cls(**fields)

    def to_headers(self) -> Dict[str, str]:
        return {
            "x-memorylake-org-id": self.mem0rgId,
            "x-memorylake-project-id": self.mem0ProjId,
            "x-memorylake-dataset-id": self.datasetId,
        }


class ChatRequest(BaseModel):
    """Body of POST /api/chat."""
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., min_length=1, description="Session id")
    messages: List[UIMessage] = Field(..., min_length=1)
    agent_id: AgentIdField = Field(..., alias="agentId")
    model_id: str = Field(..., alias="modelId", min_length=1)
    memorylake_profile: Optional[Dict[str, Any]] = Field(None, alias="memorylakeProfile")
