"""Models module."""

from .chat import ChatRequest, FileRef, MemorylakeProfile, MessagePart, UIMessage
from .profile import ArenaProfile, ProfileResponse, ProfileUser
from .session import (
    Attachment, OperationResult, RenameSession, SaveUserMessage, SavedUserMessage,
    SessionCreated, SessionListItem, SessionMessage,
)

__all__ = [
    'ChatRequest', 'FileRef', 'MemorylakeProfile', 'MessagePart', 'UIMessage',
    'ArenaProfile', 'ProfileResponse', 'ProfileUser',
    'Attachment', 'OperationResult', 'RenameSession', 'SaveUserMessage', 'SavedUserMessage',
    'SessionCreated', 'SessionListItem', 'SessionMessage',
]
