"""Client toolkit - consumes the arena API the way the web client does."""

from .agent_chat import AgentChat, ChatStatus
from .api import ApiResult, ArenaChatClient, ChatClientError
from .documents import DocumentAttachment, DocumentProcessingError, ensure_documents_ready
from .relay import PendingSend, PendingSendRelay, create_pending_send_relay
from .rounds import (
    Round,
    build_rounds,
    dto_to_ui_message,
    is_waiting,
    partition_session_messages,
    should_show_error,
)
from .session import ChatSessionController
from .upload import UploadError, upload_file

__all__ = [
    'AgentChat', 'ChatStatus',
    'ApiResult', 'ArenaChatClient', 'ChatClientError',
    'DocumentAttachment', 'DocumentProcessingError', 'ensure_documents_ready',
    'PendingSend', 'PendingSendRelay', 'create_pending_send_relay',
    'Round', 'build_rounds', 'dto_to_ui_message', 'is_waiting', 'partition_session_messages',
    'should_show_error',
    'ChatSessionController',
    'UploadError', 'upload_file',
]
