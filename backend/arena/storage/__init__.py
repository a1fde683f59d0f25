"""Storage module - message store, database bootstrap and relay key-value stores."""

from .database import Base, close_database, create_engine, create_session_factory, get_session_factory, init_database
from .records import MessageRecord, SessionRecord
from .interface import MessageStoreInterface
from .sql_store import SqlMessageStore
from .relay_store import FileKeyValueStore, KeyValueStore, MemoryKeyValueStore

__all__ = [
    'Base',
    'close_database',
    'create_engine',
    'create_session_factory',
    'get_session_factory',
    'init_database',
    'MessageRecord',
    'SessionRecord',
    'MessageStoreInterface',
    'SqlMessageStore',
    'FileKeyValueStore',
    'KeyValueStore',
    'MemoryKeyValueStore',
]
