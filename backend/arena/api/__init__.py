"""API module."""

from .arena import router as arena_router
from .chat import router as chat_router
from .health import router as health_router
from .profile import router as profile_router
from .sessions import router as sessions_router
from .upload import router as upload_router

__all__ = [
    'arena_router',
    'chat_router',
    'health_router',
    'profile_router',
    'sessions_router',
    'upload_router',
]
