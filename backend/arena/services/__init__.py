"""Services module - Arena backend and main-domain identity integrations."""

from .arena_client import ArenaClient, DownloadUrl, UpstreamResponse, create_arena_client, parse_arena_profile
from .identity_client import IdentityClient, create_identity_client

__all__ = [
    'ArenaClient',
    'DownloadUrl',
    'UpstreamResponse',
    'create_arena_client',
    'parse_arena_profile',
    'IdentityClient',
    'create_identity_client',
]
