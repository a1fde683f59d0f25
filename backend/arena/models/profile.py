"""
Profile Models - signed-in user and their Arena profile.
"""

from typing import Optional

from pydantic import BaseModel

from .chat import MemorylakeProfile


class ArenaProfile(MemorylakeProfile):
    """Memory Lake ids plus the optional project used for document ingestion."""
    projId: Optional[str] = None


class ProfileUser(BaseModel):
    id: str
    display_name: str = ""
    email: str = ""
    avatar_url: str = ""


class ProfileResponse(BaseModel):
    user: ProfileUser
    arenaProfile: ArenaProfile
