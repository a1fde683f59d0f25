"""
Liveness and catalogue endpoints.
"""

from fastapi import APIRouter

from ..config import settings
from ..core.catalog import AGENTS, MODELS

router = APIRouter(tags=["health"])


@router.get("/ping")
async def ping():
    """Returns 200 while the process is up."""
    return {"ok": True}


@router.get("/models")
async def list_models():
    """Model selector entries and the agents of a round, in display order."""
    return {
        "defaultModelId": settings.default_model_id,
        "models": [
            {"id": m.model_id, "name": m.display_name, "group": m.group, "vendor": m.vendor}
            for m in MODELS
        ],
        "agents": [{"id": a.agent_id, "name": a.display_name} for a in AGENTS],
    }
