"""Session settings routes.

Endpoints:
    GET /v1/settings              Whether an API key is configured
    PUT /v1/settings/api-key      Set (or clear) the completion service key
"""

import logging
from typing import Optional

from fastapi import APIRouter
from pydantic import BaseModel

from promptgraph.api.session import get_session

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/settings", tags=["settings"])


class ApiKeyRequest(BaseModel):
    api_key: Optional[str] = None


@router.get("")
async def get_settings():
    """Report settings without revealing the key."""
    return {"has_api_key": bool(get_session().credentials.current())}


@router.put("/api-key")
async def set_api_key(request: ApiKeyRequest):
    """Replace the in-memory API key. An empty key clears it."""
    credentials = get_session().credentials
    credentials.set(request.api_key)
    return {"has_api_key": bool(credentials.current())}
