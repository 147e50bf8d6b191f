"""
API route modules.
"""

from fastapi import HTTPException

# Service references (set by create_app)
_session = None
_token_provider = None


def set_services(session=None, token_provider=None):
    """Set service references for route handlers."""
    global _session, _token_provider
    _session = session
    _token_provider = token_provider


def get_session():
    """Get the graph session."""
    if _session is None:
        raise HTTPException(
            status_code=503,
            detail={"code": "SERVICE_UNAVAILABLE", "message": "Graph session not initialized"},
        )
    return _session


def get_token_provider():
    """Get the OAuth token provider, if remote sync is configured."""
    return _token_provider


from .nodes import router as nodes_router
from .sync import router as sync_router
from .auth import router as auth_router

__all__ = [
    "set_services",
    "get_session",
    "get_token_provider",
    "nodes_router",
    "sync_router",
    "auth_router",
]
