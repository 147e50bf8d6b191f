"""
Sync status routes.
"""

from typing import Any, Dict

from fastapi import APIRouter

from . import get_session

router = APIRouter()


@router.get("/status", summary="Persistence status")
async def get_status() -> Dict[str, Any]:
    return get_session().get_status()


@router.post("/flush", summary="Save pending changes now")
async def flush() -> Dict[str, Any]:
    """Write pending changes immediately and report the resulting status."""
    session = get_session()
    await session.flush()
    return session.get_status()
