"""
Google Drive authorization routes.

The login redirect and the consent callback form the user action that
allows an interactive credential request.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import RedirectResponse

from . import get_session, get_token_provider
from ...exceptions import AuthorizationRequiredError, OAuthConfigurationError

logger = logging.getLogger(__name__)

router = APIRouter()


def _require_provider():
    provider = get_token_provider()
    if provider is None or not provider.is_configured():
        raise HTTPException(
            status_code=503,
            detail={"code": "OAUTH_NOT_CONFIGURED", "message": "Google Drive sync is not configured"},
        )
    return provider


@router.get("/google/login", summary="Start Google Drive authorization")
async def login():
    """Redirect to Google's consent screen."""
    provider = _require_provider()
    try:
        auth_url, _ = provider.generate_auth_url()
    except OAuthConfigurationError as e:
        raise HTTPException(
            status_code=503,
            detail={"code": "OAUTH_NOT_CONFIGURED", "message": e.message},
        )
    return RedirectResponse(auth_url, status_code=302)


@router.get("/google/callback", summary="Google Drive authorization callback")
async def callback(
    code: Optional[str] = Query(None),
    state: Optional[str] = Query(None),
    error: Optional[str] = Query(None),
) -> Dict[str, Any]:
    """Accept the authorization code and connect remote sync."""
    provider = _require_provider()

    if error:
        logger.warning(f"Google authorization denied: {error}")
        raise HTTPException(
            status_code=400,
            detail={"code": "AUTHORIZATION_DENIED", "message": f"Authorization denied: {error}"},
        )

    if not code or not state:
        raise HTTPException(
            status_code=400,
            detail={"code": "INVALID_CALLBACK", "message": "Missing code or state"},
        )

    try:
        provider.accept_authorization(code, state)
    except AuthorizationRequiredError as e:
        raise HTTPException(
            status_code=400,
            detail={"code": "INVALID_STATE", "message": e.message},
        )

    session = get_session()
    await session.connect()
    status = session.get_status()
    if status.get("status") == "needs_auth":
        raise HTTPException(
            status_code=401,
            detail={"code": "AUTHORIZATION_FAILED", "message": status.get("last_error") or "Authorization failed"},
        )
    return status
