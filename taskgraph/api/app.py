"""
FastAPI application for TaskGraph.
"""

import logging
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import routes
from .routes import auth_router, nodes_router, sync_router
from ..exceptions import GraphError, GraphIntegrityError, InvalidNodeFieldError, NodeNotFoundError
from ..session import GraphSession
from ..sync.oauth import GoogleOAuthTokenProvider

logger = logging.getLogger(__name__)


def _status_for(exc: GraphError) -> int:
    if isinstance(exc, NodeNotFoundError):
        return 404
    if isinstance(exc, InvalidNodeFieldError):
        return 422
    if isinstance(exc, GraphIntegrityError):
        return 400
    return 400


def create_app(
    session: GraphSession,
    provider: Optional[GoogleOAuthTokenProvider] = None,
    cors_origins: Optional[List[str]] = None,
) -> FastAPI:
    """Create the API application.

    Args:
        session: Graph session served by the routes
        provider: OAuth provider when Google Drive sync is configured
        cors_origins: Allowed browser origins

    Returns:
        Configured FastAPI application
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        logger.info("TaskGraph API starting up")
        await session.start()

        yield

        # Shutdown
        logger.info("TaskGraph API shutting down")
        await session.close()
        if provider is not None:
            await provider.close()

    app = FastAPI(
        title="TaskGraph API",
        description="Hierarchical task graph with Google Drive sync",
        version="1.0.0",
        lifespan=lifespan,
    )

    origins = list(cors_origins or [])
    if origins:
        logger.info(f"CORS allowed origins: {origins}")
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=True,
            allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
            allow_headers=["*"],
        )

    routes.set_services(session=session, token_provider=provider)

    app.include_router(nodes_router, prefix="/api", tags=["Graph"])
    app.include_router(sync_router, prefix="/api/sync", tags=["Sync"])
    app.include_router(auth_router, prefix="/api/auth", tags=["Authentication"])

    @app.exception_handler(GraphError)
    async def graph_error_handler(request: Request, exc: GraphError):
        """Map rejected graph mutations to client errors."""
        return JSONResponse(
            status_code=_status_for(exc),
            content={"error": {"code": exc.error_code, "message": exc.message, "details": exc.context}},
        )

    return app
