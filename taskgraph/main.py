"""
Application assembly for TaskGraph.

Builds the graph session with remote sync (Google Drive) when OAuth is
configured, or with the local state file otherwise, and wraps it in the
HTTP API.
"""

import logging
import sys
from typing import Optional

from fastapi import FastAPI

from .api import create_app
from .config import AppConfig, ConfigValidator, EnvironmentLoader, LogLevel
from .session import GraphSession
from .sync import (
    GoogleDriveDocumentStore,
    GoogleOAuthTokenProvider,
    LocalStateFile,
    SecureTokenStore,
    SyncEngine,
)

logger = logging.getLogger(__name__)


def configure_logging(level: LogLevel = LogLevel.INFO) -> None:
    """Install the process-wide log format."""
    logging.basicConfig(
        level=level.value,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    logging.getLogger().setLevel(level.value)
    # Request logs from httpx are noisy at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def build_app(config: Optional[AppConfig] = None) -> FastAPI:
    """
    Build the API application from configuration.

    Args:
        config: Application configuration (loaded from the environment if omitted)

    Returns:
        FastAPI application ready to serve
    """
    if config is None:
        config = EnvironmentLoader.load_config()

    for problem in ConfigValidator.validate_config(config):
        logger.warning(f"Configuration problem: {problem}")

    provider: Optional[GoogleOAuthTokenProvider] = None
    if config.remote_sync_enabled:
        token_store = SecureTokenStore(config.token_dir, config.oauth.token_encryption_key)
        provider = GoogleOAuthTokenProvider(config.oauth, token_store)
        store = GoogleDriveDocumentStore(provider, timeout_seconds=config.sync.request_timeout_seconds)
        engine = SyncEngine(store, provider, config.sync)
        session = GraphSession(engine=engine)
        logger.info(f"Remote sync enabled, document {config.sync.document_name}")
    else:
        session = GraphSession(local_file=LocalStateFile(config.local_state_path))
        logger.info(f"Google OAuth not configured, storing graph in {config.local_state_path}")

    return create_app(session, provider=provider, cors_origins=config.server.cors_origins)


def main() -> None:
    """Run the API server."""
    import uvicorn

    config = EnvironmentLoader.load_config()
    configure_logging(config.log_level)

    app = build_app(config)
    logger.info(f"Starting TaskGraph on {config.server.host}:{config.server.port}")
    uvicorn.run(app, host=config.server.host, port=config.server.port, log_level=config.log_level.value.lower())
