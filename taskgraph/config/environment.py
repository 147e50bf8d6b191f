"""
Environment variable handling for TaskGraph configuration.
"""

import os
from pathlib import Path
from typing import List

from dotenv import load_dotenv

from .settings import AppConfig, LogLevel, OAuthConfig, ServerConfig, SyncSettings


class EnvironmentLoader:
    """Loads configuration from environment variables."""

    @staticmethod
    def load_config() -> AppConfig:
        """Load configuration from environment variables (and .env if present)."""
        load_dotenv()

        # Remote sync is only enabled when both client id and secret are set
        oauth_config = OAuthConfig(
            client_id=os.getenv('GOOGLE_OAUTH_CLIENT_ID', ''),
            client_secret=os.getenv('GOOGLE_OAUTH_CLIENT_SECRET', ''),
            redirect_uri=os.getenv(
                'GOOGLE_OAUTH_REDIRECT_URI',
                'http://localhost:8000/api/auth/google/callback'
            ),
            token_encryption_key=os.getenv('TASKGRAPH_TOKEN_ENCRYPTION_KEY', ''),
            token_timeout_seconds=float(os.getenv('TASKGRAPH_TOKEN_TIMEOUT', '15')),
        )

        sync_settings = SyncSettings(
            document_name=os.getenv('TASKGRAPH_DOCUMENT_NAME', 'config.json'),
            debounce_ms=int(os.getenv('TASKGRAPH_DEBOUNCE_MS', '800')),
            max_attempts=int(os.getenv('TASKGRAPH_MAX_ATTEMPTS', '5')),
            backoff_base_ms=int(os.getenv('TASKGRAPH_BACKOFF_BASE_MS', '400')),
            backoff_cap_ms=int(os.getenv('TASKGRAPH_BACKOFF_CAP_MS', '8000')),
            request_timeout_seconds=float(os.getenv('TASKGRAPH_REQUEST_TIMEOUT', '15')),
        )

        server_config = ServerConfig(
            host=os.getenv('TASKGRAPH_HOST', '0.0.0.0'),
            port=int(os.getenv('TASKGRAPH_PORT', '8000')),
            cors_origins=EnvironmentLoader._parse_list(os.getenv('TASKGRAPH_CORS_ORIGINS', '')),
        )

        log_level_str = os.getenv('LOG_LEVEL', 'INFO').upper()
        log_level = LogLevel.INFO  # default
        try:
            log_level = LogLevel(log_level_str)
        except ValueError:
            pass  # Use default

        return AppConfig(
            oauth=oauth_config,
            sync=sync_settings,
            server=server_config,
            data_dir=Path(os.getenv('TASKGRAPH_DATA_DIR', 'data')),
            log_level=log_level,
        )

    @staticmethod
    def _parse_list(value: str, delimiter: str = ',') -> List[str]:
        """Parse a comma-separated string into a list."""
        if not value:
            return []
        return [item.strip() for item in value.split(delimiter) if item.strip()]
