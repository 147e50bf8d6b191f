"""
Configuration validation for TaskGraph.
"""

import re
from typing import List

from .settings import AppConfig, OAuthConfig, SyncSettings


class ConfigValidator:
    """Validates configuration settings."""

    @staticmethod
    def validate_config(config: AppConfig) -> List[str]:
        """Validate the entire configuration, returning a list of problems."""
        errors = []

        errors.extend(ConfigValidator._validate_oauth_config(config.oauth))
        errors.extend(ConfigValidator._validate_sync_settings(config.sync))

        if not (1 <= config.server.port <= 65535):
            errors.append("Server port must be between 1 and 65535")

        return errors

    @staticmethod
    def _validate_oauth_config(oauth: OAuthConfig) -> List[str]:
        """Validate OAuth client settings."""
        errors = []

        # Both or neither: a half-configured client cannot complete consent
        if bool(oauth.client_id) != bool(oauth.client_secret):
            errors.append("GOOGLE_OAUTH_CLIENT_ID and GOOGLE_OAUTH_CLIENT_SECRET must be set together")

        if oauth.client_id and not oauth.client_id.endswith(".apps.googleusercontent.com"):
            errors.append("Google OAuth client ID should end with .apps.googleusercontent.com")

        if oauth.is_configured() and not re.match(r'^https?://', oauth.redirect_uri):
            errors.append("OAuth redirect URI must be an http(s) URL")

        if oauth.token_timeout_seconds <= 0:
            errors.append("Token request timeout must be positive")

        return errors

    @staticmethod
    def _validate_sync_settings(sync: SyncSettings) -> List[str]:
        """Validate numeric ranges of sync settings."""
        errors = []

        if not sync.document_name:
            errors.append("Remote document name must not be empty")

        if sync.debounce_ms < 0:
            errors.append("Debounce interval must not be negative")

        if sync.max_attempts < 1:
            errors.append("Max write attempts must be at least 1")

        if sync.backoff_base_ms < 0 or sync.backoff_cap_ms < sync.backoff_base_ms:
            errors.append("Backoff cap must be at least the (non-negative) backoff base")

        if sync.request_timeout_seconds <= 0:
            errors.append("Request timeout must be positive")

        return errors
