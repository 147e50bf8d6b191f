"""
Google OAuth credential acquisition for Drive appData access.

Silent acquisition reuses a cached access token or the stored refresh
token. Interactive acquisition exchanges the authorization code delivered
by the consent redirect, which only happens after a user action.
"""

import base64
import hashlib
import json
import logging
import secrets
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Dict, Optional, Tuple
from urllib.parse import urlencode

import httpx
from cryptography.fernet import Fernet, InvalidToken

from ..config.settings import OAuthConfig
from ..exceptions import (
    AuthenticationError,
    AuthorizationRequiredError,
    NetworkError,
    OAuthConfigurationError,
    TimeoutError,
)

logger = logging.getLogger(__name__)


@dataclass
class OAuthTokens:
    """OAuth token storage."""
    access_token: str
    refresh_token: str = ""
    token_type: str = "Bearer"
    expires_at: Optional[datetime] = None
    scope: str = ""

    def is_expired(self) -> bool:
        """Check if access token is expired."""
        if not self.expires_at:
            return True
        # Consider expired 5 minutes before actual expiry
        return datetime.utcnow() >= (self.expires_at - timedelta(minutes=5))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "token_type": self.token_type,
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
            "scope": self.scope,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OAuthTokens":
        expires_at = None
        if data.get("expires_at"):
            expires_at = datetime.fromisoformat(data["expires_at"])
        return cls(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token", ""),
            token_type=data.get("token_type", "Bearer"),
            expires_at=expires_at,
            scope=data.get("scope", ""),
        )

    @classmethod
    def from_token_response(cls, data: Dict[str, Any], previous: Optional["OAuthTokens"] = None) -> "OAuthTokens":
        """Build tokens from a token endpoint response, keeping the old refresh token if none is returned."""
        expires_at = None
        if "expires_in" in data:
            expires_at = datetime.utcnow() + timedelta(seconds=int(data["expires_in"]))
        return cls(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token") or (previous.refresh_token if previous else ""),
            token_type=data.get("token_type", "Bearer"),
            expires_at=expires_at,
            scope=data.get("scope", previous.scope if previous else ""),
        )


@dataclass
class OAuthState:
    """OAuth state for CSRF protection."""
    state_token: str
    redirect_uri: str
    created_at: datetime = field(default_factory=datetime.utcnow)

    def is_expired(self) -> bool:
        """State tokens expire after 10 minutes."""
        return datetime.utcnow() > (self.created_at + timedelta(minutes=10))


class SecureTokenStore:
    """
    Secure storage for OAuth tokens.

    Tokens are encrypted at rest using Fernet symmetric encryption.
    """

    def __init__(self, storage_path: Path, encryption_key: str = ""):
        """
        Initialize token store.

        Args:
            storage_path: Directory holding encrypted token files
            encryption_key: Fernet key or passphrase; ephemeral when empty
        """
        self.storage_path = storage_path
        self.storage_path.mkdir(parents=True, exist_ok=True)
        self._cipher = self._get_cipher(encryption_key)

    @staticmethod
    def _get_cipher(key: str) -> Fernet:
        """Get or create encryption cipher."""
        if not key:
            # Tokens written with an ephemeral key are unreadable after restart
            logger.warning(
                "TASKGRAPH_TOKEN_ENCRYPTION_KEY not set. "
                "Using ephemeral key - tokens will be lost on restart."
            )
            return Fernet(Fernet.generate_key())

        if len(key) != 44:  # Fernet keys are 44 chars base64
            key = base64.urlsafe_b64encode(hashlib.sha256(key.encode()).digest()).decode()
        return Fernet(key.encode())

    def _get_token_path(self, token_id: str) -> Path:
        """Get path for a token file."""
        safe_id = "".join(c for c in token_id if c.isalnum() or c in "_-")
        return self.storage_path / f"{safe_id}.token"

    async def store_tokens(self, token_id: str, tokens: OAuthTokens) -> None:
        """
        Store encrypted tokens.

        Args:
            token_id: Unique identifier for the tokens
            tokens: OAuth tokens to store
        """
        token_path = self._get_token_path(token_id)
        encrypted = self._cipher.encrypt(json.dumps(tokens.to_dict()).encode())
        token_path.write_bytes(encrypted)
        logger.info(f"Stored tokens for {token_id}")

    async def get_tokens(self, token_id: str) -> Optional[OAuthTokens]:
        """
        Retrieve and decrypt tokens.

        Args:
            token_id: Token identifier

        Returns:
            OAuth tokens if found and readable
        """
        token_path = self._get_token_path(token_id)

        if not token_path.exists():
            return None

        try:
            decrypted = self._cipher.decrypt(token_path.read_bytes())
            return OAuthTokens.from_dict(json.loads(decrypted.decode()))
        except (InvalidToken, OSError, ValueError, KeyError) as e:
            logger.error(f"Failed to decrypt tokens for {token_id}: {e}")
            return None

    async def delete_tokens(self, token_id: str) -> bool:
        """
        Delete tokens.

        Returns:
            True if deleted
        """
        token_path = self._get_token_path(token_id)

        if token_path.exists():
            token_path.unlink()
            logger.info(f"Deleted tokens for {token_id}")
            return True
        return False

    async def has_tokens(self, token_id: str) -> bool:
        """Check if tokens exist."""
        return self._get_token_path(token_id).exists()


class TokenProvider(ABC):
    """
    Source of bearer credentials.

    The provider caches the last access token it handed out; every consumer
    reads it through `current_token` rather than keeping its own copy.
    """

    def __init__(self):
        self._access_token: Optional[str] = None

    @property
    def current_token(self) -> Optional[str]:
        """Last known access token, if any."""
        return self._access_token

    def invalidate(self) -> None:
        """Forget the cached access token (e.g. after a 401)."""
        self._access_token = None

    @abstractmethod
    async def request_credential(self, interactive: bool = False) -> Optional[str]:
        """
        Obtain an access token.

        Args:
            interactive: Whether a user action backs this request

        Returns:
            Access token, or None when a silent request finds no prior consent

        Raises:
            AuthorizationRequiredError: Interactive request without consent
            AuthenticationError: Consent was rejected
        """
        pass


class GoogleOAuthTokenProvider(TokenProvider):
    """
    Token provider backed by Google's OAuth 2.0 web-server flow.
    """

    GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
    GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
    SCOPES = [
        "https://www.googleapis.com/auth/drive.appdata",  # Application-private folder only
    ]

    def __init__(
        self,
        config: OAuthConfig,
        token_store: SecureTokenStore,
        token_id: str = "taskgraph_gdrive",
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize the provider.

        Args:
            config: OAuth client registration
            token_store: Encrypted storage for refresh tokens
            token_id: Key of this application's tokens in the store
            http_client: Client for the token endpoint (created lazily if omitted)
        """
        super().__init__()
        self.config = config
        self.token_store = token_store
        self.token_id = token_id
        self._http_client = http_client
        self._owns_client = http_client is None
        self._tokens: Optional[OAuthTokens] = None
        self._pending_states: Dict[str, OAuthState] = {}
        self._pending_code: Optional[str] = None

    def is_configured(self) -> bool:
        return self.config.is_configured()

    async def _get_http_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self.config.token_timeout_seconds)
        return self._http_client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client is not None and self._owns_client:
            await self._http_client.aclose()
            self._http_client = None

    # =========================================================================
    # Consent flow
    # =========================================================================

    def generate_auth_url(self) -> Tuple[str, str]:
        """
        Generate the Google consent URL.

        Returns:
            Tuple of (auth_url, state_token)
        """
        if not self.is_configured():
            raise OAuthConfigurationError()

        state_token = secrets.token_urlsafe(32)
        self._pending_states[state_token] = OAuthState(
            state_token=state_token,
            redirect_uri=self.config.redirect_uri,
        )
        self._cleanup_expired_states()

        params = {
            "client_id": self.config.client_id,
            "redirect_uri": self.config.redirect_uri,
            "response_type": "code",
            "scope": " ".join(self.SCOPES),
            "access_type": "offline",  # Get refresh token
            "prompt": "consent",  # Always show consent to get refresh token
            "state": state_token,
        }
        return f"{self.GOOGLE_AUTH_URL}?{urlencode(params)}", state_token

    def validate_state(self, state_token: str) -> Optional[OAuthState]:
        """Validate and consume a state token (one-time use)."""
        state = self._pending_states.pop(state_token, None)
        if state is None or state.is_expired():
            return None
        return state

    def accept_authorization(self, code: str, state_token: str) -> None:
        """
        Record the authorization code delivered to the consent callback.

        The next interactive credential request exchanges it.

        Raises:
            AuthorizationRequiredError: If the state token is unknown or expired
        """
        if self.validate_state(state_token) is None:
            raise AuthorizationRequiredError("Invalid or expired OAuth state")
        self._pending_code = code

    def _cleanup_expired_states(self) -> None:
        expired = [token for token, state in self._pending_states.items() if state.is_expired()]
        for token in expired:
            del self._pending_states[token]

    # =========================================================================
    # Credential acquisition
    # =========================================================================

    async def request_credential(self, interactive: bool = False) -> Optional[str]:
        if not self.is_configured():
            raise OAuthConfigurationError()

        if interactive and self._pending_code:
            code, self._pending_code = self._pending_code, None
            tokens = await self._exchange_code(code)
            return self._remember(tokens)

        token = await self._silent_credential()
        if token or not interactive:
            return token

        auth_url, _ = self.generate_auth_url()
        raise AuthorizationRequiredError(auth_url=auth_url)

    async def _silent_credential(self) -> Optional[str]:
        """Cached token, else refresh-token grant, else None."""
        tokens = self._tokens or await self.token_store.get_tokens(self.token_id)
        if tokens is None:
            return None

        if not tokens.is_expired() and tokens.access_token == self._access_token:
            return tokens.access_token

        if not tokens.is_expired() and self._tokens is None:
            return self._remember(tokens)

        if not tokens.refresh_token:
            return None

        refreshed = await self._refresh(tokens)
        if refreshed is None:
            return None
        return self._remember(refreshed)

    def _remember(self, tokens: OAuthTokens) -> str:
        self._tokens = tokens
        self._access_token = tokens.access_token
        return tokens.access_token

    def invalidate(self) -> None:
        super().invalidate()
        if self._tokens is not None:
            # Keep the refresh token, force the next silent request to use it
            self._tokens = OAuthTokens(
                access_token="",
                refresh_token=self._tokens.refresh_token,
                token_type=self._tokens.token_type,
                expires_at=None,
                scope=self._tokens.scope,
            )

    async def _post_token_endpoint(self, data: Dict[str, str]) -> httpx.Response:
        client = await self._get_http_client()
        try:
            return await client.post(self.GOOGLE_TOKEN_URL, data=data)
        except httpx.TimeoutException as e:
            raise TimeoutError("Google OAuth", self.config.token_timeout_seconds, cause=e)
        except httpx.TransportError as e:
            raise NetworkError("Google OAuth", str(e), cause=e)

    async def _exchange_code(self, code: str) -> OAuthTokens:
        """Exchange an authorization code for tokens and persist them."""
        response = await self._post_token_endpoint({
            "client_id": self.config.client_id,
            "client_secret": self.config.client_secret,
            "code": code,
            "grant_type": "authorization_code",
            "redirect_uri": self.config.redirect_uri,
        })

        if response.status_code != 200:
            raise AuthenticationError(
                "Google OAuth",
                f"token exchange failed: {response.text[:200]}",
                status_code=response.status_code,
            )

        tokens = OAuthTokens.from_token_response(response.json())
        await self.token_store.store_tokens(self.token_id, tokens)
        logger.info("Google Drive access granted")
        return tokens

    async def _refresh(self, tokens: OAuthTokens) -> Optional[OAuthTokens]:
        """Refresh an expired access token; None when the grant was revoked."""
        response = await self._post_token_endpoint({
            "client_id": self.config.client_id,
            "client_secret": self.config.client_secret,
            "refresh_token": tokens.refresh_token,
            "grant_type": "refresh_token",
        })

        if response.status_code != 200:
            logger.warning(f"Token refresh failed for {self.token_id}: {response.status_code}")
            if response.status_code in (400, 401):
                # invalid_grant: consent revoked, a new interactive grant is needed
                await self.token_store.delete_tokens(self.token_id)
                self._tokens = None
            return None

        new_tokens = OAuthTokens.from_token_response(response.json(), previous=tokens)
        await self.token_store.store_tokens(self.token_id, new_tokens)
        return new_tokens

    async def disconnect(self) -> bool:
        """Forget all tokens for this application."""
        self._tokens = None
        self._access_token = None
        return await self.token_store.delete_tokens(self.token_id)
