"""
Configuration settings for TaskGraph.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List


class LogLevel(Enum):
    """Logging levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


@dataclass
class OAuthConfig:
    """Google OAuth client registration."""
    client_id: str = ""
    client_secret: str = ""
    redirect_uri: str = "http://localhost:8000/api/auth/google/callback"
    token_encryption_key: str = ""
    token_timeout_seconds: float = 15.0

    def is_configured(self) -> bool:
        return bool(self.client_id and self.client_secret)


@dataclass
class SyncSettings:
    """Remote document synchronization tuning."""
    document_name: str = "config.json"
    debounce_ms: int = 800
    max_attempts: int = 5
    backoff_base_ms: int = 400
    backoff_cap_ms: int = 8000
    request_timeout_seconds: float = 15.0


@dataclass
class ServerConfig:
    """HTTP API server configuration."""
    host: str = "0.0.0.0"
    port: int = 8000
    cors_origins: List[str] = field(default_factory=list)


@dataclass
class AppConfig:
    """Top-level application configuration."""
    oauth: OAuthConfig = field(default_factory=OAuthConfig)
    sync: SyncSettings = field(default_factory=SyncSettings)
    server: ServerConfig = field(default_factory=ServerConfig)
    data_dir: Path = Path("data")
    log_level: LogLevel = LogLevel.INFO

    @property
    def remote_sync_enabled(self) -> bool:
        return self.oauth.is_configured()

    @property
    def token_dir(self) -> Path:
        return self.data_dir / ".tokens"

    @property
    def local_state_path(self) -> Path:
        return self.data_dir / "userdata.json"
