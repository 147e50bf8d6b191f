"""
Remote document synchronization.

Mirrors the graph into a single JSON document in the Google Drive
application data folder, or into a local file when Drive is not configured.
"""

from .base import RemoteDocumentStore, RemoteFile, SyncState, SyncStatus
from .engine import SyncEngine
from .google_drive import GoogleDriveDocumentStore
from .local import LocalStateFile, STORAGE_KEY
from .oauth import (
    GoogleOAuthTokenProvider,
    OAuthState,
    OAuthTokens,
    SecureTokenStore,
    TokenProvider,
)

__all__ = [
    # Base
    "RemoteDocumentStore",
    "RemoteFile",
    "SyncState",
    "SyncStatus",
    # Engine
    "SyncEngine",
    # Stores
    "GoogleDriveDocumentStore",
    "LocalStateFile",
    "STORAGE_KEY",
    # OAuth
    "TokenProvider",
    "GoogleOAuthTokenProvider",
    "SecureTokenStore",
    "OAuthTokens",
    "OAuthState",
]
