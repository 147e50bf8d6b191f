"""
Base remote document store interface and sync state.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional


class SyncStatus(Enum):
    """Status of the synchronized document."""
    IDLE = "idle"
    LOADING = "loading"
    SAVING = "saving"
    NEEDS_AUTH = "needs_auth"
    ERROR = "error"


@dataclass
class SyncState:
    """State slot of one synchronized document."""
    status: SyncStatus = SyncStatus.IDLE
    pending_payload: Optional[Dict[str, Any]] = None
    cached_document_id: Optional[str] = None
    last_saved_at: Optional[datetime] = None
    last_error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "has_pending_changes": self.pending_payload is not None,
            "document_id": self.cached_document_id,
            "last_saved_at": self.last_saved_at.isoformat() if self.last_saved_at else None,
            "last_error": self.last_error,
        }


@dataclass
class RemoteFile:
    """Minimal metadata of a remote document."""
    id: str
    name: str
    modified_time: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RemoteFile":
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            modified_time=data.get("modifiedTime"),
        )


class RemoteDocumentStore(ABC):
    """Abstract single-document store scoped to an application-private folder."""

    @abstractmethod
    async def find_by_name(self, name: str) -> Optional[RemoteFile]:
        """
        Find a non-trashed document by exact name.

        Args:
            name: Document file name

        Returns:
            First match, or None
        """
        pass

    @abstractmethod
    async def create(self, name: str) -> str:
        """
        Create an empty document.

        Args:
            name: Document file name

        Returns:
            New document id
        """
        pass

    @abstractmethod
    async def read_content(self, file_id: str) -> Optional[str]:
        """
        Download a document's content.

        Args:
            file_id: Document id

        Returns:
            Raw text, or None if the document does not exist
        """
        pass

    @abstractmethod
    async def write_content(self, file_id: str, payload: Dict[str, Any]) -> Optional[RemoteFile]:
        """
        Replace a document's content with the JSON serialization of `payload`.

        Args:
            file_id: Document id
            payload: JSON-serializable object

        Returns:
            Updated metadata when the store reports it
        """
        pass

    async def close(self) -> None:
        """Release network resources."""
        pass
