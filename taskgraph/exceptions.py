"""
Exception hierarchy for TaskGraph.

Graph errors describe rejected mutations; sync errors describe failures
talking to the remote document store or the OAuth provider.
"""

import re
from typing import Any, Dict, Optional


class TaskGraphError(Exception):
    """Base exception for all TaskGraph errors."""

    def __init__(
        self,
        message: str,
        error_code: str = "taskgraph_error",
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.context = context or {}
        self.cause = cause

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_code": self.error_code,
            "message": self.message,
            "context": self.context,
        }


# ==================== Graph ====================

class GraphError(TaskGraphError):
    """A graph mutation was rejected."""

    def __init__(self, message: str, error_code: str = "graph_error", **kwargs):
        super().__init__(message, error_code, **kwargs)


class NodeNotFoundError(GraphError):
    """Referenced node does not exist."""

    def __init__(self, node_id: str):
        super().__init__(
            f"Node not found: {node_id}",
            error_code="node_not_found",
            context={"node_id": node_id},
        )
        self.node_id = node_id


class GraphIntegrityError(GraphError):
    """Mutation would break a structural invariant of the graph."""

    def __init__(self, message: str, node_id: Optional[str] = None):
        super().__init__(
            message,
            error_code="graph_integrity",
            context={"node_id": node_id} if node_id else {},
        )


class InvalidNodeFieldError(GraphError):
    """Field does not exist on the node's type or has a bad value."""

    def __init__(self, field_name: str, node_type: str, reason: str = ""):
        message = f"Invalid field '{field_name}' for {node_type} node"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(
            message,
            error_code="invalid_node_field",
            context={"field": field_name, "node_type": node_type},
        )
        self.field_name = field_name


# ==================== Sync ====================

# Markers that make a failure worth retrying, matched case-insensitively
# against the error message.
RETRYABLE_MESSAGE_PATTERN = re.compile(
    r"429|5\d\d|rate ?limit|quota|timeout|network", re.IGNORECASE
)


class SyncError(TaskGraphError):
    """Base class for remote synchronization failures."""

    def __init__(self, message: str, error_code: str = "sync_error", **kwargs):
        super().__init__(message, error_code, **kwargs)

    @property
    def retryable(self) -> bool:
        return bool(RETRYABLE_MESSAGE_PATTERN.search(self.message))


class RemoteStoreError(SyncError):
    """Remote document store answered with an unexpected HTTP status."""

    def __init__(self, operation: str, status_code: int, detail: str = ""):
        message = f"Drive {operation} failed: {status_code}"
        if detail:
            message = f"{message} {detail}"
        super().__init__(
            message,
            error_code="remote_store_error",
            context={"operation": operation, "status_code": status_code},
        )
        self.operation = operation
        self.status_code = status_code

    @property
    def retryable(self) -> bool:
        # Classified by status only; the message carries the response body
        return self.status_code == 429 or 500 <= self.status_code <= 599


class NetworkError(SyncError):
    """Connection-level failure reaching a remote service."""

    def __init__(self, service: str, detail: str, cause: Optional[BaseException] = None):
        super().__init__(
            f"{service} network error: {detail}",
            error_code="network_error",
            context={"service": service},
            cause=cause,
        )

    @property
    def retryable(self) -> bool:
        return True


class TimeoutError(SyncError):
    """Request to a remote service exceeded its timeout."""

    def __init__(self, service: str, timeout_seconds: float, cause: Optional[BaseException] = None):
        super().__init__(
            f"{service} request timeout after {timeout_seconds}s",
            error_code="timeout",
            context={"service": service, "timeout_seconds": timeout_seconds},
            cause=cause,
        )

    @property
    def retryable(self) -> bool:
        return True


class AuthenticationError(SyncError):
    """Bearer credential was rejected and could not be refreshed silently."""

    def __init__(self, service: str, detail: str = "", status_code: Optional[int] = None):
        message = f"{service} authentication failed"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(
            message,
            error_code="authentication_failed",
            context={"service": service, "status_code": status_code},
        )
        self.status_code = status_code

    @property
    def retryable(self) -> bool:
        return False


class AuthorizationRequiredError(SyncError):
    """No credential can be obtained without user consent."""

    def __init__(self, message: str = "User consent required", auth_url: Optional[str] = None):
        super().__init__(
            message,
            error_code="authorization_required",
            context={"auth_url": auth_url} if auth_url else {},
        )
        self.auth_url = auth_url

    @property
    def retryable(self) -> bool:
        return False


class OAuthConfigurationError(SyncError):
    """OAuth client credentials are missing."""

    def __init__(self, message: str = "Google OAuth not configured"):
        super().__init__(message, error_code="oauth_not_configured")

    @property
    def retryable(self) -> bool:
        return False


def is_retryable(error: BaseException) -> bool:
    """Classify an arbitrary failure from a remote write."""
    if isinstance(error, SyncError):
        return error.retryable
    return bool(RETRYABLE_MESSAGE_PATTERN.search(str(error)))
