"""
Google Drive appDataFolder document store.

Talks to the Drive v3 REST API directly over httpx. Every request carries
the provider's current bearer token; a 401/403 answer clears it, triggers
one silent refresh and exactly one retry.
"""

import json
import logging
from typing import Any, Dict, Optional

import httpx

from .base import RemoteDocumentStore, RemoteFile
from .oauth import TokenProvider
from ..exceptions import AuthenticationError, NetworkError, RemoteStoreError, TimeoutError

logger = logging.getLogger(__name__)


class GoogleDriveDocumentStore(RemoteDocumentStore):
    """
    Single-document store in the Drive application data folder.
    """

    API_BASE = "https://www.googleapis.com/drive/v3"
    UPLOAD_BASE = "https://www.googleapis.com/upload/drive/v3"
    SPACE = "appDataFolder"

    def __init__(
        self,
        tokens: TokenProvider,
        timeout_seconds: float = 15.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize the store.

        Args:
            tokens: Source of bearer credentials
            timeout_seconds: Per-request timeout
            http_client: Preconfigured client (tests inject a mock transport)
        """
        self.tokens = tokens
        self.timeout_seconds = timeout_seconds
        self._http_client = http_client
        self._owns_client = http_client is None

    async def _get_http_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=httpx.Timeout(self.timeout_seconds))
        return self._http_client

    async def close(self) -> None:
        if self._http_client is not None and self._owns_client:
            await self._http_client.aclose()
            self._http_client = None

    async def _send(self, operation: str, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Send one authorized request, refreshing the credential once on 401/403."""
        client = await self._get_http_client()
        token = self.tokens.current_token
        if not token:
            token = await self.tokens.request_credential(interactive=False)
        if not token:
            raise AuthenticationError("Google Drive", "no credential available")

        response = await self._request(client, operation, method, url, token, **kwargs)
        if response.status_code not in (401, 403):
            return response

        logger.info(f"Drive {operation} rejected with {response.status_code}, refreshing credential")
        self.tokens.invalidate()
        token = await self.tokens.request_credential(interactive=False)
        if not token:
            raise AuthenticationError("Google Drive", "credential expired", status_code=response.status_code)

        response = await self._request(client, operation, method, url, token, **kwargs)
        if response.status_code in (401, 403):
            self.tokens.invalidate()
            raise AuthenticationError("Google Drive", response.text[:200], status_code=response.status_code)
        return response

    async def _request(
        self,
        client: httpx.AsyncClient,
        operation: str,
        method: str,
        url: str,
        token: str,
        headers: Optional[Dict[str, str]] = None,
        **kwargs: Any,
    ) -> httpx.Response:
        merged = {"Authorization": f"Bearer {token}"}
        if headers:
            merged.update(headers)
        try:
            return await client.request(method, url, headers=merged, **kwargs)
        except httpx.TimeoutException as e:
            raise TimeoutError(f"Drive {operation}", self.timeout_seconds, cause=e)
        except httpx.TransportError as e:
            raise NetworkError(f"Drive {operation}", str(e), cause=e)

    @staticmethod
    def _check(operation: str, response: httpx.Response) -> None:
        if response.status_code >= 400:
            raise RemoteStoreError(operation, response.status_code, response.text[:200])

    @staticmethod
    def _json(operation: str, response: httpx.Response) -> Dict[str, Any]:
        try:
            body = response.json()
        except ValueError:
            raise RemoteStoreError(operation, response.status_code, "malformed response body")
        if not isinstance(body, dict):
            raise RemoteStoreError(operation, response.status_code, "malformed response body")
        return body

    async def find_by_name(self, name: str) -> Optional[RemoteFile]:
        escaped = name.replace("\\", "\\\\").replace("'", "\\'")
        response = await self._send(
            "search",
            "GET",
            f"{self.API_BASE}/files",
            params={
                "spaces": self.SPACE,
                "q": f"name='{escaped}' and trashed=false",
                "pageSize": "1",
                "fields": "files(id,name,modifiedTime)",
            },
        )
        self._check("search", response)

        files = self._json("search", response).get("files") or []
        if not files:
            return None
        try:
            return RemoteFile.from_dict(files[0])
        except (KeyError, TypeError):
            raise RemoteStoreError("search", response.status_code, "search result without file id")

    async def create(self, name: str) -> str:
        response = await self._send(
            "create",
            "POST",
            f"{self.API_BASE}/files",
            json={
                "name": name,
                "parents": [self.SPACE],
                "mimeType": "application/json",
            },
        )
        self._check("create", response)

        file_id = self._json("create", response).get("id")
        if not file_id:
            raise RemoteStoreError("create", response.status_code, "created file without id")
        logger.info(f"Created remote document {name} ({file_id})")
        return file_id

    async def read_content(self, file_id: str) -> Optional[str]:
        response = await self._send(
            "download",
            "GET",
            f"{self.API_BASE}/files/{file_id}",
            params={"alt": "media"},
        )
        if response.status_code == 404:
            return None
        self._check("download", response)
        return response.text

    async def write_content(self, file_id: str, payload: Dict[str, Any]) -> Optional[RemoteFile]:
        response = await self._send(
            "upload",
            "PATCH",
            f"{self.UPLOAD_BASE}/files/{file_id}",
            params={"uploadType": "media"},
            content=json.dumps(payload).encode("utf-8"),
            headers={"Content-Type": "application/json"},
        )
        self._check("upload", response)

        try:
            return RemoteFile.from_dict(response.json())
        except (ValueError, KeyError):
            return None
