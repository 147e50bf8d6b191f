"""
Debounced, single-flight synchronization of one JSON document.

The engine holds the latest unsaved snapshot, coalesces bursts of edits
into one write after a quiet period, never runs two writes at once, and
retries transient remote failures with capped exponential backoff.
"""

import asyncio
import json
import logging
import random
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, Optional, Set

from .base import RemoteDocumentStore, RemoteFile, SyncState, SyncStatus
from .oauth import TokenProvider
from ..config.settings import SyncSettings
from ..exceptions import (
    AuthenticationError,
    AuthorizationRequiredError,
    OAuthConfigurationError,
    RemoteStoreError,
    SyncError,
    is_retryable,
)

logger = logging.getLogger(__name__)

RemoteStateListener = Callable[[Dict[str, Any]], None]

# Failures that mean "the user has to grant access again"
AUTH_ERRORS = (AuthenticationError, AuthorizationRequiredError, OAuthConfigurationError)


class SyncEngine:
    """
    Mirrors local snapshots into a remote document.

    Usage:
        engine = SyncEngine(store, tokens, settings, on_remote_state=session.adopt)
        await engine.start()
        engine.schedule(graph.to_dict())
        await engine.flush()
    """

    def __init__(
        self,
        store: RemoteDocumentStore,
        tokens: TokenProvider,
        settings: Optional[SyncSettings] = None,
        on_remote_state: Optional[RemoteStateListener] = None,
        random_source: Callable[[], float] = random.random,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.store = store
        self.tokens = tokens
        self.settings = settings or SyncSettings()
        self.on_remote_state = on_remote_state
        self.state = SyncState()

        self._random = random_source
        self._sleep = sleep
        self._timer: Optional[asyncio.Task] = None
        self._background: Set[asyncio.Task] = set()
        self._write_lock = asyncio.Lock()
        self._handle_lock = asyncio.Lock()
        self._queued = False
        self._loading = False

    # =========================================================================
    # Status
    # =========================================================================

    @property
    def status(self) -> SyncStatus:
        return self.state.status

    @property
    def is_loading(self) -> bool:
        return self._loading

    def _set_status(self, status: SyncStatus, error: Optional[str] = None) -> None:
        if status != self.state.status:
            logger.debug(f"Sync status {self.state.status.value} -> {status.value}")
        self.state.status = status
        self.state.last_error = error

    def get_status(self) -> Dict[str, Any]:
        """Status summary for the API."""
        status = self.state.to_dict()
        status["document_name"] = self.settings.document_name
        status["authenticated"] = bool(self.tokens.current_token)
        status["write_in_flight"] = self._write_lock.locked()
        return status

    # =========================================================================
    # Scheduling
    # =========================================================================

    def schedule(self, payload: Dict[str, Any]) -> None:
        """
        Record a snapshot for saving and restart the debounce timer.

        While the initial load runs, or while user consent is missing, the
        snapshot is only retained.
        """
        self.state.pending_payload = payload

        if self._loading or self.state.status is SyncStatus.NEEDS_AUTH:
            return

        self._restart_timer()

    def _restart_timer(self) -> None:
        self._cancel_timer()
        self._timer = self._spawn(self._debounced_write())

    def _cancel_timer(self) -> None:
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._timer = None

    def _resume_pending(self) -> None:
        """Arm a save for a snapshot retained while loading was in progress."""
        if self.state.pending_payload is not None:
            self._restart_timer()

    def _spawn(self, coro: Awaitable[Any]) -> asyncio.Task:
        task = asyncio.ensure_future(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    async def _debounced_write(self) -> None:
        await asyncio.sleep(self.settings.debounce_ms / 1000)
        # Past this point a new schedule() must not cancel the write
        self._timer = None
        await self._write_pending()

    async def _write_pending(self) -> None:
        """Single-flight writer: a call during an in-flight write queues one follow-up."""
        if self._write_lock.locked():
            self._queued = True
            return

        async with self._write_lock:
            while True:
                self._queued = False
                await self._write_once()
                if not self._queued:
                    break

    async def _write_once(self) -> None:
        payload = self.state.pending_payload
        if payload is None:
            return

        try:
            token = self.tokens.current_token or await self.tokens.request_credential(interactive=False)
        except SyncError as e:
            logger.warning(f"Could not obtain credential for save: {e}")
            self._set_status(SyncStatus.ERROR, str(e))
            return

        if not token:
            self._set_status(SyncStatus.NEEDS_AUTH)
            return

        self._set_status(SyncStatus.SAVING)
        try:
            file_id = await self.resolve_document_handle()
            await self.write_with_retry(file_id, payload)
        except AUTH_ERRORS as e:
            logger.warning(f"Save needs re-authorization: {e}")
            self._set_status(SyncStatus.NEEDS_AUTH, str(e))
            return
        except RemoteStoreError as e:
            if e.status_code == 404:
                # Document was removed remotely; resolve it again on the next save
                self.state.cached_document_id = None
            logger.error(f"Save failed: {e}")
            self._set_status(SyncStatus.ERROR, str(e))
            return
        except Exception as e:
            logger.error(f"Save failed: {e}")
            self._set_status(SyncStatus.ERROR, str(e))
            return

        # Edits that arrived during the write keep their own pending payload
        if self.state.pending_payload is payload:
            self.state.pending_payload = None
        self.state.last_saved_at = datetime.utcnow()
        self._set_status(SyncStatus.IDLE)
        logger.info(f"Saved {self.settings.document_name}")

    async def flush(self) -> None:
        """Write the pending snapshot now and wait for it to settle."""
        self._cancel_timer()

        if self._write_lock.locked():
            self._queued = True
            async with self._write_lock:
                pass
            return

        await self._write_pending()

    # =========================================================================
    # Remote calls
    # =========================================================================

    async def resolve_document_handle(self) -> str:
        """Cached id, else search by name, else create. Concurrent callers share one result."""
        if self.state.cached_document_id:
            return self.state.cached_document_id

        async with self._handle_lock:
            if self.state.cached_document_id:
                return self.state.cached_document_id

            found = await self.store.find_by_name(self.settings.document_name)
            if found is not None:
                file_id = found.id
            else:
                file_id = await self.store.create(self.settings.document_name)

            self.state.cached_document_id = file_id
            return file_id

    def backoff_delay(self, attempt: int) -> float:
        """Delay in seconds before retrying after failed attempt number `attempt`."""
        base_ms = min(self.settings.backoff_cap_ms, self.settings.backoff_base_ms * 2 ** (attempt - 1))
        return base_ms * (0.5 + self._random()) / 1000

    async def write_with_retry(self, file_id: str, payload: Dict[str, Any]) -> Optional[RemoteFile]:
        """
        Write the payload, retrying transient failures.

        Raises:
            The last error once attempts are exhausted or a failure is not retryable
        """
        max_attempts = self.settings.max_attempts
        for attempt in range(1, max_attempts + 1):
            try:
                return await self.store.write_content(file_id, payload)
            except Exception as e:
                if attempt >= max_attempts or not is_retryable(e):
                    if attempt > 1:
                        logger.error(f"Write failed after {attempt} attempts: {e}")
                    raise
                delay = self.backoff_delay(attempt)
                logger.warning(f"Write attempt {attempt}/{max_attempts} failed ({e}), retrying in {delay:.2f}s")
                await self._sleep(delay)
        return None

    # =========================================================================
    # Loading
    # =========================================================================

    async def start(self) -> Optional[Dict[str, Any]]:
        """Silent startup: load the remote document if access was granted before."""
        self._loading = True
        self._set_status(SyncStatus.LOADING)

        try:
            token = await self.tokens.request_credential(interactive=False)
        except AUTH_ERRORS as e:
            self._loading = False
            self._set_status(SyncStatus.NEEDS_AUTH, str(e))
            return None
        except SyncError as e:
            self._loading = False
            logger.warning(f"Silent credential request failed: {e}")
            self._set_status(SyncStatus.ERROR, str(e))
            self._resume_pending()
            return None

        if not token:
            self._loading = False
            logger.info("No prior Google Drive consent, waiting for connect")
            self._set_status(SyncStatus.NEEDS_AUTH)
            return None

        return await self._load()

    async def connect(self) -> Optional[Dict[str, Any]]:
        """Interactive connect, backed by a user action."""
        self._loading = True
        self._set_status(SyncStatus.LOADING)

        try:
            await self.tokens.request_credential(interactive=True)
        except AUTH_ERRORS as e:
            self._loading = False
            self._set_status(SyncStatus.NEEDS_AUTH, str(e))
            return None
        except SyncError as e:
            self._loading = False
            logger.error(f"Connect failed: {e}")
            self._set_status(SyncStatus.ERROR, str(e))
            self._resume_pending()
            return None

        return await self._load()

    async def _load(self) -> Optional[Dict[str, Any]]:
        try:
            file_id = await self.resolve_document_handle()
            text = await self.store.read_content(file_id)
        except AUTH_ERRORS as e:
            self._set_status(SyncStatus.NEEDS_AUTH, str(e))
            return None
        except Exception as e:
            logger.error(f"Loading {self.settings.document_name} failed: {e}")
            self._set_status(SyncStatus.ERROR, str(e))
            self._resume_pending()
            return None
        finally:
            self._loading = False

        payload = self.parse_document(text)
        self._set_status(SyncStatus.IDLE)

        if payload is None:
            logger.info(f"No usable remote data in {self.settings.document_name}")
            self._resume_pending()
            return None

        # Remote wins over anything edited before the load completed
        self._cancel_timer()
        self.state.pending_payload = None
        logger.info(f"Loaded {self.settings.document_name} ({len(payload)} entries)")
        if self.on_remote_state is not None:
            self.on_remote_state(payload)
        return payload

    @staticmethod
    def parse_document(text: Optional[str]) -> Optional[Dict[str, Any]]:
        """Parsed JSON object, or None for empty/malformed/non-object content."""
        if not text:
            return None
        try:
            data = json.loads(text)
        except ValueError:
            logger.warning("Remote document is not valid JSON, ignoring it")
            return None
        if not isinstance(data, dict):
            logger.warning("Remote document is not a JSON object, ignoring it")
            return None
        return data

    # =========================================================================
    # Shutdown
    # =========================================================================

    async def close(self) -> None:
        """Best-effort flush, then cancel timers and release the store."""
        if (
            self.state.pending_payload is not None
            and not self._loading
            and self.state.status is not SyncStatus.NEEDS_AUTH
        ):
            await self.flush()

        self._cancel_timer()
        for task in list(self._background):
            task.cancel()
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)
        await self.store.close()
