# =============================================================================
# shopfloor_core/offline/connection_manager.py
# Connectivity Status and Remote Store Health Checks
# =============================================================================
"""
Connectivity tracking for the remote document store.

- ``BackendContext`` owns the connection status and the remote handle.
  It is created by the composition root and handed to the data service,
  so tests can build their own.
- ``ConnectivityMonitor`` creates the remote client at startup, marks the
  app connected optimistically, then verifies read and write access in the
  background. Any failure discards the remote handle for the rest of the
  process and everything routes to the local store.
- ``classify_remote_error`` turns library exceptions into the four
  user-facing failure classes.
"""

from __future__ import annotations
import threading
from dataclasses import dataclass
from typing import Callable, List, Optional

import httpx
from postgrest.exceptions import APIError

from shopfloor_core.config import AppConfig
from shopfloor_core.data.supabase_client import RemoteStore, create_remote_store
from shopfloor_core.errors import (
    ConfigurationError,
    NetworkOfflineError,
    PermissionDeniedError,
    RemoteNotFoundError,
    RemoteStoreError,
    UnknownRemoteError,
)
from shopfloor_core.logging import get_logger, LogContext
from shopfloor_core.offline.backend import Backend, LocalBackend, RemoteBackend
from shopfloor_core.offline.local_database import LocalStore
from shopfloor_core.utils.formatters import now_millis

logger = get_logger(__name__)

NO_CREDENTIALS_MESSAGE = "No credentials configured"
DIAGNOSTIC_COLLECTION = "__debug"
DIAGNOSTIC_DOCUMENT = "test"

# PostgREST / Postgres error codes
_PERMISSION_CODES = {"42501", "PGRST301", "PGRST302", "401", "403"}
_NOT_FOUND_CODES = {"42P01", "PGRST205", "PGRST202", "404"}
_INVALID_DATA_CODES = {"22P02", "23502", "22023", "PGRST204"}


@dataclass(frozen=True)
class ConnectionStatus:
    """Whether the remote store is usable, and why not."""
    connected: bool = False
    error: Optional[str] = None


def _error_text(error: BaseException) -> str:
    if isinstance(error, APIError):
        parts = [error.message, error.details, error.hint]
        text = " ".join(str(part) for part in parts if part)
        return text or str(error)
    return str(error) or error.__class__.__name__


def classify_remote_error(error: BaseException, operation: Optional[str] = None) -> RemoteStoreError:
    """
    Map a remote failure to permission-denied, network-offline,
    resource-not-found or unknown.
    """
    if isinstance(error, RemoteStoreError):
        return error

    text = _error_text(error)
    lowered = text.lower()
    code = str(getattr(error, "code", "") or "")

    if (
        code in _PERMISSION_CODES
        or "permission" in lowered
        or "insufficient" in lowered
        or "row-level security" in lowered
    ):
        return PermissionDeniedError(cause=error, operation=operation)

    if (
        isinstance(error, (httpx.TransportError, ConnectionError, TimeoutError))
        or "offline" in lowered
        or "network" in lowered
    ):
        return NetworkOfflineError(cause=error, operation=operation)

    if (
        code in _NOT_FOUND_CODES
        or "not found" in lowered
        or "does not exist" in lowered
        or "could not find" in lowered
    ):
        return RemoteNotFoundError(cause=error, operation=operation)

    if code in _INVALID_DATA_CODES or "invalid data" in lowered or "invalid input" in lowered:
        return UnknownRemoteError(
            "Data Error: Invalid field value", cause=error, operation=operation
        )

    return UnknownRemoteError(text, cause=error, operation=operation)


class BackendContext:
    """
    Connection status plus the remote handle, shared by the data service
    and the health monitor.

    Usage:
        context = BackendContext(local_store)
        context.install_remote(remote_store)
        backend = context.select()  # RemoteBackend or LocalBackend
    """

    def __init__(self, local_store: LocalStore, remote: Optional[RemoteStore] = None):
        self.local_store = local_store
        self._remote = remote
        self._status = ConnectionStatus(connected=remote is not None)
        self._lock = threading.RLock()
        self._callbacks: List[Callable[[ConnectionStatus], None]] = []

    @property
    def status(self) -> ConnectionStatus:
        """Current status snapshot."""
        return self._status

    @property
    def remote(self) -> Optional[RemoteStore]:
        return self._remote

    @property
    def is_connected(self) -> bool:
        return self._status.connected

    def select(self) -> Backend:
        """Pick the backend every entity operation runs against."""
        remote = self._remote
        if remote is not None:
            return RemoteBackend(remote)
        return LocalBackend(self.local_store)

    def install_remote(self, remote: RemoteStore) -> None:
        """Install a remote handle and mark connected."""
        with self._lock:
            self._remote = remote
        self.mark_connected()

    def mark_connected(self) -> None:
        self._set_status(ConnectionStatus(connected=True))

    def mark_disconnected(self, message: Optional[str]) -> None:
        self._set_status(ConnectionStatus(connected=False, error=message))

    def discard_remote(self, message: Optional[str]) -> None:
        """
        Go local-only for the rest of the process.

        Status flips to disconnected before the handle is dropped so no
        reader sees "connected" without a handle. Status callbacks run
        outside the context lock.
        """
        self.mark_disconnected(message)
        with self._lock:
            discarded, self._remote = self._remote, None
        if discarded is not None:
            discarded.cleanup()
            logger.warning(f"Remote store discarded, running local-only: {message}")

    def _set_status(self, status: ConnectionStatus) -> None:
        with self._lock:
            changed = status != self._status
            old = self._status
            self._status = status
        if changed:
            logger.info(
                f"Connection status changed: connected={old.connected} -> "
                f"connected={status.connected} ({status.error or 'ok'})"
            )
            self._notify_callbacks(status)

    def register_callback(self, callback: Callable[[ConnectionStatus], None]) -> None:
        """Register a callback for connection status changes."""
        if callback not in self._callbacks:
            self._callbacks.append(callback)

    def unregister_callback(self, callback: Callable[[ConnectionStatus], None]) -> None:
        """Remove a registered callback."""
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    def _notify_callbacks(self, status: ConnectionStatus) -> None:
        for callback in list(self._callbacks):
            try:
                callback(status)
            except Exception as e:
                logger.error(f"Error in connection callback: {e}")

    def get_status_display(self) -> dict:
        """Get status information for UI display."""
        status = self._status
        return {
            "connected": status.connected,
            "mode": "remote" if self._remote is not None else "local",
            "error": status.error,
        }


class ConnectivityMonitor:
    """
    One-shot startup health check for the remote store.

    Usage:
        monitor = ConnectivityMonitor(context, config)
        monitor.initialize()          # verification runs in a daemon thread
        monitor.wait(timeout=5)       # optional: block until it finishes
    """

    def __init__(
        self,
        context: BackendContext,
        config: AppConfig,
        remote_factory: Callable[..., Optional[RemoteStore]] = create_remote_store,
    ):
        self.context = context
        self.config = config
        self._remote_factory = remote_factory
        self._verify_thread: Optional[threading.Thread] = None
        self._done = threading.Event()
        self._initialized = False

    def initialize(self, background: bool = True) -> None:
        """
        Build the remote client and verify it.

        Args:
            background: Run the read/write verification in a daemon thread
        """
        if self._initialized:
            return
        self._initialized = True

        try:
            remote = self._remote_factory(self.config.remote)
        except ConfigurationError as e:
            logger.warning(f"Remote store not usable: {e.message}")
            self.context.mark_disconnected(e.message)
            self._done.set()
            return

        if remote is None:
            logger.info("No remote credentials configured, running local-only")
            self.context.mark_disconnected(NO_CREDENTIALS_MESSAGE)
            self._done.set()
            return

        # Optimistic: operations may use the remote store while we verify
        self.context.install_remote(remote)

        if background:
            self._verify_thread = threading.Thread(
                target=self.verify,
                args=(remote,),
                daemon=True,
                name="RemoteHealthCheck",
            )
            self._verify_thread.start()
        else:
            self.verify(remote)

    def verify(self, remote: RemoteStore) -> bool:
        """
        Confirm read and write access.

        Returns:
            True if both checks passed; otherwise the remote handle has
            been discarded.
        """
        try:
            with LogContext(logger, "Verifying remote store access"):
                remote.fetch_first("jobs")
                remote.set(
                    DIAGNOSTIC_COLLECTION,
                    DIAGNOSTIC_DOCUMENT,
                    {
                        "createdAt": now_millis(),
                        "source": "diagnostic_test",
                        "status": "ok",
                        "info": "If this exists, remote writes are working.",
                    },
                    merge=False,
                )
        except Exception as e:
            classified = classify_remote_error(e, operation="health_check")
            self.context.discard_remote(classified.message)
            return False
        else:
            self.context.mark_connected()
            return True
        finally:
            self._done.set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the startup check has finished."""
        return self._done.wait(timeout)
