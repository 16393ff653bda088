# =============================================================================
# shopfloor_core/offline/local_database.py
# Local SQLite Key-Value Store for Offline Operations
# =============================================================================
"""
LocalStore - on-device persistence used when no remote store is usable.

Features:
- One JSON value per logical key (jobs, logs, users, settings) under an
  application namespace
- Atomic read-modify-write (``mutate``)
- Change notifications per key (``watch``) so subscribers see every write
- DataFrame export for reporting
- Thread-local connections
"""

from __future__ import annotations
import copy
import json
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import pandas as pd

from shopfloor_core.config import DEFAULT_DB_PATH
from shopfloor_core.logging import get_logger

logger = get_logger(__name__)

Watcher = Callable[[Any], None]


class LocalKeys:
    """Logical keys held in the local store."""
    JOBS = "jobs"
    LOGS = "logs"
    USERS = "users"
    SETTINGS = "settings"
    REMOTE_CONFIG = "remote_config"


class LocalStore:
    """
    SQLite-backed key-value store.

    Usage:
        store = LocalStore(Path("local_data/shopfloor.db"))
        store.initialize()
        jobs = store.read(LocalKeys.JOBS, [])
        unsubscribe = store.watch(LocalKeys.JOBS, print)
    """

    NAMESPACE = "shopfloor"

    SCHEMA = """
        CREATE TABLE IF NOT EXISTS kv_store (
            namespace TEXT NOT NULL,
            key TEXT NOT NULL,
            value TEXT,
            updated_at TEXT DEFAULT CURRENT_TIMESTAMP,
            PRIMARY KEY (namespace, key)
        )
    """

    def __init__(self, db_path: Optional[Path] = None, namespace: Optional[str] = None):
        """
        Initialize local store.

        Args:
            db_path: Path to SQLite database file
            namespace: Key namespace (default: "shopfloor")
        """
        self.db_path = Path(db_path or DEFAULT_DB_PATH)
        self.namespace = namespace or self.NAMESPACE
        self._local = threading.local()
        self._lock = threading.RLock()
        self._watchers: Dict[str, List[Watcher]] = {}
        self._initialized = False

    def _get_connection(self) -> sqlite3.Connection:
        """Get thread-local database connection."""
        if getattr(self._local, "connection", None) is None:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._local.connection = sqlite3.connect(
                str(self.db_path),
                check_same_thread=False,
            )
        return self._local.connection

    @contextmanager
    def transaction(self):
        """Context manager for database transactions."""
        conn = self._get_connection()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise

    def initialize(self) -> None:
        """Create the key-value table if needed."""
        if self._initialized:
            return
        with self.transaction() as conn:
            conn.execute(self.SCHEMA)
        self._initialized = True
        logger.info(f"Local store initialized at: {self.db_path}")

    # =========================================================================
    # KEY-VALUE OPERATIONS
    # =========================================================================

    def read(self, key: str, default: Any = None) -> Any:
        """
        Read the value stored under ``key``.

        Missing keys and corrupt JSON both return ``default``.
        """
        self.initialize()
        row = self._get_connection().execute(
            "SELECT value FROM kv_store WHERE namespace = ? AND key = ?",
            (self.namespace, key),
        ).fetchone()

        if row is None or row[0] is None:
            return copy.deepcopy(default)
        try:
            return json.loads(row[0])
        except json.JSONDecodeError:
            logger.warning(f"Corrupt local value for '{key}', using default")
            return copy.deepcopy(default)

    def write(self, key: str, value: Any) -> None:
        """Store ``value`` under ``key`` and notify watchers."""
        with self._lock:
            self._write(key, value)
        self._notify(key, value)

    def mutate(self, key: str, fn: Callable[[Any], Any], default: Any = None) -> Any:
        """
        Atomically read, transform and write a value.

        ``fn`` receives the current value (or ``default``) and returns the
        new one. Returning the ``NO_CHANGE`` sentinel skips the write.

        Returns:
            The value now stored under ``key``
        """
        with self._lock:
            current = self.read(key, default)
            updated = fn(current)
            if updated is NO_CHANGE:
                return current
            self._write(key, updated)
        self._notify(key, updated)
        return updated

    def delete(self, key: str) -> None:
        """Remove ``key``; watchers receive None."""
        self.initialize()
        with self._lock:
            with self.transaction() as conn:
                conn.execute(
                    "DELETE FROM kv_store WHERE namespace = ? AND key = ?",
                    (self.namespace, key),
                )
        self._notify(key, None)

    def _write(self, key: str, value: Any) -> None:
        self.initialize()
        with self.transaction() as conn:
            conn.execute(
                """
                INSERT INTO kv_store (namespace, key, value, updated_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(namespace, key)
                DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
                """,
                (self.namespace, key, json.dumps(value), datetime.now().isoformat()),
            )

    # =========================================================================
    # CHANGE NOTIFICATION
    # =========================================================================

    def watch(self, key: str, callback: Watcher) -> Callable[[], None]:
        """
        Call ``callback`` with the full value after every write to ``key``.

        Returns:
            Function that removes the watcher
        """
        with self._lock:
            self._watchers.setdefault(key, []).append(callback)

        def unwatch() -> None:
            with self._lock:
                callbacks = self._watchers.get(key, [])
                if callback in callbacks:
                    callbacks.remove(callback)

        return unwatch

    def watcher_count(self, key: str) -> int:
        with self._lock:
            return len(self._watchers.get(key, []))

    def _notify(self, key: str, value: Any) -> None:
        with self._lock:
            callbacks = list(self._watchers.get(key, []))
        for callback in callbacks:
            try:
                callback(copy.deepcopy(value))
            except Exception as e:
                logger.error(f"Error in local store watcher for '{key}': {e}")

    # =========================================================================
    # REPORTING
    # =========================================================================

    def to_dataframe(self, key: str) -> pd.DataFrame:
        """Load a list-valued key as a DataFrame (empty if not a list)."""
        value = self.read(key, [])
        if not isinstance(value, list) or not value:
            return pd.DataFrame()
        return pd.DataFrame(value)

    def close(self) -> None:
        """Close this thread's database connection."""
        connection = getattr(self._local, "connection", None)
        if connection is not None:
            connection.close()
            self._local.connection = None


class _NoChange:
    def __repr__(self) -> str:
        return "NO_CHANGE"


NO_CHANGE = _NoChange()
