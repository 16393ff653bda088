# =============================================================================
# shopfloor_core/offline/subscriptions.py
# Live collection feeds for the view layer
# =============================================================================
"""
Subscriptions push the full current set of a collection to a callback.

- Local feeds deliver a snapshot immediately, then one delivery per local
  write (the local store notifies on change).
- Remote feeds re-read the collection on a background thread and deliver
  whenever the set changes. A failed read is reported through
  ``on_error``, which supplies a fallback snapshot to deliver instead; the
  feed never raises into the caller and keeps watching. Once the remote
  handle is discarded the feed stops reading it and hands over to the
  local store.

Every feed returns a ``Subscription``; call ``unsubscribe()`` to release
the watcher or thread.
"""

from __future__ import annotations
import threading
from typing import Any, Callable, List, Optional

from shopfloor_core.logging import get_logger

logger = get_logger(__name__)


class Subscription:
    """Handle returned by every subscribe call."""

    def __init__(self, cancel: Callable[[], None], name: str = "subscription"):
        self._cancel = cancel
        self._closed = False
        self._lock = threading.Lock()
        self.name = name

    @property
    def closed(self) -> bool:
        return self._closed

    def unsubscribe(self) -> None:
        """Stop deliveries. Safe to call more than once."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self._cancel()
        logger.debug(f"Unsubscribed {self.name}")

    __call__ = unsubscribe

    def __enter__(self) -> Subscription:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.unsubscribe()
        return False


def deliver(callback: Callable[[Any], None], value: Any, name: str) -> None:
    """Invoke a subscriber; its exceptions are logged, never propagated."""
    try:
        callback(value)
    except Exception as e:
        logger.error(f"Error in {name} subscriber: {e}")


class RemoteWatcher:
    """
    Background reader that turns repeated collection reads into a feed.

    Args:
        fetch: Reads the full collection (may raise)
        on_value: Receives each changed snapshot
        on_success: Called after every successful read
        on_error: Called with the exception of a failed read; returns the
            snapshot to deliver in its place, or None to deliver nothing
        interval: Seconds between reads
        is_current: False once the remote handle behind ``fetch`` is gone
        on_retired: Called once, on the watcher thread, when ``is_current``
            turns False; the watcher stops reading after that
    """

    def __init__(
        self,
        fetch: Callable[[], List[Any]],
        on_value: Callable[[List[Any]], None],
        on_success: Callable[[], None],
        on_error: Callable[[Exception], Optional[List[Any]]],
        interval: float,
        name: str = "remote feed",
        is_current: Optional[Callable[[], bool]] = None,
        on_retired: Optional[Callable[[], None]] = None,
    ):
        self._fetch = fetch
        self._on_value = on_value
        self._on_success = on_success
        self._on_error = on_error
        self._is_current = is_current
        self._on_retired = on_retired
        self.interval = interval
        self.name = name
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._last: Optional[List[Any]] = None
        self._failed = False
        self.retired = False

    def start(self) -> Subscription:
        """Read once on the caller's thread, then keep watching in the background."""
        self.poll_once()
        self._thread = threading.Thread(
            target=self._run,
            daemon=True,
            name=f"RemoteWatcher[{self.name}]",
        )
        self._thread.start()
        return Subscription(self.stop, name=self.name)

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout=self.interval + 1)

    def _run(self) -> None:
        while not self._stop.wait(timeout=self.interval):
            self.poll_once()

    def _retire_if_stale(self) -> bool:
        if self._is_current is None or self._is_current():
            return False
        self._stop.set()
        self.retired = True
        logger.info(f"{self.name}: remote handle gone, no further remote reads")
        if self._on_retired is not None:
            self._on_retired()
        return True

    def poll_once(self) -> None:
        """One read; delivers if the set changed or the previous read failed."""
        if self._stop.is_set() or self._retire_if_stale():
            return
        try:
            value = self._fetch()
        except Exception as e:
            if self._retire_if_stale():
                return
            self._failed = True
            fallback = self._on_error(e)
            if fallback is not None and not self._stop.is_set():
                deliver(self._on_value, fallback, self.name)
            return

        if self._retire_if_stale():
            return
        self._on_success()
        if self._failed or value != self._last:
            self._failed = False
            self._last = value
            if not self._stop.is_set():
                deliver(self._on_value, value, self.name)
