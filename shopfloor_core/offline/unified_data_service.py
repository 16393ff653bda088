# =============================================================================
# shopfloor_core/offline/unified_data_service.py
# Unified Data Service - Single API for Online/Offline Operations
# =============================================================================
"""
ShopDataService - the persistence API the rest of the application calls.

Every operation runs against the remote document store while a remote
handle is installed, and against the local store otherwise:

- Writes go to exactly one backend. A remote failure is classified,
  recorded on the connection status and raised; nothing is silently
  written locally instead.
- Subscriptions never raise. A failing remote feed delivers the local
  snapshot and keeps trying.
- Login never fails because the remote store is slow or down: the remote
  lookup is bounded by a short timeout and then local accounts are used.

Usage:
------
from shopfloor_core.offline import get_data_service

service = get_data_service()
sub = service.subscribe_jobs(render_jobs)
log = service.start_time_log(job.id, user.id, user.name, "Deburring")
service.stop_time_log(log.id)
sub.unsubscribe()
"""

from __future__ import annotations
import threading
from dataclasses import replace
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence

from shopfloor_core.auth import DEFAULT_ROUNDS, hash_pin, verify_pin
from shopfloor_core.config import AppConfig, RemoteConfig, load_config
from shopfloor_core.data.models import (
    Job,
    JobStatus,
    SystemSettings,
    TimeLog,
    User,
    new_id,
)
from shopfloor_core.data.supabase_client import RemoteStore
from shopfloor_core.errors import (
    ActiveLogConflictError,
    DataValidationError,
    RecordNotFoundError,
    RemoteStoreError,
    ShopFloorError,
)
from shopfloor_core.logging import get_logger
from shopfloor_core.offline.backend import RemoteBackend
from shopfloor_core.offline.connection_manager import (
    BackendContext,
    ConnectionStatus,
    ConnectivityMonitor,
    classify_remote_error,
)
from shopfloor_core.offline.local_database import LocalKeys, LocalStore
from shopfloor_core.offline.seed_users import (
    DEFAULT_SEED_USERS,
    SeedUser,
    reconcile_seed_users,
)
from shopfloor_core.offline.subscriptions import RemoteWatcher, Subscription, deliver
from shopfloor_core.utils.formatters import now_millis

logger = get_logger(__name__)

SETTINGS_DOCUMENT = "system"


class Collections:
    """Remote collection names."""
    JOBS = "jobs"
    LOGS = "logs"
    USERS = "users"
    SETTINGS = "settings"


def _call_with_timeout(fn: Callable[[], Any], timeout: float) -> Any:
    """
    Run ``fn`` on a daemon thread and wait at most ``timeout`` seconds.

    Raises:
        TimeoutError: ``fn`` did not finish in time (it keeps running)
    """
    outcome: Dict[str, Any] = {}
    finished = threading.Event()

    def target() -> None:
        try:
            outcome["value"] = fn()
        except BaseException as e:
            outcome["error"] = e
        finally:
            finished.set()

    threading.Thread(target=target, daemon=True, name="RemoteLoginFetch").start()
    if not finished.wait(timeout):
        raise TimeoutError(f"Remote call exceeded {timeout:.1f}s")
    if "error" in outcome:
        raise outcome["error"]
    return outcome.get("value")


def _find_index(documents: List[Dict[str, Any]], doc_id: str) -> Optional[int]:
    for index, document in enumerate(documents):
        if document.get("id") == doc_id:
            return index
    return None


def _as_list(value: Any) -> List[Dict[str, Any]]:
    return list(value) if isinstance(value, list) else []


class ShopDataService:
    """
    Single API for jobs, time logs, users and settings.

    Holds no entity state of its own; the backend chosen by the
    ``BackendContext`` is authoritative.
    """

    def __init__(
        self,
        local_store: LocalStore,
        context: BackendContext,
        *,
        clock: Callable[[], int] = now_millis,
        seed_users: Sequence[SeedUser] = DEFAULT_SEED_USERS,
        login_timeout: float = 1.0,
        remote_poll_interval: float = 2.0,
        pin_rounds: int = DEFAULT_ROUNDS,
    ):
        self.local_store = local_store
        self.context = context
        self.clock = clock
        self.seed_users = seed_users
        self.login_timeout = login_timeout
        self.remote_poll_interval = remote_poll_interval
        self.pin_rounds = pin_rounds
        self.monitor: Optional[ConnectivityMonitor] = None
        self._subscriptions: List[Subscription] = []
        self._subscriptions_lock = threading.Lock()

    # =========================================================================
    # STATUS
    # =========================================================================

    @property
    def status(self) -> ConnectionStatus:
        """Shared connectivity status ``{connected, error}``."""
        return self.context.status

    @property
    def is_online(self) -> bool:
        return self.context.is_connected

    def get_status(self) -> Dict[str, Any]:
        """Status information for the view layer's offline indicator."""
        with self._subscriptions_lock:
            open_feeds = sum(1 for sub in self._subscriptions if not sub.closed)
        return {
            "connection": self.context.get_status_display(),
            "is_online": self.is_online,
            "open_subscriptions": open_feeds,
        }

    # =========================================================================
    # BACKEND DISPATCH
    # =========================================================================

    def _run(
        self,
        operation: str,
        remote_fn: Callable[[RemoteStore], Any],
        local_fn: Callable[[LocalStore], Any],
    ) -> Any:
        """Run an operation on whichever backend is current."""
        backend = self.context.select()
        if isinstance(backend, RemoteBackend):
            return self._remote_call(operation, remote_fn, backend.client)
        return local_fn(backend.store)

    def _remote_call(
        self,
        operation: str,
        fn: Callable[[RemoteStore], Any],
        client: RemoteStore,
    ) -> Any:
        try:
            result = fn(client)
        except RemoteStoreError as e:
            self.context.mark_disconnected(e.message)
            raise
        except ShopFloorError:
            # The store answered; the request itself was wrong
            self.context.mark_connected()
            raise
        except Exception as e:
            classified = classify_remote_error(e, operation=operation)
            logger.warning(f"Remote {operation} failed: {classified.message}")
            self.context.mark_disconnected(classified.message)
            raise classified from e

        self.context.mark_connected()
        return result

    # =========================================================================
    # LOCAL HELPERS
    # =========================================================================

    def _local_docs(self, key: str) -> List[Dict[str, Any]]:
        return _as_list(self.local_store.read(key, []))

    def _local_upsert(self, key: str, document: Dict[str, Any]) -> None:
        def apply(documents):
            documents = _as_list(documents)
            index = _find_index(documents, document["id"])
            if index is None:
                documents.append(document)
            else:
                documents[index] = document
            return documents

        self.local_store.mutate(key, apply, [])

    def _local_update(self, key: str, doc_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        updated: Dict[str, Any] = {}

        def apply(documents):
            documents = _as_list(documents)
            index = _find_index(documents, doc_id)
            if index is None:
                raise RecordNotFoundError(
                    f"No {key} record with id {doc_id}", collection=key, record_id=doc_id
                )
            documents[index] = {**documents[index], **fields}
            updated.update(documents[index])
            return documents

        self.local_store.mutate(key, apply, [])
        return updated

    def _local_remove(self, key: str, predicate: Callable[[Dict[str, Any]], bool]) -> None:
        self.local_store.mutate(
            key,
            lambda documents: [d for d in _as_list(documents) if not predicate(d)],
            [],
        )

    def _ensure_seed_users(self) -> None:
        reconcile_seed_users(self.local_store, self.seed_users, self.pin_rounds)

    # =========================================================================
    # SUBSCRIPTIONS
    # =========================================================================

    def _subscribe(
        self,
        collection: str,
        key: str,
        factory: Callable[[Dict[str, Any]], Any],
        callback: Callable[[List[Any]], None],
        before_local: Optional[Callable[[], None]] = None,
    ) -> Subscription:
        name = f"{collection} feed"

        def convert(documents) -> List[Any]:
            return [factory(document) for document in _as_list(documents)]

        def local_snapshot() -> List[Any]:
            if before_local:
                before_local()
            return convert(self.local_store.read(key, []))

        def watch_local() -> Callable[[], None]:
            return self.local_store.watch(
                key, lambda documents: deliver(callback, convert(documents), name)
            )

        backend = self.context.select()
        if isinstance(backend, RemoteBackend):
            client = backend.client
            unwatch_local: List[Callable[[], None]] = []
            handover_lock = threading.Lock()

            def on_error(error: Exception) -> List[Any]:
                classified = classify_remote_error(error, operation=f"subscribe_{collection}")
                logger.warning(f"{name} degraded to local data: {classified.message}")
                self.context.mark_disconnected(classified.message)
                return local_snapshot()

            def hand_over_to_local() -> None:
                if before_local:
                    before_local()
                with handover_lock:
                    if subscription.closed:
                        return
                    unwatch_local.append(watch_local())
                deliver(callback, convert(self.local_store.read(key, [])), name)

            def cancel() -> None:
                watcher.stop()
                with handover_lock:
                    for unwatch in unwatch_local:
                        unwatch()
                    unwatch_local.clear()

            watcher = RemoteWatcher(
                fetch=lambda: convert(client.fetch_all(collection)),
                on_value=callback,
                on_success=self.context.mark_connected,
                on_error=on_error,
                interval=self.remote_poll_interval,
                name=name,
                is_current=lambda: self.context.remote is client,
                on_retired=hand_over_to_local,
            )
            subscription = Subscription(cancel, name=name)
            watcher.start()
        else:
            if before_local:
                before_local()
            subscription = Subscription(watch_local(), name=name)
            deliver(callback, convert(self.local_store.read(key, [])), name)

        with self._subscriptions_lock:
            self._subscriptions = [s for s in self._subscriptions if not s.closed]
            self._subscriptions.append(subscription)
        return subscription

    def subscribe_jobs(self, callback: Callable[[List[Job]], None]) -> Subscription:
        """Push the full job list on every change."""
        return self._subscribe(Collections.JOBS, LocalKeys.JOBS, Job.from_dict, callback)

    def subscribe_logs(self, callback: Callable[[List[TimeLog]], None]) -> Subscription:
        """Push the full time-log list on every change."""
        return self._subscribe(Collections.LOGS, LocalKeys.LOGS, TimeLog.from_dict, callback)

    def subscribe_active_logs(self, callback: Callable[[List[TimeLog]], None]) -> Subscription:
        """Push only the running logs (no end time)."""
        return self.subscribe_logs(lambda logs: callback([log for log in logs if log.is_active]))

    def subscribe_users(self, callback: Callable[[List[User]], None]) -> Subscription:
        """Push the full user list; locally the guaranteed accounts are restored first."""
        return self._subscribe(
            Collections.USERS,
            LocalKeys.USERS,
            User.from_dict,
            callback,
            before_local=self._ensure_seed_users,
        )

    # =========================================================================
    # JOBS
    # =========================================================================

    def get_job_by_id(self, job_id: str) -> Optional[Job]:
        """One job by id, or None."""
        def remote(client: RemoteStore):
            document = client.get(Collections.JOBS, job_id)
            return Job.from_dict(document) if document else None

        def local(store: LocalStore):
            documents = self._local_docs(LocalKeys.JOBS)
            index = _find_index(documents, job_id)
            return Job.from_dict(documents[index]) if index is not None else None

        return self._run("get_job", remote, local)

    def save_job(self, job: Job) -> Job:
        """
        Create or replace a job.

        ``completed_at`` is brought in line with ``status`` before saving.
        """
        if job.status == JobStatus.COMPLETED and job.completed_at is None:
            job = replace(job, completed_at=self.clock())
        elif job.status != JobStatus.COMPLETED and job.completed_at is not None:
            job = replace(job, completed_at=None)
        if not job.created_at:
            job = replace(job, created_at=self.clock())
        job.validate()

        document = job.to_dict()
        self._run(
            "save_job",
            lambda client: client.set(Collections.JOBS, job.id, document),
            lambda store: self._local_upsert(LocalKeys.JOBS, document),
        )
        logger.info(f"Job saved: {job.po_number or job.id}")
        return job

    def delete_job(self, job_id: str) -> None:
        """Delete a job and every time log recorded against it."""
        def remote(client: RemoteStore):
            client.delete(Collections.JOBS, job_id)
            client.delete_where(Collections.LOGS, "jobId", job_id)

        def local(store: LocalStore):
            self._local_remove(LocalKeys.JOBS, lambda d: d.get("id") == job_id)
            self._local_remove(LocalKeys.LOGS, lambda d: d.get("jobId") == job_id)

        self._run("delete_job", remote, local)
        logger.info(f"Job deleted with its logs: {job_id}")

    def complete_job(self, job_id: str) -> Job:
        """Mark a job completed and stamp ``completedAt``."""
        fields = {"status": JobStatus.COMPLETED.value, "completedAt": self.clock()}
        document = self._run(
            "complete_job",
            lambda client: client.update(Collections.JOBS, job_id, fields),
            lambda store: self._local_update(LocalKeys.JOBS, job_id, fields),
        )
        return Job.from_dict(document)

    def reopen_job(self, job_id: str) -> Job:
        """Move a completed job back to pending and clear ``completedAt``."""
        fields = {"status": JobStatus.PENDING.value, "completedAt": None}
        document = self._run(
            "reopen_job",
            lambda client: client.update(Collections.JOBS, job_id, fields),
            lambda store: self._local_update(LocalKeys.JOBS, job_id, fields),
        )
        return Job.from_dict(document)

    # =========================================================================
    # TIME LOGS
    # =========================================================================

    @staticmethod
    def _check_no_active_log(documents: List[Dict[str, Any]], user_id: str) -> None:
        for document in documents:
            if document.get("userId") == user_id and document.get("endTime") is None:
                raise ActiveLogConflictError(user_id, str(document.get("id")))

    def start_time_log(
        self,
        job_id: str,
        user_id: str,
        user_name: str,
        operation: str,
        machine_id: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> TimeLog:
        """
        Start a work session and move the job to in-progress.

        Raises:
            ActiveLogConflictError: the user already has a running log
        """
        log = TimeLog(
            id=new_id(),
            job_id=job_id,
            user_id=user_id,
            user_name=user_name,
            operation=operation,
            start_time=self.clock(),
            machine_id=machine_id,
            notes=notes,
        )
        document = log.to_dict()
        in_progress = {"status": JobStatus.IN_PROGRESS.value}

        def remote(client: RemoteStore):
            self._check_no_active_log(client.find(Collections.LOGS, "userId", user_id), user_id)
            client.set(Collections.LOGS, log.id, document)
            # The log is written; a failed status update must not undo that
            try:
                client.update(Collections.JOBS, job_id, in_progress)
            except Exception as e:
                logger.warning(f"Could not mark job {job_id} in-progress: {e}")

        def local(store: LocalStore):
            def append(documents):
                documents = _as_list(documents)
                self._check_no_active_log(documents, user_id)
                documents.append(document)
                return documents

            store.mutate(LocalKeys.LOGS, append, [])
            try:
                self._local_update(LocalKeys.JOBS, job_id, in_progress)
            except RecordNotFoundError:
                logger.warning(f"Time log started for unknown job {job_id}")

        self._run("start_time_log", remote, local)
        logger.info(f"Timer started: {user_name} on {job_id} ({operation})")
        return log

    def stop_time_log(
        self,
        log_id: str,
        session_qty: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> TimeLog:
        """
        Stop a work session; duration is whole minutes, rounded, never negative.

        Raises:
            RecordNotFoundError: no log with this id
        """
        end_time = self.clock()
        changes: Dict[str, Any] = {}
        if session_qty is not None:
            changes["session_qty"] = session_qty
        if notes is not None:
            changes["notes"] = notes

        def not_found() -> RecordNotFoundError:
            return RecordNotFoundError(
                "Log not found.", collection=Collections.LOGS, record_id=log_id
            )

        def remote(client: RemoteStore):
            document = client.get(Collections.LOGS, log_id)
            if document is None:
                raise not_found()
            stopped = TimeLog.from_dict(document).closed_at(end_time, **changes)
            client.set(Collections.LOGS, log_id, stopped.to_dict())
            return stopped

        def local(store: LocalStore):
            result: List[TimeLog] = []

            def apply(documents):
                documents = _as_list(documents)
                index = _find_index(documents, log_id)
                if index is None:
                    raise not_found()
                stopped = TimeLog.from_dict(documents[index]).closed_at(end_time, **changes)
                documents[index] = {**documents[index], **stopped.to_dict()}
                result.append(stopped)
                return documents

            store.mutate(LocalKeys.LOGS, apply, [])
            return result[0]

        stopped = self._run("stop_time_log", remote, local)
        logger.info(f"Timer stopped: {log_id} ({stopped.duration_minutes} min)")
        return stopped

    def update_time_log(self, log: TimeLog) -> TimeLog:
        """
        Administrative edit of a log. The duration is recomputed from the
        stamps; clearing ``end_time`` re-opens the log.
        """
        log = log.normalized()
        document = log.to_dict()
        self._run(
            "update_time_log",
            lambda client: client.update(Collections.LOGS, log.id, document),
            lambda store: self._local_update(LocalKeys.LOGS, log.id, document),
        )
        return log

    def delete_time_log(self, log_id: str) -> None:
        self._run(
            "delete_time_log",
            lambda client: client.delete(Collections.LOGS, log_id),
            lambda store: self._local_remove(LocalKeys.LOGS, lambda d: d.get("id") == log_id),
        )

    def auto_clock_out(self, now: Optional[int] = None) -> List[TimeLog]:
        """
        Close running logs left open past the configured clock-out time.

        Does nothing unless auto clock-out is enabled and today's cut-off
        has passed. Closed logs end at the cut-off and are flagged
        ``is_auto_closed``.

        Returns:
            The logs that were closed
        """
        settings = self.get_settings()
        if not settings.auto_clock_out_enabled:
            return []

        now = now if now is not None else self.clock()
        try:
            hour, minute = (int(part) for part in settings.auto_clock_out_time.split(":", 1))
            cutoff_dt = datetime.fromtimestamp(now / 1000).replace(
                hour=hour, minute=minute, second=0, microsecond=0
            )
        except ValueError:
            logger.warning(f"Invalid auto clock-out time: {settings.auto_clock_out_time!r}")
            return []

        cutoff = int(cutoff_dt.timestamp() * 1000)
        if now < cutoff:
            return []

        def close_stale(documents: List[Dict[str, Any]]) -> List[TimeLog]:
            return [
                TimeLog.from_dict(d).closed_at(cutoff, is_auto_closed=True)
                for d in documents
                if d.get("endTime") is None and int(d.get("startTime") or 0) < cutoff
            ]

        def remote(client: RemoteStore):
            closed = close_stale(client.fetch_all(Collections.LOGS))
            for log in closed:
                client.set(Collections.LOGS, log.id, log.to_dict())
            return closed

        def local(store: LocalStore):
            closed: List[TimeLog] = []

            def apply(documents):
                documents = _as_list(documents)
                closed.extend(close_stale(documents))
                by_id = {log.id: log.to_dict() for log in closed}
                return [{**d, **by_id[d["id"]]} if d.get("id") in by_id else d for d in documents]

            store.mutate(LocalKeys.LOGS, apply, [])
            return closed

        closed = self._run("auto_clock_out", remote, local)
        if closed:
            logger.info(f"Auto clock-out closed {len(closed)} running log(s)")
        return closed

    # =========================================================================
    # USERS
    # =========================================================================

    def save_user(self, user: User, pin: Optional[str] = None) -> User:
        """
        Create or replace a user. A new ``pin`` is hashed before storage.

        Raises:
            DataValidationError: missing username or PIN
        """
        if pin:
            user = replace(user, pin_hash=hash_pin(pin, self.pin_rounds))
        if not user.username.strip():
            raise DataValidationError("Username is required", field="username")
        if not user.pin_hash:
            raise DataValidationError("A PIN is required", field="pin")

        document = user.to_dict()

        def local(store: LocalStore):
            self._ensure_seed_users()
            self._local_upsert(LocalKeys.USERS, document)

        self._run(
            "save_user",
            lambda client: client.set(Collections.USERS, user.id, document),
            local,
        )
        return user

    def delete_user(self, user_id: str) -> None:
        self._run(
            "delete_user",
            lambda client: client.delete(Collections.USERS, user_id),
            lambda store: self._local_remove(LocalKeys.USERS, lambda d: d.get("id") == user_id),
        )

    def _match_user(self, documents: List[Dict[str, Any]], username: str, pin: str) -> Optional[User]:
        for document in documents:
            user = User.from_dict(document)
            if user.matches_username(username) and user.is_active and verify_pin(pin, user.pin_hash):
                return user
        return None

    def login_user(self, username: str, pin: str) -> Optional[User]:
        """
        Authenticate by username (case-insensitive) and PIN.

        Never raises for backend trouble: a slow, failing or non-matching
        remote lookup falls through to the local accounts.

        Returns:
            The active matching user, or None
        """
        backend = self.context.select()
        if isinstance(backend, RemoteBackend):
            client = backend.client
            try:
                documents = _call_with_timeout(
                    lambda: client.fetch_all(Collections.USERS), self.login_timeout
                )
            except TimeoutError:
                logger.warning("Remote login lookup timed out, using local accounts")
            except Exception as e:
                classified = classify_remote_error(e, operation="login")
                logger.warning(f"Remote login lookup failed ({classified.message}), using local accounts")
                self.context.mark_disconnected(classified.message)
            else:
                self.context.mark_connected()
                found = self._match_user(documents or [], username, pin)
                if found:
                    return found

        self._ensure_seed_users()
        return self._match_user(self._local_docs(LocalKeys.USERS), username, pin)

    # =========================================================================
    # SETTINGS
    # =========================================================================

    def get_settings(self) -> SystemSettings:
        """Settings from the local store, defaults filled in."""
        stored = self.local_store.read(LocalKeys.SETTINGS, None)
        return SystemSettings.from_dict(stored if isinstance(stored, dict) else None)

    def save_settings(self, settings: SystemSettings) -> None:
        """
        Save settings locally, then mirror them to the remote store.

        The local copy is authoritative; a remote failure is raised after
        the local write has already happened.
        """
        document = settings.to_dict()
        self.local_store.write(LocalKeys.SETTINGS, document)

        backend = self.context.select()
        if isinstance(backend, RemoteBackend):
            self._remote_call(
                "save_settings",
                lambda client: client.set(Collections.SETTINGS, SETTINGS_DOCUMENT, document),
                backend.client,
            )

    def save_remote_config(self, remote: RemoteConfig) -> None:
        """Persist remote credentials; used from the next start."""
        self.local_store.write(LocalKeys.REMOTE_CONFIG, remote.to_dict())
        logger.info("Remote configuration saved; restart to apply")

    def clear_remote_config(self) -> None:
        self.local_store.delete(LocalKeys.REMOTE_CONFIG)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def close(self) -> None:
        """Cancel every open subscription."""
        with self._subscriptions_lock:
            subscriptions, self._subscriptions = self._subscriptions, []
        for subscription in subscriptions:
            try:
                subscription.unsubscribe()
            except Exception as e:
                logger.error(f"Error closing {subscription.name}: {e}")


def build_data_service(
    config: Optional[AppConfig] = None,
    background_check: bool = True,
) -> ShopDataService:
    """
    Composition root: local store, backend context, health monitor, service.

    Args:
        config: Explicit configuration (default: load from env/secrets and
            any credentials saved in the local store)
        background_check: Verify the remote store on a background thread
    """
    if config is None:
        base = load_config()
        local_store = LocalStore(base.db_path)
        local_store.initialize()
        config = load_config(stored_remote=local_store.read(LocalKeys.REMOTE_CONFIG, None))
    else:
        local_store = LocalStore(config.db_path)
        local_store.initialize()

    context = BackendContext(local_store)
    monitor = ConnectivityMonitor(context, config)
    monitor.initialize(background=background_check)

    service = ShopDataService(
        local_store,
        context,
        login_timeout=config.login_timeout,
        remote_poll_interval=config.remote_poll_interval,
        pin_rounds=config.pin_rounds,
    )
    service.monitor = monitor
    logger.info(f"ShopDataService initialized. Online: {service.is_online}")
    return service


# Singleton accessor
_data_service: Optional[ShopDataService] = None
_data_service_lock = threading.Lock()


def get_data_service() -> ShopDataService:
    """
    Get the global ShopDataService instance.

    Usage:
        from shopfloor_core.offline import get_data_service

        service = get_data_service()
        user = service.login_user("jdoe", "1234")
    """
    global _data_service
    if _data_service is None:
        with _data_service_lock:
            if _data_service is None:
                _data_service = build_data_service()
    return _data_service
