# =============================================================================
# tests/conftest.py
# Pytest Configuration and Fixtures
# =============================================================================

import copy
import threading
import time

import pytest
from typing import Any, Dict, List, Optional
from unittest.mock import MagicMock

from shopfloor_core.data.models import Job, JobPriority, User, UserRole
from shopfloor_core.auth import hash_pin
from shopfloor_core.errors import RecordNotFoundError
from shopfloor_core.offline import BackendContext, LocalStore, ShopDataService

TEST_PIN_ROUNDS = 4  # bcrypt minimum; keeps hashing fast in tests
START_MS = 1_767_225_600_000  # 2026-01-01T00:00:00Z


# =============================================================================
# TEST DOUBLES
# =============================================================================

class FakeClock:
    """Epoch-millis clock that only moves when told to."""

    def __init__(self, now: int = START_MS):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: float) -> int:
        self.now += int(seconds * 1000)
        return self.now


class FakeRemoteStore:
    """
    In-memory stand-in for RemoteStore.

    ``fail_with`` makes every call raise; ``failures`` maps a method name to
    the exception that method raises. ``delay`` slows down ``fetch_all``.
    """

    def __init__(self):
        self.collections: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self.fail_with: Optional[Exception] = None
        self.failures: Dict[str, Exception] = {}
        self.delay: float = 0.0
        self.calls: List[str] = []
        self.cleaned_up = False
        self._lock = threading.Lock()

    def _enter(self, method: str) -> None:
        self.calls.append(method)
        if self.fail_with is not None:
            raise self.fail_with
        if method in self.failures:
            raise self.failures[method]

    def _docs(self, collection: str) -> Dict[str, Dict[str, Any]]:
        return self.collections.setdefault(collection, {})

    def seed(self, collection: str, documents: List[Dict[str, Any]]) -> None:
        for document in documents:
            self._docs(collection)[document["id"]] = copy.deepcopy(document)

    def fetch_all(self, collection: str) -> List[Dict[str, Any]]:
        if self.delay:
            time.sleep(self.delay)
        self._enter("fetch_all")
        with self._lock:
            return [copy.deepcopy(d) for _, d in sorted(self._docs(collection).items())]

    def fetch_first(self, collection: str) -> List[Dict[str, Any]]:
        self._enter("fetch_first")
        return self.fetch_all(collection)[:1]

    def find(self, collection: str, field: str, value: Any) -> List[Dict[str, Any]]:
        self._enter("find")
        with self._lock:
            return [copy.deepcopy(d) for d in self._docs(collection).values() if d.get(field) == value]

    def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        self._enter("get")
        with self._lock:
            document = self._docs(collection).get(doc_id)
            return copy.deepcopy(document) if document else None

    def set(self, collection: str, doc_id: str, data: Dict[str, Any], merge: bool = True):
        self._enter("set")
        with self._lock:
            existing = self._docs(collection).get(doc_id) if merge else None
            document = {**(existing or {}), **copy.deepcopy(data), "id": doc_id}
            self._docs(collection)[doc_id] = document
            return copy.deepcopy(document)

    def update(self, collection: str, doc_id: str, fields: Dict[str, Any]):
        self._enter("update")
        with self._lock:
            if doc_id not in self._docs(collection):
                raise RecordNotFoundError(
                    f"No {collection} document with id {doc_id}",
                    collection=collection,
                    record_id=doc_id,
                )
            self._docs(collection)[doc_id].update(copy.deepcopy(fields))
            return copy.deepcopy(self._docs(collection)[doc_id])

    def delete(self, collection: str, doc_id: str) -> None:
        self._enter("delete")
        with self._lock:
            self._docs(collection).pop(doc_id, None)

    def delete_where(self, collection: str, field: str, value: Any) -> None:
        self._enter("delete_where")
        with self._lock:
            docs = self._docs(collection)
            for doc_id in [k for k, d in docs.items() if d.get(field) == value]:
                del docs[doc_id]

    def cleanup(self) -> None:
        self.cleaned_up = True


# =============================================================================
# STORE / SERVICE FIXTURES
# =============================================================================

@pytest.fixture
def local_store(tmp_path):
    """Fresh SQLite-backed local store"""
    store = LocalStore(tmp_path / "shopfloor_test.db")
    store.initialize()
    yield store
    store.close()


@pytest.fixture
def fake_remote():
    return FakeRemoteStore()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def local_context(local_store):
    """Context with no remote handle"""
    return BackendContext(local_store)


@pytest.fixture
def remote_context(local_store, fake_remote):
    """Context with a healthy fake remote installed"""
    return BackendContext(local_store, remote=fake_remote)


def _make_service(local_store, context, clock, **kwargs):
    kwargs.setdefault("pin_rounds", TEST_PIN_ROUNDS)
    kwargs.setdefault("remote_poll_interval", 0.05)
    return ShopDataService(local_store, context, clock=clock, **kwargs)


@pytest.fixture
def local_service(local_store, local_context, clock):
    """ShopDataService running on the local store"""
    service = _make_service(local_store, local_context, clock)
    yield service
    service.close()


@pytest.fixture
def remote_service(local_store, remote_context, clock):
    """ShopDataService running on the fake remote store"""
    service = _make_service(local_store, remote_context, clock)
    yield service
    service.close()


@pytest.fixture
def make_service(local_store, clock):
    """Factory for services with custom options"""
    created = []

    def factory(context, **kwargs):
        service = _make_service(local_store, context, clock, **kwargs)
        created.append(service)
        return service

    yield factory
    for service in created:
        service.close()


# =============================================================================
# SAMPLE DATA FIXTURES
# =============================================================================

@pytest.fixture
def sample_job():
    return Job(
        id="job-100",
        po_number="PO-100",
        part_number="BRK-7",
        customer="Acme Fabrication",
        priority=JobPriority.HIGH,
        quantity=25,
        date_received="2026-01-01",
        due_date="2026-01-15",
        info="Part: Bracket",
    )


@pytest.fixture
def sample_user():
    return User(
        id="u-42",
        name="Maria Lopez",
        username="mlopez",
        pin_hash=hash_pin("4321", TEST_PIN_ROUNDS),
        role=UserRole.EMPLOYEE,
    )


# =============================================================================
# MOCK FIXTURES
# =============================================================================

@pytest.fixture
def mock_supabase():
    """Mock Supabase client"""
    mock_client = MagicMock()
    mock_client.table.return_value.select.return_value.execute.return_value.data = []
    mock_client.table.return_value.upsert.return_value.execute.return_value = MagicMock()
    return mock_client


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

class Recorder:
    """Collects subscription deliveries."""

    def __init__(self):
        self.calls: List[Any] = []
        self._event = threading.Event()

    def __call__(self, value) -> None:
        self.calls.append(value)
        self._event.set()

    @property
    def last(self):
        return self.calls[-1] if self.calls else None

    def wait_for(self, predicate, timeout: float = 2.0) -> bool:
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if self.calls and predicate(self.last):
                return True
            time.sleep(0.01)
        return False


@pytest.fixture
def recorder():
    """Factory for subscription recorders"""
    return Recorder
