# =============================================================================
# shopfloor_core/offline/seed_users.py
# Guaranteed break-glass accounts in the local store
# =============================================================================
"""
A fixed set of accounts always exists locally with known credentials, so
the shop can never be locked out: a cleared or corrupted store, or an
administrator who disabled or re-pinned the last admin account, is repaired
the next time users are loaded or someone logs in locally.
"""

from __future__ import annotations
import threading
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from shopfloor_core.auth import DEFAULT_ROUNDS, hash_pin, verify_pin
from shopfloor_core.data.models import User, UserRole
from shopfloor_core.logging import get_logger
from shopfloor_core.offline.local_database import LocalKeys, LocalStore, NO_CHANGE

logger = get_logger(__name__)


@dataclass(frozen=True)
class SeedUser:
    id: str
    name: str
    username: str
    pin: str
    role: UserRole

    def to_user(self, rounds: int = DEFAULT_ROUNDS, pin_hash: Optional[str] = None) -> User:
        return User(
            id=self.id,
            name=self.name,
            username=self.username,
            pin_hash=pin_hash or hash_pin(self.pin, rounds),
            role=self.role,
            is_active=True,
        )


DEFAULT_SEED_USERS: Sequence[SeedUser] = (
    SeedUser("admin_anthony", "Anthony", "anthony", "2061", UserRole.ADMIN),
    SeedUser("admin_chavez", "Chavez", "chavez", "2061", UserRole.ADMIN),
    SeedUser("admin1", "Shop Manager", "admin", "9999", UserRole.ADMIN),
    SeedUser("emp1", "John Doe", "jdoe", "1234", UserRole.EMPLOYEE),
)


# (seed pin, stored hash) pairs already checked with bcrypt
_verified: Dict[Tuple[str, str], bool] = {}
_verified_lock = threading.Lock()


def _seed_pin_matches(pin: str, stored: Optional[str]) -> bool:
    if not stored:
        return False
    key = (pin, stored)
    with _verified_lock:
        if key in _verified:
            return _verified[key]
    result = verify_pin(pin, stored)
    with _verified_lock:
        _verified[key] = result
    return result


def _remember_hash(pin: str, pin_hash: str) -> None:
    with _verified_lock:
        _verified[(pin, pin_hash)] = True


def _find(documents: List[Dict[str, Any]], username: str) -> Optional[int]:
    return next(
        (
            i for i, doc in enumerate(documents)
            if str(doc.get("username", "")).lower() == username.lower()
        ),
        None,
    )


def _needs_repair(seed: SeedUser, document: Dict[str, Any]) -> bool:
    existing = User.from_dict(document)
    return existing.role != seed.role or not _seed_pin_matches(seed.pin, existing.pin_hash)


def _pending_hashes(
    documents: Any, seeds: Sequence[SeedUser], rounds: int
) -> Dict[str, str]:
    """Hashes for the seeds the current users list lacks or has altered."""
    documents = documents if isinstance(documents, list) else []
    pending = {}
    for seed in seeds:
        index = _find(documents, seed.username)
        if index is None or _needs_repair(seed, documents[index]):
            pin_hash = hash_pin(seed.pin, rounds)
            _remember_hash(seed.pin, pin_hash)
            pending[seed.username] = pin_hash
    return pending


def reconcile_seed_users(
    store: LocalStore,
    seeds: Sequence[SeedUser] = DEFAULT_SEED_USERS,
    rounds: int = DEFAULT_ROUNDS,
) -> bool:
    """
    Make sure every seed account exists locally with its fixed PIN and role.

    Missing accounts are added. An account whose PIN or role was changed
    gets both restored and is re-activated; its other fields are kept.
    Writes only when something changed or the user list was empty.

    PIN checks are remembered per stored hash and new hashes are computed
    before the store lock is taken, so an already-reconciled store costs
    no bcrypt work.

    Returns:
        True if the stored users were changed
    """
    pending = _pending_hashes(store.read(LocalKeys.USERS, []), seeds, rounds)
    changed = False

    def hash_for(seed: SeedUser) -> str:
        # users changed between the read above and the lock
        if seed.username not in pending:
            pending[seed.username] = hash_pin(seed.pin, rounds)
            _remember_hash(seed.pin, pending[seed.username])
        return pending[seed.username]

    def apply(documents: List[Dict[str, Any]]):
        nonlocal changed
        if not isinstance(documents, list):
            documents = []
        was_empty = not documents
        merged = list(documents)

        for seed in seeds:
            index = _find(merged, seed.username)
            if index is None:
                merged.append(seed.to_user(rounds, pin_hash=hash_for(seed)).to_dict())
                changed = True
                continue

            if _needs_repair(seed, merged[index]):
                repaired = dict(merged[index])
                repaired.pop("pin", None)
                repaired["pinHash"] = hash_for(seed)
                repaired["role"] = seed.role.value
                repaired["isActive"] = True
                merged[index] = repaired
                changed = True

        if changed or was_empty:
            return merged
        return NO_CHANGE

    store.mutate(LocalKeys.USERS, apply, [])
    if changed:
        logger.info("Guaranteed accounts restored in local store")
    return changed
