# =============================================================================
# shopfloor_core/offline/backend.py
# Backend selection: remote document store or local store
# =============================================================================

from __future__ import annotations
from dataclasses import dataclass
from typing import Union

from shopfloor_core.data.supabase_client import RemoteStore
from shopfloor_core.offline.local_database import LocalStore


@dataclass(frozen=True)
class RemoteBackend:
    """A live remote handle is installed; operate on it."""
    client: RemoteStore


@dataclass(frozen=True)
class LocalBackend:
    """No usable remote handle; the local store is authoritative."""
    store: LocalStore


Backend = Union[RemoteBackend, LocalBackend]
