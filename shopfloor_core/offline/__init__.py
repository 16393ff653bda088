# =============================================================================
# shopfloor_core/offline/__init__.py
# Dual-Backend Persistence for the Shop-Floor Tracker
# =============================================================================
"""
Dual-Backend Persistence Module

The tracker runs against a remote document store when one is configured and
reachable, and against a local SQLite store otherwise. Callers use one API
and never branch on which backend is live.

Architecture:
------------
┌─────────────────────────────────────────────────────────────────┐
│                   DUAL-BACKEND PERSISTENCE                       │
├─────────────────────────────────────────────────────────────────┤
│                                                                  │
│   ┌──────────────────────────────────────────────────────────┐  │
│   │                  ShopDataService                          │  │
│   │         (Single API - the view layer uses this only)      │  │
│   └──────────────────────────────────────────────────────────┘  │
│                            │                                     │
│              ┌─────────────┴─────────────┐                      │
│              ▼                           ▼                      │
│   ┌──────────────────┐        ┌──────────────────┐             │
│   │  BackendContext  │◄───────│ConnectivityMonitor│            │
│   │ (status + handle)│        │ (startup check)  │             │
│   └──────────────────┘        └──────────────────┘             │
│              │                                                   │
│   ┌──────────┴──────────┐                                       │
│   ▼                     ▼                                       │
│ ┌────────┐        ┌──────────┐                                  │
│ │Supabase│        │  SQLite  │   (no sync between them)         │
│ │(Remote)│        │ (Local)  │                                  │
│ └────────┘        └──────────┘                                  │
└─────────────────────────────────────────────────────────────────┘

Usage:
------
from shopfloor_core.offline import get_data_service

# Get the singleton service
service = get_data_service()

# Use it - automatically routes to the live backend
user = service.login_user("jdoe", "1234")
sub = service.subscribe_jobs(print)

# Check status
print(service.is_online)       # True/False
print(service.status.error)    # Why the remote store is not in use
"""

from shopfloor_core.offline.backend import (
    Backend,
    LocalBackend,
    RemoteBackend,
)

from shopfloor_core.offline.connection_manager import (
    BackendContext,
    ConnectionStatus,
    ConnectivityMonitor,
    NO_CREDENTIALS_MESSAGE,
    classify_remote_error,
)

from shopfloor_core.offline.local_database import (
    LocalKeys,
    LocalStore,
    NO_CHANGE,
)

from shopfloor_core.offline.seed_users import (
    DEFAULT_SEED_USERS,
    SeedUser,
    reconcile_seed_users,
)

from shopfloor_core.offline.subscriptions import (
    RemoteWatcher,
    Subscription,
)

from shopfloor_core.offline.unified_data_service import (
    Collections,
    ShopDataService,
    build_data_service,
    get_data_service,
)

__all__ = [
    # Backend selection
    "Backend",
    "LocalBackend",
    "RemoteBackend",
    # Connectivity
    "BackendContext",
    "ConnectionStatus",
    "ConnectivityMonitor",
    "NO_CREDENTIALS_MESSAGE",
    "classify_remote_error",
    # Local Store
    "LocalKeys",
    "LocalStore",
    "NO_CHANGE",
    # Guaranteed accounts
    "DEFAULT_SEED_USERS",
    "SeedUser",
    "reconcile_seed_users",
    # Feeds
    "RemoteWatcher",
    "Subscription",
    # Unified Service (Main API)
    "Collections",
    "ShopDataService",
    "build_data_service",
    "get_data_service",
]
