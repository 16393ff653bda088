# =============================================================================
# shopfloor_core/data/__init__.py
# Entity models and the remote document store
# =============================================================================

from .models import (
    Job,
    JobStatus,
    JobPriority,
    TimeLog,
    User,
    UserRole,
    SystemSettings,
    DEFAULT_OPERATIONS,
    compute_duration_minutes,
    new_id,
)

from .supabase_client import (
    RemoteStore,
    create_remote_store,
    COLLECTIONS,
)

__all__ = [
    "Job",
    "JobStatus",
    "JobPriority",
    "TimeLog",
    "User",
    "UserRole",
    "SystemSettings",
    "DEFAULT_OPERATIONS",
    "compute_duration_minutes",
    "new_id",
    "RemoteStore",
    "create_remote_store",
    "COLLECTIONS",
]
