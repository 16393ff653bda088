# =============================================================================
# shopfloor_core/errors/__init__.py
# Centralized Error Handling for the Shop-Floor Tracker
# =============================================================================

from .exceptions import (
    ShopFloorError,
    ConfigurationError,
    ErrorKind,
    RemoteStoreError,
    PermissionDeniedError,
    NetworkOfflineError,
    RemoteNotFoundError,
    UnknownRemoteError,
    RecordNotFoundError,
    DataValidationError,
    ActiveLogConflictError,
    ExtractionError,
)

from .handlers import (
    ToastMessage,
    handle_error,
    safe_execute,
    error_boundary,
)

__all__ = [
    # Exceptions
    "ShopFloorError",
    "ConfigurationError",
    "ErrorKind",
    "RemoteStoreError",
    "PermissionDeniedError",
    "NetworkOfflineError",
    "RemoteNotFoundError",
    "UnknownRemoteError",
    "RecordNotFoundError",
    "DataValidationError",
    "ActiveLogConflictError",
    "ExtractionError",
    # Handlers
    "ToastMessage",
    "handle_error",
    "safe_execute",
    "error_boundary",
]
