# =============================================================================
# shopfloor_core/errors/exceptions.py
# Custom Exception Hierarchy for the Shop-Floor Tracker
# =============================================================================

from enum import Enum
from typing import Optional, Dict, Any


class ShopFloorError(Exception):
    """
    Base exception for all shop-floor tracker errors.

    Attributes:
        message: Human-readable error description
        code: Machine-readable error code (e.g., "DATA_001")
        details: Additional context as a dictionary
        recoverable: Whether the error can be recovered from
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        recoverable: bool = True,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or "SF_000"
        self.details = details or {}
        self.recoverable = recoverable

    def __str__(self) -> str:
        base = f"[{self.code}] {self.message}"
        if self.details:
            base += f" | Details: {self.details}"
        return base

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization"""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "details": self.details,
            "recoverable": self.recoverable,
        }


# =============================================================================
# CONFIGURATION EXCEPTIONS
# =============================================================================

class ConfigurationError(ShopFloorError):
    """Raised when remote credentials or settings are invalid"""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if config_key:
            details["config_key"] = config_key

        super().__init__(
            message=message,
            code="CONFIG_001",
            details=details,
            recoverable=False,
            **kwargs,
        )


# =============================================================================
# REMOTE STORE EXCEPTIONS
# =============================================================================

class ErrorKind(Enum):
    """Classification of remote store failures."""
    PERMISSION_DENIED = "permission-denied"
    NETWORK_OFFLINE = "network-offline"
    NOT_FOUND = "resource-not-found"
    UNKNOWN = "unknown"


class RemoteStoreError(ShopFloorError):
    """
    A classified failure of the remote document store.

    ``message`` is the short user-facing text; the original exception is
    kept on ``cause`` (and as ``__cause__`` when raised with ``from``).
    """

    kind = ErrorKind.UNKNOWN
    default_message = "Unknown Error"
    error_code = "REMOTE_000"

    def __init__(
        self,
        message: Optional[str] = None,
        cause: Optional[BaseException] = None,
        operation: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        details["kind"] = self.kind.value
        if operation:
            details["operation"] = operation
        if cause is not None:
            details["cause"] = repr(cause)

        super().__init__(
            message=message or self.default_message,
            code=self.error_code,
            details=details,
            **kwargs,
        )
        self.cause = cause


class PermissionDeniedError(RemoteStoreError):
    """Remote read or write rejected by access policies"""
    kind = ErrorKind.PERMISSION_DENIED
    default_message = "Permission Denied: Check database access policies."
    error_code = "REMOTE_403"


class NetworkOfflineError(RemoteStoreError):
    """Remote store unreachable"""
    kind = ErrorKind.NETWORK_OFFLINE
    default_message = "Network Offline"
    error_code = "REMOTE_503"


class RemoteNotFoundError(RemoteStoreError):
    """Remote project or collection does not exist"""
    kind = ErrorKind.NOT_FOUND
    default_message = "Database Not Found (Check Project URL)"
    error_code = "REMOTE_404"


class UnknownRemoteError(RemoteStoreError):
    """Any other remote failure"""
    kind = ErrorKind.UNKNOWN


# =============================================================================
# DATA LAYER EXCEPTIONS
# =============================================================================

class RecordNotFoundError(ShopFloorError):
    """Raised when an operation references an entity that does not exist"""

    def __init__(
        self,
        message: str,
        collection: Optional[str] = None,
        record_id: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if collection:
            details["collection"] = collection
        if record_id:
            details["record_id"] = record_id

        super().__init__(
            message=message,
            code="DATA_404",
            details=details,
            **kwargs,
        )


class DataValidationError(ShopFloorError):
    """Raised when caller-supplied data breaks an entity invariant"""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        code = kwargs.pop("code", "DATA_001")
        if field:
            details["field"] = field

        super().__init__(
            message=message,
            code=code,
            details=details,
            **kwargs,
        )


class ActiveLogConflictError(DataValidationError):
    """Raised when a user already has a running time log"""

    def __init__(self, user_id: str, active_log_id: str):
        super().__init__(
            message="This user already has an active timer. Stop it first.",
            code="DATA_409",
            details={"user_id": user_id, "active_log_id": active_log_id},
        )


# =============================================================================
# EXTRACTION EXCEPTIONS
# =============================================================================

class ExtractionError(ShopFloorError):
    """Raised when the structured field extractor fails"""

    def __init__(
        self,
        message: str,
        source: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if source:
            details["source"] = source

        super().__init__(
            message=message,
            code="EXTRACT_001",
            details=details,
            **kwargs,
        )
