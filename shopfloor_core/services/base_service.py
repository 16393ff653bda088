# =============================================================================
# shopfloor_core/services/base_service.py
# Base Service Class with Common Functionality
# =============================================================================

from __future__ import annotations
from abc import ABC
from typing import Optional, Dict, Any, Callable
from dataclasses import dataclass

from shopfloor_core.logging import get_logger, LogContext
from shopfloor_core.errors import (
    RemoteStoreError,
    ShopFloorError,
    ToastMessage,
    handle_error,
)


@dataclass
class ServiceResult:
    """
    Outcome of a service call.

    Failed results carry the short message the view layer shows as a toast;
    ``offline`` marks failures caused by the remote store.
    """
    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
    offline: bool = False

    def __bool__(self) -> bool:
        return self.success

    @classmethod
    def ok(cls, data: Any = None, metadata: Dict[str, Any] = None) -> ServiceResult:
        return cls(success=True, data=data, metadata=metadata)

    @classmethod
    def fail(
        cls,
        error: str,
        error_code: str = "UNKNOWN",
        metadata: Dict[str, Any] = None
    ) -> ServiceResult:
        return cls(success=False, error=error, error_code=error_code, metadata=metadata)

    @classmethod
    def from_exception(cls, e: Exception) -> ServiceResult:
        """Failed result with the same message ``handle_error`` would show."""
        if isinstance(e, ShopFloorError):
            return cls(
                success=False,
                error=e.message,
                error_code=e.code,
                metadata=e.details,
                offline=isinstance(e, RemoteStoreError),
            )
        return cls(success=False, error=str(e) or e.__class__.__name__, error_code="EXCEPTION")

    def to_toast(self, success_message: str = "Saved") -> ToastMessage:
        if self.success:
            return ToastMessage.success(success_message)
        return ToastMessage.error(self.error or "Something went wrong")


class BaseService(ABC):
    """
    Base class for flows built on the persistence facade.

    Facade errors become failed ``ServiceResult``s here, so view code
    never needs a try block around a service call.

    Usage:
        class IntakeService(BaseService):
            def create(self, job) -> ServiceResult:
                return self.safe_execute("Creating job", self.data_service.save_job, job)
    """

    def __init__(self, data_service=None):
        self.data_service = data_service
        self.logger = get_logger(self.__class__.__name__)

    def log_operation(self, operation: str) -> LogContext:
        return LogContext(self.logger, operation)

    def safe_execute(
        self,
        operation: str,
        func: Callable[..., Any],
        *args,
        **kwargs
    ) -> ServiceResult:
        """
        Run ``func`` and wrap its return value or failure.

        Unexpected exceptions are logged with their traceback; classified
        ones go through ``handle_error``.
        """
        with self.log_operation(operation):
            try:
                return ServiceResult.ok(func(*args, **kwargs))
            except ShopFloorError as e:
                handle_error(e)
                return ServiceResult.from_exception(e)
            except Exception as e:
                self.logger.error(f"{operation} failed: {e}", exc_info=True)
                return ServiceResult.from_exception(e)
