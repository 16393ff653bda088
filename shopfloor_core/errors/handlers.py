# =============================================================================
# shopfloor_core/errors/handlers.py
# Error Handling Utilities for the Shop-Floor Tracker
# =============================================================================

from __future__ import annotations
import functools
import uuid
from dataclasses import dataclass, field
from typing import Optional, Callable, TypeVar, Any

from shopfloor_core.logging import get_logger
from .exceptions import ShopFloorError, RemoteStoreError

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class ToastMessage:
    """Short message for the view layer's toast area."""
    type: str  # success | error | info
    message: str
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    @classmethod
    def success(cls, message: str) -> ToastMessage:
        return cls(type="success", message=message)

    @classmethod
    def error(cls, message: str) -> ToastMessage:
        return cls(type="error", message=message)

    @classmethod
    def info(cls, message: str) -> ToastMessage:
        return cls(type="info", message=message)


def handle_error(
    error: Exception,
    log_error: bool = True,
    user_message: Optional[str] = None,
) -> ToastMessage:
    """
    Centralized error handling function.

    Maps any facade failure to a short toast message and logs it.

    Args:
        error: The exception to handle
        log_error: Whether to log the error
        user_message: Custom message to show the user (uses error message if None)

    Returns:
        ToastMessage of type "error"
    """
    if isinstance(error, ShopFloorError):
        message = user_message or error.message
        code = error.code
        details = error.details
        recoverable = error.recoverable
    else:
        message = user_message or str(error) or error.__class__.__name__
        code = "UNKNOWN"
        details = {}
        recoverable = True

    if log_error:
        # Remote failures are expected operating conditions, not bugs
        if isinstance(error, RemoteStoreError):
            logger.warning(f"[{code}] {message}", extra={"details": details})
        else:
            logger.error(
                f"[{code}] {message}",
                extra={"details": details},
                exc_info=error,
            )

    if not recoverable:
        message = f"{message}. Please contact your administrator."

    return ToastMessage.error(message)


def safe_execute(
    func: Callable[..., T],
    *args,
    default: Optional[T] = None,
    error_message: Optional[str] = None,
    reraise: bool = False,
    **kwargs,
) -> Optional[T]:
    """
    Execute a function with automatic error handling.

    Usage:
        job = safe_execute(
            service.get_job_by_id,
            job_id,
            default=None,
            error_message="Could not load job",
        )
    """
    try:
        return func(*args, **kwargs)
    except Exception as e:
        handle_error(e, user_message=error_message)
        if reraise:
            raise
        return default


def error_boundary(
    default_return: Any = None,
    log: bool = True,
):
    """
    Decorator for best-effort calls whose failure must never propagate.

    Usage:
        @error_boundary(default_return=False)
        def add_calendar_event(job) -> bool:
            ...
    """
    def decorator(func: Callable[..., T]) -> Callable[..., Optional[T]]:
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> Optional[T]:
            try:
                return func(*args, **kwargs)
            except Exception as e:
                if log:
                    logger.warning(f"Error in {func.__name__}: {e}")
                return default_return

        return wrapper

    return decorator
