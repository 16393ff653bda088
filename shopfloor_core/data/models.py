# =============================================================================
# shopfloor_core/data/models.py
# Entity types: jobs, time logs, users and system settings
# =============================================================================
"""
Dataclasses for the four stored entities.

Documents are stored with camelCase keys (``poNumber``, ``startTime`` ...)
so both backends hold the same shape; ``to_dict`` / ``from_dict`` convert
between the stored document and the Python object.
"""

from __future__ import annotations
import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional

from shopfloor_core.errors import DataValidationError
from shopfloor_core.utils.formatters import round_half_up


class JobStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    HOLD = "hold"


class JobPriority(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


class UserRole(str, Enum):
    ADMIN = "admin"
    EMPLOYEE = "employee"


DEFAULT_OPERATIONS = ["Cutting", "Deburring", "Polishing", "Assembly", "QC", "Packing"]


def new_id() -> str:
    """Opaque unique identifier for a new document."""
    return uuid.uuid4().hex


def compute_duration_minutes(start_time: int, end_time: int) -> int:
    """Whole minutes between two epoch-millis stamps, never negative."""
    return max(0, round_half_up((end_time - start_time) / 60000))


def _enum_value(enum_cls, value, default):
    try:
        return enum_cls(value)
    except ValueError:
        return default


def _to_int(value, default: Optional[int] = None) -> Optional[int]:
    if value is None or value == "":
        return default
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return default


@dataclass
class Job:
    """A unit of production work, shown to users by its PO number."""
    id: str
    po_number: str = ""
    part_number: str = ""
    job_ids_display: str = ""
    customer: Optional[str] = None
    priority: JobPriority = JobPriority.NORMAL
    quantity: int = 0
    date_received: str = ""
    due_date: str = ""
    info: str = ""
    status: JobStatus = JobStatus.PENDING
    created_at: int = 0
    completed_at: Optional[int] = None
    expected_hours: Optional[float] = None

    def validate(self) -> None:
        if not self.id:
            raise DataValidationError("Job id is required", field="id")
        if self.quantity < 0:
            raise DataValidationError("Quantity cannot be negative", field="quantity")
        if (self.status == JobStatus.COMPLETED) != (self.completed_at is not None):
            raise DataValidationError(
                "completedAt must be set exactly when the job is completed",
                field="completedAt",
            )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "jobIdsDisplay": self.job_ids_display,
            "poNumber": self.po_number,
            "partNumber": self.part_number,
            "customer": self.customer,
            "priority": self.priority.value,
            "quantity": self.quantity,
            "dateReceived": self.date_received,
            "dueDate": self.due_date,
            "info": self.info,
            "status": self.status.value,
            "createdAt": self.created_at,
            "completedAt": self.completed_at,
            "expectedHours": self.expected_hours,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Job:
        return cls(
            id=str(data.get("id", "")),
            job_ids_display=data.get("jobIdsDisplay") or "",
            po_number=data.get("poNumber") or "",
            part_number=data.get("partNumber") or "",
            customer=data.get("customer"),
            priority=_enum_value(JobPriority, data.get("priority"), JobPriority.NORMAL),
            quantity=max(0, _to_int(data.get("quantity"), 0)),
            date_received=data.get("dateReceived") or "",
            due_date=data.get("dueDate") or "",
            info=data.get("info") or "",
            status=_enum_value(JobStatus, data.get("status"), JobStatus.PENDING),
            created_at=_to_int(data.get("createdAt"), 0),
            completed_at=_to_int(data.get("completedAt")),
            expected_hours=data.get("expectedHours"),
        )


@dataclass
class TimeLog:
    """
    One timed work session against a job.

    A log with ``end_time is None`` is active; ``duration_minutes`` is only
    set once the log is stopped.
    """
    id: str
    job_id: str
    user_id: str
    user_name: str
    operation: str
    start_time: int
    end_time: Optional[int] = None
    duration_minutes: Optional[int] = None
    machine_id: Optional[str] = None
    notes: Optional[str] = None
    session_qty: Optional[int] = None
    is_auto_closed: bool = False

    @property
    def is_active(self) -> bool:
        return self.end_time is None

    def closed_at(self, end_time: int, **changes) -> TimeLog:
        """Copy of this log stopped at ``end_time``."""
        return replace(
            self,
            end_time=end_time,
            duration_minutes=compute_duration_minutes(self.start_time, end_time),
            **changes,
        )

    def normalized(self) -> TimeLog:
        """Recompute the derived duration from the start/end stamps."""
        if self.end_time is None:
            return replace(self, duration_minutes=None)
        return replace(
            self,
            duration_minutes=compute_duration_minutes(self.start_time, self.end_time),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "jobId": self.job_id,
            "userId": self.user_id,
            "userName": self.user_name,
            "operation": self.operation,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "durationMinutes": self.duration_minutes,
            "machineId": self.machine_id,
            "notes": self.notes,
            "sessionQty": self.session_qty,
            "isAutoClosed": self.is_auto_closed,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> TimeLog:
        return cls(
            id=str(data.get("id", "")),
            job_id=str(data.get("jobId", "")),
            user_id=str(data.get("userId", "")),
            user_name=data.get("userName") or "",
            operation=data.get("operation") or "",
            start_time=_to_int(data.get("startTime"), 0),
            end_time=_to_int(data.get("endTime")),
            duration_minutes=_to_int(data.get("durationMinutes")),
            machine_id=data.get("machineId"),
            notes=data.get("notes"),
            session_qty=_to_int(data.get("sessionQty")),
            is_auto_closed=bool(data.get("isAutoClosed", False)),
        )


@dataclass
class User:
    """An operator or administrator. ``pin_hash`` is a bcrypt hash."""
    id: str
    name: str
    username: str
    pin_hash: str = ""
    role: UserRole = UserRole.EMPLOYEE
    is_active: bool = True

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def matches_username(self, username: str) -> bool:
        return self.username.lower() == (username or "").strip().lower()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "username": self.username,
            "pinHash": self.pin_hash,
            "role": self.role.value,
            "isActive": self.is_active,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> User:
        # Older documents carry the PIN itself under "pin"
        return cls(
            id=str(data.get("id", "")),
            name=data.get("name") or "",
            username=data.get("username") or "",
            pin_hash=data.get("pinHash") or str(data.get("pin") or ""),
            role=_enum_value(UserRole, data.get("role"), UserRole.EMPLOYEE),
            is_active=data.get("isActive") is not False,
        )


@dataclass
class SystemSettings:
    """Deployment-wide settings; a single instance."""
    lunch_start: str = "12:00"
    lunch_end: str = "12:30"
    lunch_deduction_minutes: int = 30
    auto_clock_out_time: str = "17:30"
    auto_clock_out_enabled: bool = False
    custom_operations: List[str] = field(default_factory=lambda: list(DEFAULT_OPERATIONS))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "lunchStart": self.lunch_start,
            "lunchEnd": self.lunch_end,
            "lunchDeductionMinutes": self.lunch_deduction_minutes,
            "autoClockOutTime": self.auto_clock_out_time,
            "autoClockOutEnabled": self.auto_clock_out_enabled,
            "customOperations": list(self.custom_operations),
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> SystemSettings:
        defaults = cls()
        if not data:
            return defaults
        return cls(
            lunch_start=data.get("lunchStart") or defaults.lunch_start,
            lunch_end=data.get("lunchEnd") or defaults.lunch_end,
            lunch_deduction_minutes=_to_int(
                data.get("lunchDeductionMinutes"), defaults.lunch_deduction_minutes
            ),
            auto_clock_out_time=data.get("autoClockOutTime") or defaults.auto_clock_out_time,
            auto_clock_out_enabled=bool(data.get("autoClockOutEnabled", False)),
            custom_operations=list(data.get("customOperations") or defaults.custom_operations),
        )
