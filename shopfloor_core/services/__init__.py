# =============================================================================
# shopfloor_core/services/__init__.py
# Service Layer for the Shop-Floor Tracker
# =============================================================================
"""
Service Layer for the Shop-Floor Tracker

Business flows built on top of the persistence facade.

Usage Example:
-------------
    from shopfloor_core.offline import get_data_service
    from shopfloor_core.services import JobIntakeService, summarize_by_job

    service = get_data_service()

    # Purchase order -> job
    intake = JobIntakeService(service, extractor=my_extractor)
    result = intake.scan_text(pasted_text)
    if result.success:
        print(result.data["job"].po_number)

    # Labor per job over the last week
    report = summarize_by_job(logs, jobs, window="week")
"""

from .base_service import BaseService, ServiceResult
from .job_intake_service import (
    ExtractedFields,
    JobIntakeService,
    parse_extraction_payload,
)
from .labor_report_service import (
    WINDOW_DAYS,
    summarize_by_job,
    total_hours,
)

__all__ = [
    # Base classes
    "BaseService",
    "ServiceResult",
    # Job intake
    "ExtractedFields",
    "JobIntakeService",
    "parse_extraction_payload",
    # Labor reporting
    "WINDOW_DAYS",
    "summarize_by_job",
    "total_hours",
]
