# =============================================================================
# shopfloor_core/services/job_intake_service.py
# Job creation from scanned or pasted purchase orders
# =============================================================================
"""
Turns extracted purchase-order fields into a saved job.

Flow: extractor reply -> ``parse_extraction_payload`` -> ``build_job`` ->
``ShopDataService.save_job`` -> best-effort calendar event.
"""

from __future__ import annotations
import json
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional

from shopfloor_core.api import CalendarEventCreator, FieldExtractor
from shopfloor_core.data.models import Job, JobPriority, JobStatus, new_id
from shopfloor_core.errors import ExtractionError, error_boundary
from shopfloor_core.services.base_service import BaseService, ServiceResult
from shopfloor_core.utils.formatters import normalize_due_date, today_iso

_FENCE = re.compile(r"```(?:json)?", re.IGNORECASE)
_OBJECT = re.compile(r"\{.*\}", re.DOTALL)

_PRIORITIES = {
    "LOW": JobPriority.LOW,
    "NORMAL": JobPriority.NORMAL,
    "HIGH": JobPriority.HIGH,
    "URGENT": JobPriority.URGENT,
}


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


@dataclass
class ExtractedFields:
    """Purchase-order fields as read by the extractor; every field optional."""
    po_number: str = ""
    job_number: str = ""
    part_number: str = ""
    part_name: str = ""
    quantity: str = ""
    due_date: str = ""
    customer: str = ""
    notes: str = ""
    priority: str = ""
    confidence: str = "low"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> ExtractedFields:
        return cls(
            po_number=_text(data.get("poNumber")),
            job_number=_text(data.get("jobNumber")),
            part_number=_text(data.get("partNumber")),
            part_name=_text(data.get("partName")),
            quantity=_text(data.get("quantity")),
            due_date=_text(data.get("dueDate")),
            customer=_text(data.get("customer") or data.get("customerName")),
            notes=_text(data.get("notes")),
            priority=_text(data.get("priority")).upper(),
            confidence=_text(data.get("confidence")).lower() or "low",
        )


def parse_extraction_payload(raw: Optional[str]) -> ExtractedFields:
    """
    Parse an extractor reply into fields.

    Code fences and surrounding prose are ignored; a reply without a
    usable JSON object yields an empty record.
    """
    if not raw:
        return ExtractedFields()

    candidates = []
    match = _OBJECT.search(raw)
    if match:
        candidates.append(match.group(0))
    candidates.append(_FENCE.sub("", raw).strip())

    for candidate in candidates:
        try:
            data = json.loads(candidate)
        except ValueError:
            continue
        if isinstance(data, dict):
            return ExtractedFields.from_dict(data)
    return ExtractedFields()


def _parse_quantity(value: str) -> int:
    match = re.match(r"\s*(\d+)", value or "")
    return int(match.group(1)) if match else 0


class JobIntakeService(BaseService):
    """
    Builds and saves jobs from purchase orders.

    Usage:
        intake = JobIntakeService(get_data_service(), extractor, calendar)
        result = intake.scan_text(pasted_po)
        if result:
            job = result.data["job"]
    """

    def __init__(
        self,
        data_service,
        extractor: Optional[FieldExtractor] = None,
        calendar: Optional[CalendarEventCreator] = None,
    ):
        super().__init__(data_service)
        self.extractor = extractor
        self.calendar = calendar

    def build_job(self, fields: ExtractedFields) -> Job:
        """Map extracted fields to a new pending job."""
        info = " | ".join(
            part for part in (
                f"Part: {fields.part_name}" if fields.part_name else "",
                f"Job#: {fields.job_number}" if fields.job_number else "",
                fields.notes,
            )
            if part
        )
        return Job(
            id=new_id(),
            po_number=fields.po_number or fields.job_number or "N/A",
            part_number=fields.part_number,
            job_ids_display=fields.job_number,
            customer=fields.customer or None,
            priority=_PRIORITIES.get(fields.priority, JobPriority.NORMAL),
            quantity=_parse_quantity(fields.quantity),
            date_received=today_iso(),
            due_date=normalize_due_date(fields.due_date),
            info=info,
            status=JobStatus.PENDING,
        )

    def _add_to_calendar(self, job: Job) -> bool:
        if self.calendar is None:
            return False
        add = error_boundary(default_return=False)(self.calendar.create_event)
        return bool(add(job))

    def create_job(self, fields: ExtractedFields) -> ServiceResult:
        """
        Save a job built from ``fields``, then try to add it to the calendar.

        Returns:
            ServiceResult whose data is ``{"job": Job, "calendar_added": bool}``
        """
        job = self.build_job(fields)
        result = self.safe_execute(f"Creating job {job.po_number}", self.data_service.save_job, job)
        if not result:
            return result

        saved = result.data
        calendar_added = self._add_to_calendar(saved)
        if not calendar_added:
            self.logger.info(f"Job {saved.po_number} created without calendar event")
        return ServiceResult.ok(
            {"job": saved, "calendar_added": calendar_added},
            metadata={"confidence": fields.confidence},
        )

    def _scan(self, source: str, extract) -> ServiceResult:
        if self.extractor is None:
            return ServiceResult.fail("No field extractor configured", error_code="EXTRACT_001")
        try:
            raw = extract()
        except ExtractionError as e:
            self.logger.warning(f"{source} extraction failed: {e.message}")
            return ServiceResult.from_exception(e)
        return self.create_job(parse_extraction_payload(raw))

    def scan_text(self, text: str) -> ServiceResult:
        """Extract fields from pasted text and create the job."""
        return self._scan("Text", lambda: self.extractor.extract_from_text(text))

    def scan_image(self, image: bytes, mime_type: str = "image/jpeg") -> ServiceResult:
        """Extract fields from a purchase-order photo and create the job."""
        return self._scan("Image", lambda: self.extractor.extract_from_image(image, mime_type))
