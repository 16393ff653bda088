# =============================================================================
# shopfloor_core/utils/__init__.py
# =============================================================================

from .formatters import (
    now_millis,
    today_iso,
    round_half_up,
    normalize_due_date,
    format_duration,
    parse_scanned_job_id,
)

__all__ = [
    "now_millis",
    "today_iso",
    "round_half_up",
    "normalize_due_date",
    "format_duration",
    "parse_scanned_job_id",
]
