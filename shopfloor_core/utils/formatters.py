# =============================================================================
# shopfloor_core/utils/formatters.py
# Small formatting and parsing helpers shared across the app
# =============================================================================

from __future__ import annotations
import math
import re
import time
from datetime import date
from typing import Optional
from urllib.parse import parse_qs, urlparse

import pandas as pd


_MDY4 = re.compile(r"^(\d{1,2})[/\-](\d{1,2})[/\-](\d{4})$")
_MDY2 = re.compile(r"^(\d{1,2})[/\-](\d{1,2})[/\-](\d{2})$")
_ISO = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
_JOB_ID_PARAM = re.compile(r"[?&]jobId=([^&#]+)")


def now_millis() -> int:
    """Current time as epoch milliseconds."""
    return int(time.time() * 1000)


def today_iso() -> str:
    """Today's calendar date as YYYY-MM-DD."""
    return date.today().isoformat()


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positives (1.5 -> 2), like JS Math.round."""
    return int(math.floor(value + 0.5))


def _safe_date(year: int, month: int, day: int) -> str:
    try:
        return date(year, month, day).isoformat()
    except ValueError:
        return ""


def normalize_due_date(value: Optional[str]) -> str:
    """
    Normalize a due date to ISO YYYY-MM-DD.

    Accepts MM/DD/YYYY, MM/DD/YY (years above 50 are 19xx), ISO dates and
    anything pandas can parse. Returns "" when the value is empty or
    unparseable.
    """
    if not value:
        return ""
    cleaned = str(value).strip()
    if not cleaned:
        return ""

    match = _ISO.match(cleaned)
    if match:
        y, m, d = (int(part) for part in match.groups())
        return _safe_date(y, m, d)

    match = _MDY4.match(cleaned)
    if match:
        m, d, y = (int(part) for part in match.groups())
        return _safe_date(y, m, d)

    match = _MDY2.match(cleaned)
    if match:
        m, d, yy = (int(part) for part in match.groups())
        year = 1900 + yy if yy > 50 else 2000 + yy
        return _safe_date(year, m, d)

    parsed = pd.to_datetime(cleaned, errors="coerce")
    if pd.isna(parsed):
        return ""
    return parsed.date().isoformat()


def format_duration(minutes: Optional[float]) -> str:
    """Render minutes as "1h 5m" / "45m"; missing or negative is "0m"."""
    if minutes is None or minutes < 0:
        return "0m"
    hours = int(minutes // 60)
    mins = round_half_up(minutes % 60)
    if hours > 0:
        return f"{hours}h {mins}m"
    return f"{mins}m"


def parse_scanned_job_id(value: str) -> str:
    """
    Extract a job id from a scanner read.

    Traveler QR codes encode a URL with a ``jobId`` query parameter; a
    plain read is returned trimmed.
    """
    cleaned = (value or "").strip()
    if not cleaned:
        return ""

    parsed = urlparse(cleaned)
    if parsed.query:
        job_ids = parse_qs(parsed.query).get("jobId")
        if job_ids:
            return job_ids[0]

    match = _JOB_ID_PARAM.search(cleaned)
    if match:
        return match.group(1)
    return cleaned
