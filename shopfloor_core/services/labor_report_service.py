"""
Labor reporting - time logged per job.

Summaries are built with pandas from the lists the data service feeds
deliver, so they work the same on either backend.
"""

from typing import Dict, Iterable, Optional
import pandas as pd

from shopfloor_core.data.models import Job, TimeLog
from shopfloor_core.utils.formatters import format_duration, now_millis

# =============================================================================
# WINDOWS
# =============================================================================

DAY_MS = 24 * 60 * 60 * 1000

WINDOW_DAYS: Dict[str, int] = {
    "week": 7,
    "month": 30,
    "year": 365,
}

SUMMARY_COLUMNS = [
    "job_id",
    "po_number",
    "customer",
    "part_number",
    "sessions",
    "total_minutes",
    "total_display",
    "last_start",
]


def logs_frame(logs: Iterable[TimeLog]) -> pd.DataFrame:
    """One row per log, stored field names."""
    return pd.DataFrame([log.to_dict() for log in logs])


def summarize_by_job(
    logs: Iterable[TimeLog],
    jobs: Iterable[Job],
    window: Optional[str] = None,
    now: Optional[int] = None,
    search: Optional[str] = None,
) -> pd.DataFrame:
    """
    Completed time logs grouped per job, newest activity first.

    Args:
        logs: Time logs (running logs are ignored)
        jobs: Jobs used to label each group; unknown jobs keep their id
        window: "week", "month" or "year" keeps groups whose latest session
            started within 7/30/365 days; None or "all" keeps everything
        now: Reference time in epoch millis (default: current time)
        search: Case-insensitive text matched against the job label fields

    Returns:
        DataFrame with SUMMARY_COLUMNS
    """
    df = logs_frame(logs)
    if df.empty or "endTime" not in df:
        return pd.DataFrame(columns=SUMMARY_COLUMNS)

    df = df[df["endTime"].notna()]
    if df.empty:
        return pd.DataFrame(columns=SUMMARY_COLUMNS)

    df = df.assign(durationMinutes=df["durationMinutes"].fillna(0))
    summary = (
        df.groupby("jobId", sort=False)
        .agg(
            sessions=("id", "count"),
            total_minutes=("durationMinutes", "sum"),
            last_start=("startTime", "max"),
        )
        .reset_index()
        .rename(columns={"jobId": "job_id"})
    )

    by_id = {job.id: job for job in jobs}
    summary["po_number"] = summary["job_id"].map(
        lambda job_id: by_id[job_id].po_number if job_id in by_id else job_id
    )
    summary["customer"] = summary["job_id"].map(
        lambda job_id: (by_id[job_id].customer or "") if job_id in by_id else ""
    )
    summary["part_number"] = summary["job_id"].map(
        lambda job_id: by_id[job_id].part_number if job_id in by_id else ""
    )

    if window and window != "all":
        if window not in WINDOW_DAYS:
            raise ValueError(f"Unknown window: {window!r}")
        reference = now if now is not None else now_millis()
        limit = WINDOW_DAYS[window] * DAY_MS
        summary = summary[reference - summary["last_start"] <= limit]

    if search:
        needle = search.lower()
        labels = (
            summary["po_number"].astype(str) + " "
            + summary["customer"].astype(str) + " "
            + summary["part_number"].astype(str)
        ).str.lower()
        summary = summary[labels.str.contains(needle, regex=False)]

    summary = summary.assign(
        total_minutes=summary["total_minutes"].astype(int),
        total_display=summary["total_minutes"].map(format_duration),
    )
    return (
        summary.sort_values("last_start", ascending=False)
        .reset_index(drop=True)[SUMMARY_COLUMNS]
    )


def total_hours(logs: Iterable[TimeLog]) -> float:
    """Hours recorded across all logs; running logs count as zero."""
    minutes = sum(log.duration_minutes or 0 for log in logs)
    return minutes / 60


__all__ = [
    "WINDOW_DAYS",
    "SUMMARY_COLUMNS",
    "logs_frame",
    "summarize_by_job",
    "total_hours",
    "format_duration",
]
