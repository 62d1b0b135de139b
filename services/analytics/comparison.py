"""Current month versus every other month."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, List, Optional, Sequence, Tuple

import packages.config as config
from packages import metrics
from services.analytics.models import ActivityHeader, ComparisonSide, MonthlyComparison, PeriodStats
from services.analytics.periods import aggregate_periods, local_tz
from services.analytics.store import ActivityStore

logger = logging.getLogger("runstats.analytics.comparison")

SIDE_FIELDS = (
    "avg_pace",
    "total_km",
    "avg_bpm",
    "pb_count",
    "avg_distance_per_run",
    "top25_count",
    "avg_bpm_target_pace",
)
COMPARISON_COLUMNS = (
    ("current_month_year",)
    + tuple(f"current_{f}" for f in SIDE_FIELDS)
    + tuple(f"other_{f}" for f in SIDE_FIELDS)
    + ("last_computed",)
)


def month_window(now: datetime) -> Tuple[int, int]:
    """First and last second (epoch) of the calendar month containing `now`."""
    local = now.astimezone(local_tz())
    start = local.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    if start.month == 12:
        nxt = start.replace(year=start.year + 1, month=1)
    else:
        nxt = start.replace(month=start.month + 1)
    return int(start.timestamp()), int(nxt.timestamp()) - 1


def _mean(values: Iterable[Optional[float]]) -> Optional[float]:
    vals = [v for v in values if v is not None]
    if not vals:
        return None
    return sum(vals) / len(vals)


def _round_bpm(value: Optional[float]) -> Optional[int]:
    return int(round(value)) if value is not None else None


def current_month_volume(bucket: Optional[PeriodStats]) -> dict:
    if bucket is None:
        return {"avg_pace": None, "total_km": 0.0, "avg_distance_per_run": None}
    return {
        "avg_pace": bucket.avg_pace,
        "total_km": bucket.total_distance / 1000.0,
        "avg_distance_per_run": bucket.avg_run_length,
    }


def other_months_volume(buckets: Sequence[PeriodStats]) -> dict:
    """Average of the per-month values; missing values are skipped."""
    total = _mean(b.total_distance for b in buckets)
    return {
        "avg_pace": _mean(b.avg_pace for b in buckets),
        "total_km": total / 1000.0 if total is not None else None,
        "avg_distance_per_run": _mean(b.avg_run_length for b in buckets),
    }


def average_sample_hr(store: ActivityStore, headers: Sequence[ActivityHeader]) -> Optional[int]:
    total = 0
    count = 0
    for header in headers:
        try:
            samples = store.get_heart_rate_samples(header.activity_id)
        except Exception as exc:
            logger.warning("Skipping samples of activity %s: %s", header.activity_id, exc)
            metrics.inc("analytics_item_failures_total")
            continue
        for sample in samples:
            if sample.hr and sample.hr > 0:
                total += sample.hr
                count += 1
    return _round_bpm(total / count) if count else None


def average_hr_at_target_pace(store: ActivityStore, headers: Sequence[ActivityHeader]) -> Optional[int]:
    values: List[int] = []
    for header in headers:
        try:
            laps = store.get_laps(header.activity_id)
        except Exception as exc:
            logger.warning("Skipping laps of activity %s: %s", header.activity_id, exc)
            metrics.inc("analytics_item_failures_total")
            continue
        for lap in laps:
            if lap.distance <= 0 or lap.time <= 0 or not lap.has_hr:
                continue
            pace = lap.time / (lap.distance / 1000.0)
            if config.TARGET_PACE_MIN_SEC <= pace <= config.TARGET_PACE_MAX_SEC:
                values.append(lap.avg_hr)
    return _round_bpm(_mean(values))


def _partition(store: ActivityStore, start: int, end: int) -> Tuple[List[ActivityHeader], List[ActivityHeader]]:
    current = store.running_activities_between(start, end)
    current_ids = {h.activity_id for h in current}
    other: List[ActivityHeader] = []
    for activity_id in store.list_running_activity_ids():
        if activity_id in current_ids:
            continue
        try:
            header = store.get_activity_header(activity_id)
        except Exception as exc:
            logger.warning("Skipping activity %s: %s", activity_id, exc)
            metrics.inc("analytics_item_failures_total")
            continue
        if header is not None:
            other.append(header)
    return current, other


def compare_months(store: ActivityStore, now: datetime) -> MonthlyComparison:
    start, end = month_window(now)
    local = now.astimezone(local_tz())
    key = (local.year, local.month)

    _, monthly = aggregate_periods(store)
    current_bucket = next((b for b in monthly if (b.year, b.month) == key), None)
    other_buckets = [b for b in monthly if (b.year, b.month) != key]

    current_headers, other_headers = _partition(store, start, end)
    cutoff = config.TOP_RANK_CUTOFF

    current = ComparisonSide(
        avg_bpm=average_sample_hr(store, current_headers),
        pb_count=store.pb_count_between(start, end),
        top25_count=store.top_rank_activity_count_between(start, end, cutoff),
        avg_bpm_target_pace=average_hr_at_target_pace(store, current_headers),
        **current_month_volume(current_bucket),
    )
    other = ComparisonSide(
        avg_bpm=average_sample_hr(store, other_headers),
        pb_count=store.pb_count_between(start, end, outside=True),
        top25_count=store.top_rank_activity_count_between(start, end, cutoff, outside=True),
        avg_bpm_target_pace=average_hr_at_target_pace(store, other_headers),
        **other_months_volume(other_buckets),
    )
    logger.info(
        "Compared %s: %s runs this month, %s in other months",
        f"{key[0]:04d}-{key[1]:02d}",
        len(current_headers),
        len(other_headers),
    )
    return MonthlyComparison(f"{key[0]:04d}-{key[1]:02d}", current, other)


def comparison_row(result: MonthlyComparison, computed_at_ms: int) -> tuple:
    current = tuple(getattr(result.current, f) for f in SIDE_FIELDS)
    other = tuple(getattr(result.other, f) for f in SIDE_FIELDS)
    return (result.current_month_year,) + current + other + (computed_at_ms,)
