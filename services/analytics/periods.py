from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timezone
from functools import reduce
from typing import Dict, Iterable, List, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import packages.config as config
from packages import metrics
from services.analytics.models import PeriodStats
from services.analytics.store import ActivityStore

logger = logging.getLogger("runstats.analytics.periods")

YEARLY_COLUMNS = ("year", "total_distance", "total_time", "avg_pace", "avg_run_length", "run_count")
MONTHLY_COLUMNS = (
    "year",
    "month",
    "total_distance",
    "total_time",
    "avg_pace",
    "avg_run_length",
    "run_count",
)

Key = Tuple[int, Optional[int]]
Buckets = Dict[Key, PeriodStats]


def local_tz():
    if config.TIMEZONE.upper() == "UTC":
        return timezone.utc
    try:
        return ZoneInfo(config.TIMEZONE)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown timezone %s, falling back to UTC", config.TIMEZONE)
        return timezone.utc


def local_datetime(epoch_seconds: int) -> datetime:
    return datetime.fromtimestamp(epoch_seconds, tz=local_tz())


def _add(buckets: Buckets, key: Key, distance: float, time_s: float) -> Buckets:
    current = buckets.get(key) or PeriodStats(key[0], key[1], 0.0, 0.0, 0)
    updated = replace(
        current,
        total_distance=current.total_distance + distance,
        total_time=current.total_time + time_s,
        run_count=current.run_count + 1,
    )
    return {**buckets, key: updated}


def fold_contribution(
    acc: Tuple[Buckets, Buckets], contribution: Tuple[int, float, float]
) -> Tuple[Buckets, Buckets]:
    """Add one run (start time, lap distance, lap time) to its year and month buckets."""
    yearly, monthly = acc
    start_time, distance, time_s = contribution
    local = local_datetime(start_time)
    return (
        _add(yearly, (local.year, None), distance, time_s),
        _add(monthly, (local.year, local.month), distance, time_s),
    )


def run_contributions(store: ActivityStore) -> Iterable[Tuple[int, float, float]]:
    """Lap totals per qualifying run; runs without laps contribute nothing."""
    for activity_id in store.list_running_activity_ids():
        try:
            header = store.get_activity_header(activity_id)
            if header is None:
                continue
            laps = store.get_laps(activity_id)
        except Exception as exc:
            logger.warning("Skipping activity %s: %s", activity_id, exc)
            metrics.inc("analytics_item_failures_total")
            continue
        if not laps:
            continue
        yield (
            header.start_time,
            sum(lap.distance for lap in laps),
            sum(lap.time for lap in laps),
        )


def aggregate_periods(store: ActivityStore) -> Tuple[List[PeriodStats], List[PeriodStats]]:
    yearly, monthly = reduce(fold_contribution, run_contributions(store), ({}, {}))
    return (
        [yearly[k] for k in sorted(yearly)],
        [monthly[k] for k in sorted(monthly)],
    )


def yearly_rows(stats: List[PeriodStats]) -> List[tuple]:
    return [
        (s.year, s.total_distance, s.total_time, s.avg_pace, s.avg_run_length, s.run_count)
        for s in stats
    ]


def monthly_rows(stats: List[PeriodStats]) -> List[tuple]:
    return [
        (s.year, s.month, s.total_distance, s.total_time, s.avg_pace, s.avg_run_length, s.run_count)
        for s in stats
    ]
