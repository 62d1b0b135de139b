from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date, datetime, timedelta
from typing import Dict, List

from services.analytics.models import CumulativeDay
from services.analytics.periods import local_datetime, local_tz
from services.analytics.store import ActivityStore

logger = logging.getLogger("runstats.analytics.cumulative")

CUMULATIVE_COLUMNS = ("date", "cumulative_km", "year", "last_computed")


def daily_distances(store: ActivityStore, year: int) -> Dict[date, float]:
    """Header distance (m) per local start date for the given year."""
    start = datetime(year, 1, 1, tzinfo=local_tz())
    end = datetime(year + 1, 1, 1, tzinfo=local_tz())
    totals: Dict[date, float] = defaultdict(float)
    headers = store.running_activities_between(int(start.timestamp()), int(end.timestamp()) - 1)
    for header in headers:
        day = local_datetime(header.start_time).date()
        if day.year != year:
            continue
        totals[day] += header.distance
    return totals


def year_series(year: int, totals: Dict[date, float]) -> List[CumulativeDay]:
    """Dense Jan 1 - Dec 31 running sum in km."""
    out: List[CumulativeDay] = []
    running_m = 0.0
    day = date(year, 1, 1)
    while day.year == year:
        running_m += totals.get(day, 0.0)
        out.append(CumulativeDay(day.isoformat(), running_m / 1000.0, year))
        day += timedelta(days=1)
    return out


def cumulative_series(store: ActivityStore, now: datetime) -> List[CumulativeDay]:
    current_year = now.astimezone(local_tz()).year
    series: List[CumulativeDay] = []
    for year in (current_year - 1, current_year):
        days = year_series(year, daily_distances(store, year))
        logger.info("Cumulative %s: %.1f km", year, days[-1].cumulative_km)
        series.extend(days)
    return series


def cumulative_rows(series: List[CumulativeDay], computed_at_ms: int) -> List[tuple]:
    return [(d.date, d.cumulative_km, d.year, computed_at_ms) for d in series]
