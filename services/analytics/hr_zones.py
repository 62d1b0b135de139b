from __future__ import annotations

import logging
from functools import reduce
from typing import Iterator, List, Tuple

import packages.config as config
from packages import metrics
from services.analytics.models import HRZoneStat, Lap
from services.analytics.store import ActivityStore

logger = logging.getLogger("runstats.analytics.hr_zones")

ZONE_COUNT = 6
HR_ZONE_COLUMNS = ("zone_number", "time_in_zone", "distance_in_zone", "avg_pace_in_zone", "last_computed")
ZoneTotals = Tuple[Tuple[float, float], ...]
EMPTY_ZONES: ZoneTotals = tuple((0.0, 0.0) for _ in range(ZONE_COUNT))


def zone_bounds(hr_max: float | None = None, pcts: Tuple[float, ...] | None = None) -> Tuple[int, ...]:
    """Integer lower bounds of zones 1..5 as truncated fractions of max HR."""
    hr_max = config.HR_MAX if hr_max is None else hr_max
    pcts = config.HR_ZONE_PCTS if pcts is None else pcts
    return tuple(int(hr_max * pct) for pct in pcts)


def classify(hr: float, bounds: Tuple[int, ...]) -> int:
    for zone, lower in enumerate(bounds):
        if hr < lower:
            return zone
    return len(bounds)


def merge_zones(left: ZoneTotals, right: ZoneTotals) -> ZoneTotals:
    return tuple((lt + rt, ld + rd) for (lt, ld), (rt, rd) in zip(left, right))


def activity_zones(laps: List[Lap], bounds: Tuple[int, ...]) -> ZoneTotals:
    """Time (ms) and distance per zone for one activity's HR-bearing laps."""
    totals = EMPTY_ZONES
    for lap in laps:
        if not lap.has_hr:
            continue
        zone = classify(lap.avg_hr, bounds)
        single = tuple((lap.time * 1000.0, lap.distance) if z == zone else (0.0, 0.0) for z in range(ZONE_COUNT))
        totals = merge_zones(totals, single)
    return totals


def zone_contributions(store: ActivityStore, bounds: Tuple[int, ...]) -> Iterator[ZoneTotals]:
    for activity_id in store.list_running_activity_ids():
        try:
            contribution = activity_zones(store.get_laps(activity_id), bounds)
        except Exception as exc:
            logger.warning("Skipping activity %s: %s", activity_id, exc)
            metrics.inc("analytics_item_failures_total")
            continue
        yield contribution


def compute_zone_distribution(store: ActivityStore) -> List[HRZoneStat]:
    totals = reduce(merge_zones, zone_contributions(store, zone_bounds()), EMPTY_ZONES)
    return [
        HRZoneStat(zone=zone, time_ms=int(round(time_ms)), distance_m=distance)
        for zone, (time_ms, distance) in enumerate(totals)
    ]


def zone_rows(stats: List[HRZoneStat], computed_at_ms: int) -> List[tuple]:
    return [(s.zone, s.time_ms, s.distance_m, s.avg_pace, computed_at_ms) for s in stats]
