"""Best-effort search: fastest lap windows per target distance, ranked and bounded."""
from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from packages import metrics
from services.analytics.models import ActivityHeader, BestEffort, Lap, SegmentMatch, TargetCatalog
from services.analytics.segments import find_best_segment, sample_segments
from services.analytics.store import ActivityStore

logger = logging.getLogger("runstats.analytics.best_efforts")

BEST_TIMES_COLUMNS = ("distance", "time", "pace", "activity_id", "start_time", "avg_hr", "rank")


def rank_efforts(
    candidates: List[Tuple[ActivityHeader, SegmentMatch]],
    distance: int,
    retention: int,
) -> List[BestEffort]:
    """Stable-sort by time and keep the first `retention` as ranks 1..k."""
    ordered = sorted(candidates, key=lambda item: item[1].time_s)
    out: List[BestEffort] = []
    for rank, (header, match) in enumerate(ordered[: max(retention, 0)], start=1):
        out.append(
            BestEffort(
                distance=distance,
                time_ms=int(round(match.time_s * 1000)),
                pace=match.pace,
                activity_id=header.activity_id,
                start_time=header.start_time,
                avg_hr=match.avg_hr,
                rank=rank,
            )
        )
    return out


def _load_activity(store: ActivityStore, activity_id: int) -> Tuple[Optional[ActivityHeader], List[Lap]]:
    header = store.get_activity_header(activity_id)
    if header is None:
        return None, []
    return header, store.get_laps(activity_id)


def find_best_efforts(store: ActivityStore, catalog: TargetCatalog) -> Tuple[List[BestEffort], int]:
    """Best efforts for every catalog distance plus the highest activity id seen.

    Activities are visited most recent first so that equal times keep the
    newer activity ahead. An activity that fails to load or match is logged,
    counted and skipped.
    """
    activity_ids = store.list_running_activity_ids()
    loaded: List[Tuple[ActivityHeader, List[Lap]]] = []
    for activity_id in activity_ids:
        try:
            header, laps = _load_activity(store, activity_id)
        except Exception as exc:
            logger.warning("Skipping activity %s: %s", activity_id, exc)
            metrics.inc("analytics_item_failures_total")
            continue
        if header is not None and laps:
            loaded.append((header, laps))

    efforts: List[BestEffort] = []
    for distance in sorted(catalog.distances):
        candidates = []
        for header, laps in loaded:
            try:
                match = find_best_segment(laps, distance, fallback_hr=header.avg_hr)
            except Exception as exc:
                logger.warning(
                    "Best effort search failed for activity %s at %sm: %s",
                    header.activity_id,
                    distance,
                    exc,
                )
                metrics.inc("analytics_item_failures_total")
                continue
            if match is not None:
                candidates.append((header, match))
        ranked = rank_efforts(candidates, distance, catalog.retention)
        logger.info("Ranked %s best efforts for %sm", len(ranked), distance)
        efforts.extend(ranked)

    max_id = max(activity_ids) if activity_ids else 0
    return efforts, max_id


def best_effort_rows(efforts: List[BestEffort]) -> List[tuple]:
    return [
        (e.distance, e.time_ms, e.pace, e.activity_id, e.start_time, e.avg_hr, e.rank)
        for e in efforts
    ]


def segment_time_distribution(store: ActivityStore, distance: int) -> List[float]:
    """Every accepted segment time (seconds) for one distance across all runs."""
    times: List[float] = []
    for activity_id in store.list_running_activity_ids():
        try:
            header, laps = _load_activity(store, activity_id)
        except Exception as exc:
            logger.warning("Skipping activity %s: %s", activity_id, exc)
            metrics.inc("analytics_item_failures_total")
            continue
        if header is None:
            continue
        times.extend(m.time_s for m in sample_segments(laps, distance))
    times.sort()
    return times

