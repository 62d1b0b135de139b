from __future__ import annotations

from typing import Iterator, Optional, Sequence

import packages.config as config
from services.analytics.models import Lap, SegmentMatch


def expected_lap_count(target_distance_m: int, min_laps: Optional[int] = None) -> int:
    if min_laps is not None:
        return max(1, int(min_laps))
    return max(1, int(target_distance_m) // 1000)


def within_tolerance(distance_m: float, target_distance_m: float) -> bool:
    tol = target_distance_m * config.DISTANCE_TOLERANCE
    return (target_distance_m - tol) <= distance_m <= (target_distance_m + tol)


def pace_in_band(time_s: float, distance_m: float) -> bool:
    if distance_m <= 0 or time_s <= 0:
        return False
    pace = time_s / (distance_m / 1000.0)
    return config.MIN_PACE_SEC_PER_KM <= pace <= config.MAX_PACE_SEC_PER_KM


def window_avg_hr(laps: Sequence[Lap], fallback_hr: Optional[int] = None) -> Optional[int]:
    values = [lap.avg_hr for lap in laps if lap.has_hr]
    if values:
        return int(round(sum(values) / len(values)))
    if fallback_hr and fallback_hr > 0:
        return int(fallback_hr)
    return None


def sample_segments(
    laps: Sequence[Lap],
    target_distance_m: int,
    min_laps: Optional[int] = None,
    fallback_hr: Optional[int] = None,
) -> Iterator[SegmentMatch]:
    """Yield every lap or consecutive lap window that covers the target distance.

    A candidate is accepted when its summed distance is within the configured
    tolerance of the target and its pace falls inside the plausible band.
    """
    count = expected_lap_count(target_distance_m, min_laps)
    if not laps or len(laps) < count:
        return
    for start in range(len(laps) - count + 1):
        window = laps[start : start + count]
        time_s = sum(lap.time for lap in window)
        distance_m = sum(lap.distance for lap in window)
        if distance_m <= 0:
            continue
        if not within_tolerance(distance_m, target_distance_m):
            continue
        if not pace_in_band(time_s, distance_m):
            continue
        yield SegmentMatch(
            time_s=time_s,
            distance_m=distance_m,
            avg_hr=window_avg_hr(window, fallback_hr),
            lap_count=count,
            first_lap=window[0].lap_index,
        )


def find_best_segment(
    laps: Sequence[Lap],
    target_distance_m: int,
    min_laps: Optional[int] = None,
    fallback_hr: Optional[int] = None,
) -> Optional[SegmentMatch]:
    """Fastest accepted segment for the target distance, or None."""
    best: Optional[SegmentMatch] = None
    for match in sample_segments(laps, target_distance_m, min_laps, fallback_hr):
        if best is None or match.time_s < best.time_s:
            best = match
    return best

