"""Typed records flowing through the analytics engine."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

import packages.config as config

SPORT_RUNNING = 0

# Computation kinds (also the computation_tracking keys)
BEST_EFFORTS = "best_times"
PERIOD_STATS = "statistics"
HR_ZONES = "hr_zones"
MONTHLY_COMPARISON = "monthly_comparison"
CUMULATIVE = "yearly_cumulative"

# Refresh order: the comparison reads the materialized best efforts.
ALL_KINDS = (BEST_EFFORTS, PERIOD_STATS, HR_ZONES, MONTHLY_COMPARISON, CUMULATIVE)


@dataclass(frozen=True)
class ActivityHeader:
    activity_id: int
    start_time: int
    distance: float
    time: float
    avg_hr: Optional[int]


@dataclass(frozen=True)
class Lap:
    lap_index: int
    time: float
    distance: float
    avg_hr: Optional[int]

    @property
    def has_hr(self) -> bool:
        return bool(self.avg_hr) and self.avg_hr > 0


@dataclass(frozen=True)
class HeartRateSample:
    time: int
    hr: Optional[int]
    elapsed: Optional[float]
    distance: Optional[float]


@dataclass(frozen=True)
class SegmentMatch:
    time_s: float
    distance_m: float
    avg_hr: Optional[int]
    lap_count: int
    first_lap: int

    @property
    def pace(self) -> float:
        return self.time_s / (self.distance_m / 1000.0)


@dataclass(frozen=True)
class TargetCatalog:
    distances: Tuple[int, ...]
    retention: int

    @classmethod
    def from_config(cls) -> "TargetCatalog":
        return cls(tuple(config.TARGET_DISTANCES), config.BEST_EFFORT_RETENTION)

    @property
    def signature(self) -> str:
        return ",".join(str(d) for d in sorted(self.distances)) + f"|top{self.retention}"


@dataclass(frozen=True)
class BestEffort:
    distance: int
    time_ms: int
    pace: float
    activity_id: int
    start_time: int
    avg_hr: Optional[int]
    rank: int


@dataclass(frozen=True)
class PeriodStats:
    year: int
    month: Optional[int]
    total_distance: float
    total_time: float
    run_count: int

    @property
    def avg_pace(self) -> Optional[float]:
        if self.total_distance <= 0:
            return None
        return self.total_time / (self.total_distance / 1000.0)

    @property
    def avg_run_length(self) -> Optional[float]:
        if self.total_distance <= 0 or self.run_count <= 0:
            return None
        return self.total_distance / self.run_count


@dataclass(frozen=True)
class HRZoneStat:
    zone: int
    time_ms: int
    distance_m: float

    @property
    def avg_pace(self) -> Optional[float]:
        # ms per meter is numerically seconds per km
        if self.distance_m <= 0 or self.time_ms <= 0:
            return None
        return self.time_ms / self.distance_m


@dataclass(frozen=True)
class ComparisonSide:
    avg_pace: Optional[float] = None
    total_km: Optional[float] = None
    avg_bpm: Optional[int] = None
    pb_count: int = 0
    avg_distance_per_run: Optional[float] = None
    top25_count: int = 0
    avg_bpm_target_pace: Optional[int] = None


@dataclass(frozen=True)
class MonthlyComparison:
    current_month_year: str
    current: ComparisonSide
    other: ComparisonSide


@dataclass(frozen=True)
class CumulativeDay:
    date: str
    cumulative_km: float
    year: int
