from __future__ import annotations

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field


class ErrorDetail(BaseModel):
    code: str
    message: str
    request_id: Optional[str] = None
    details: Optional[Dict[str, Any]] = None


class ErrorResponse(BaseModel):
    error: ErrorDetail


class ComputationRun(BaseModel):
    id: Optional[int] = None
    computation_type: Optional[str] = None
    started_at: Optional[str] = None
    finished_at: Optional[str] = None
    status: Optional[str] = None
    rows_written: Optional[int] = None
    error: Optional[str] = None
    duration_sec: Optional[float] = None


class HealthResponse(BaseModel):
    status: str
    db: str
    last_run: Optional[ComputationRun] = None


class ComputationRunsResponse(BaseModel):
    runs: List[ComputationRun] = Field(default_factory=list)


class StalenessResponse(BaseModel):
    kinds: Dict[str, bool]


class ComputeResponse(BaseModel):
    kind: str
    stale: bool
    computed: bool
    rows_written: int = 0


class RefreshResponse(BaseModel):
    force: bool
    results: Dict[str, int] = Field(default_factory=dict)


class BestEffortEntry(BaseModel):
    distance: int
    time_ms: int
    pace: float
    activity_id: int
    start_time: Optional[int] = None
    avg_hr: Optional[int] = None
    rank: int


class BestEffortsResponse(BaseModel):
    efforts: List[BestEffortEntry] = Field(default_factory=list)


class BestEffortSummaryEntry(BaseModel):
    distance: int
    efforts: int
    avg_time_ms: Optional[float] = None
    best_time_ms: Optional[int] = None


class BestEffortSummaryResponse(BaseModel):
    distances: List[BestEffortSummaryEntry] = Field(default_factory=list)


class DistributionResponse(BaseModel):
    distance: int
    count: int
    fastest_s: Optional[float] = None
    times_s: List[float] = Field(default_factory=list)


class PeriodStatsEntry(BaseModel):
    year: int
    month: Optional[int] = None
    total_distance: float
    total_time: float
    avg_pace: Optional[float] = None
    avg_run_length: Optional[float] = None
    run_count: int


class PeriodStatsResponse(BaseModel):
    stats: List[PeriodStatsEntry] = Field(default_factory=list)


class HRZoneEntry(BaseModel):
    zone_number: int
    time_in_zone: int
    distance_in_zone: float
    avg_pace_in_zone: Optional[float] = None
    last_computed: Optional[int] = None


class HRZonesResponse(BaseModel):
    zones: List[HRZoneEntry] = Field(default_factory=list)


class ComparisonSideModel(BaseModel):
    avg_pace: Optional[float] = None
    total_km: Optional[float] = None
    avg_bpm: Optional[int] = None
    pb_count: int = 0
    avg_distance_per_run: Optional[float] = None
    top25_count: int = 0
    avg_bpm_target_pace: Optional[int] = None


class MonthlyComparisonResponse(BaseModel):
    current_month_year: Optional[str] = None
    current: Optional[ComparisonSideModel] = None
    other: Optional[ComparisonSideModel] = None
    last_computed: Optional[int] = None


class CumulativeEntry(BaseModel):
    date: str
    cumulative_km: float
    year: int


class CumulativeResponse(BaseModel):
    days: List[CumulativeEntry] = Field(default_factory=list)
    last_computed: Optional[int] = None
