from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Depends, Query

from services.analytics.comparison import SIDE_FIELDS
from services.analytics.engine import AnalyticsEngine
from ..deps import get_engine
from ..schemas import (
    BestEffortSummaryResponse,
    BestEffortsResponse,
    CumulativeResponse,
    DistributionResponse,
    HRZonesResponse,
    MonthlyComparisonResponse,
    PeriodStatsResponse,
)


router = APIRouter()


@router.get("/best-efforts", response_model=BestEffortsResponse)
def best_efforts(distance: Optional[int] = Query(None, gt=0), engine: AnalyticsEngine = Depends(get_engine)):
    return {"efforts": [asdict(e) for e in engine.best_efforts(distance)]}


@router.get("/best-efforts/summary", response_model=BestEffortSummaryResponse)
def best_effort_summary(engine: AnalyticsEngine = Depends(get_engine)):
    return {"distances": engine.best_effort_summary()}


@router.get("/best-efforts/{distance}/distribution", response_model=DistributionResponse)
def distribution(distance: int, engine: AnalyticsEngine = Depends(get_engine)):
    times = engine.segment_time_distribution(distance)
    return {
        "distance": distance,
        "count": len(times),
        "fastest_s": times[0] if times else None,
        "times_s": times,
    }


@router.get("/stats/yearly", response_model=PeriodStatsResponse)
def yearly_stats(year: Optional[int] = Query(None), engine: AnalyticsEngine = Depends(get_engine)):
    return {"stats": engine.yearly_stats(year)}


@router.get("/stats/monthly", response_model=PeriodStatsResponse)
def monthly_stats(
    year: Optional[int] = Query(None),
    month: Optional[int] = Query(None, ge=1, le=12),
    engine: AnalyticsEngine = Depends(get_engine),
):
    return {"stats": engine.monthly_stats(year, month)}


@router.get("/hr-zones", response_model=HRZonesResponse)
def hr_zones(zone: Optional[int] = Query(None, ge=0, le=5), engine: AnalyticsEngine = Depends(get_engine)):
    return {"zones": engine.zone_stats(zone)}


@router.get("/comparison/monthly", response_model=MonthlyComparisonResponse)
def monthly_comparison(engine: AnalyticsEngine = Depends(get_engine)):
    row = engine.monthly_comparison()
    if not row:
        return {}
    return {
        "current_month_year": row["current_month_year"],
        "current": {f: row[f"current_{f}"] for f in SIDE_FIELDS},
        "other": {f: row[f"other_{f}"] for f in SIDE_FIELDS},
        "last_computed": row["last_computed"],
    }


@router.get("/cumulative", response_model=CumulativeResponse)
def cumulative(
    year: Optional[int] = Query(None),
    date: Optional[str] = Query(None, pattern=r"^\d{4}-\d{2}-\d{2}$"),
    engine: AnalyticsEngine = Depends(get_engine),
):
    rows = engine.cumulative(year, date)
    last_computed = max((r["last_computed"] for r in rows), default=None)
    return {"days": rows, "last_computed": last_computed}
