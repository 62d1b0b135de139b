from fastapi import APIRouter, Depends, Query

from services.analytics.engine import AnalyticsEngine
from ..deps import get_engine, valid_kind
from ..schemas import ComputationRunsResponse, ComputeResponse, RefreshResponse, StalenessResponse


router = APIRouter()


@router.get("/analytics/staleness", response_model=StalenessResponse)
def staleness(engine: AnalyticsEngine = Depends(get_engine)):
    return {"kinds": engine.staleness_report()}


@router.post("/analytics/{kind}/compute", response_model=ComputeResponse)
def compute(
    kind: str = Depends(valid_kind),
    force: bool = Query(False),
    engine: AnalyticsEngine = Depends(get_engine),
):
    stale = engine.is_stale(kind)
    if not (force or stale):
        return {"kind": kind, "stale": False, "computed": False, "rows_written": 0}
    written = engine.compute(kind)
    return {"kind": kind, "stale": stale, "computed": True, "rows_written": written}


@router.post("/analytics/refresh", response_model=RefreshResponse)
def refresh(force: bool = Query(False), engine: AnalyticsEngine = Depends(get_engine)):
    return {"force": force, "results": engine.refresh(force=force)}


@router.get("/computation-runs", response_model=ComputationRunsResponse)
def computation_runs(
    limit: int = Query(50, ge=1, le=500),
    engine: AnalyticsEngine = Depends(get_engine),
):
    return {"runs": engine.computation_runs(limit=limit)}
