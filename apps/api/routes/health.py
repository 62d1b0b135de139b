from fastapi import APIRouter, Depends

from packages.db import StoreUnavailableError, db_exists
from services.analytics.engine import AnalyticsEngine
from ..deps import get_engine
from ..schemas import HealthResponse


router = APIRouter()


@router.get("/health", response_model=HealthResponse)
def health(engine: AnalyticsEngine = Depends(get_engine)):
    if not db_exists():
        return {"status": "ok", "db": "missing", "last_run": None}
    try:
        runs = engine.computation_runs(limit=1)
    except StoreUnavailableError:
        return {"status": "degraded", "db": "unavailable", "last_run": None}
    return {"status": "ok", "db": "ok", "last_run": runs[0] if runs else None}
