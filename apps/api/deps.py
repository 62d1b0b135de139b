from fastapi import HTTPException, status

from services.analytics.engine import AnalyticsEngine
from services.analytics.models import ALL_KINDS


def get_engine() -> AnalyticsEngine:
    return AnalyticsEngine()


def valid_kind(kind: str) -> str:
    if kind not in ALL_KINDS:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown computation kind: {kind}",
        )
    return kind
