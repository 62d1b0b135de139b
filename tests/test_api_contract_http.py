import importlib
from pathlib import Path
from tempfile import TemporaryDirectory

import pytest
from fastapi.testclient import TestClient

from apps.api.schemas import (
    BestEffortSummaryResponse,
    BestEffortsResponse,
    ComputationRunsResponse,
    CumulativeResponse,
    DistributionResponse,
    HealthResponse,
    HRZonesResponse,
    MonthlyComparisonResponse,
    PeriodStatsResponse,
    RefreshResponse,
    StalenessResponse,
)
from tests.fixtures.build_fixture_db import build_fixture_db, use_db


def _client_for(db_path: Path, lock_dir: Path) -> TestClient:
    use_db(db_path, lock_dir)
    import apps.api.main as api_main

    importlib.reload(api_main)
    return TestClient(api_main.app)


@pytest.fixture()
def client():
    with TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "fixture.db"
        build_fixture_db(db_path)
        with _client_for(db_path, Path(tmpdir) / "locks") as client:
            resp = client.post("/api/v1/analytics/refresh?force=true")
            assert resp.status_code == 200
            yield client


def test_health_contract_http(client):
    resp = client.get("/api/v1/health")
    assert resp.status_code == 200
    payload = HealthResponse.model_validate(resp.json())
    assert payload.db == "ok"
    assert payload.last_run is not None
    assert resp.headers.get("x-request-id")


def test_refresh_and_staleness_contract_http(client):
    resp = client.get("/api/v1/analytics/staleness")
    assert resp.status_code == 200
    staleness = StalenessResponse.model_validate(resp.json())
    assert not any(staleness.kinds.values())

    resp = client.post("/api/v1/analytics/refresh")
    assert resp.status_code == 200
    assert RefreshResponse.model_validate(resp.json()).results == {}


def test_compute_endpoint_respects_force(client):
    resp = client.post("/api/v1/analytics/best_times/compute")
    assert resp.status_code == 200
    body = resp.json()
    assert body["computed"] is False
    assert body["stale"] is False

    resp = client.post("/api/v1/analytics/best_times/compute?force=true")
    body = resp.json()
    assert body["computed"] is True
    assert body["rows_written"] == 4


def test_unknown_kind_uses_error_envelope(client):
    resp = client.post("/api/v1/analytics/weekly_mileage/compute")
    assert resp.status_code == 404
    error = resp.json()["error"]
    assert error["code"] == "http_404"
    assert "weekly_mileage" in error["message"]
    assert error["request_id"]


def test_best_efforts_contract_http(client):
    resp = client.get("/api/v1/best-efforts?distance=1000")
    assert resp.status_code == 200
    payload = BestEffortsResponse.model_validate(resp.json())
    assert [e.rank for e in payload.efforts] == [1, 2, 3]

    resp = client.get("/api/v1/best-efforts/summary")
    assert resp.status_code == 200
    summary = BestEffortSummaryResponse.model_validate(resp.json())
    assert {d.distance for d in summary.distances} == {1000, 5000}

    resp = client.get("/api/v1/best-efforts/1000/distribution")
    assert resp.status_code == 200
    dist = DistributionResponse.model_validate(resp.json())
    assert dist.count == 10
    assert dist.fastest_s == pytest.approx(290)


def test_stats_contract_http(client):
    resp = client.get("/api/v1/stats/yearly")
    assert resp.status_code == 200
    assert len(PeriodStatsResponse.model_validate(resp.json()).stats) == 2

    resp = client.get("/api/v1/stats/monthly?year=2026&month=3")
    assert resp.status_code == 200
    (march,) = PeriodStatsResponse.model_validate(resp.json()).stats
    assert march.total_distance == pytest.approx(3000)

    resp = client.get("/api/v1/stats/monthly?month=13")
    assert resp.status_code == 422


def test_hr_zones_contract_http(client):
    resp = client.get("/api/v1/hr-zones")
    assert resp.status_code == 200
    zones = HRZonesResponse.model_validate(resp.json()).zones
    assert [z.zone_number for z in zones] == [0, 1, 2, 3, 4, 5]


def test_comparison_contract_http(client):
    resp = client.get("/api/v1/comparison/monthly")
    assert resp.status_code == 200
    payload = MonthlyComparisonResponse.model_validate(resp.json())
    assert payload.current is not None
    assert payload.other is not None
    assert payload.current_month_year


def test_cumulative_contract_http(client):
    resp = client.get("/api/v1/cumulative")
    assert resp.status_code == 200
    payload = CumulativeResponse.model_validate(resp.json())
    assert len(payload.days) in (365 + 365, 365 + 366)
    assert payload.last_computed is not None


def test_computation_runs_contract_http(client):
    resp = client.get("/api/v1/computation-runs?limit=3")
    assert resp.status_code == 200
    runs = ComputationRunsResponse.model_validate(resp.json()).runs
    assert len(runs) == 3
    assert all(r.status == "ok" for r in runs)


def test_metrics_exposes_computation_counters(client):
    resp = client.get("/metrics")
    assert resp.status_code == 200
    assert 'analytics_computations_total{kind="best_times"}' in resp.text
    assert "http_requests_total" in resp.text


def test_missing_store_returns_503():
    with TemporaryDirectory() as tmpdir:
        with _client_for(Path(tmpdir) / "absent.db", Path(tmpdir) / "locks") as client:
            resp = client.get("/api/v1/health")
            assert resp.status_code == 200
            assert resp.json()["db"] == "missing"

            resp = client.get("/api/v1/best-efforts")
            assert resp.status_code == 503
            assert resp.json()["error"]["code"] == "store_unavailable"
