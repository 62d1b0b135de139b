import sqlite3
from pathlib import Path
from tempfile import TemporaryDirectory

import pytest

from packages import metrics
from services.analytics import hr_zones
from services.analytics.engine import AnalyticsEngine
from services.analytics.store import ActivityStore
from tests.fixtures.build_fixture_db import FIXTURE_NOW, build_fixture_db, use_db


@pytest.fixture()
def fixture_db():
    with TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "fixture.db"
        build_fixture_db(db_path)
        use_db(db_path, Path(tmpdir) / "locks")
        yield db_path


def test_failed_recompute_keeps_previous_rows(fixture_db, monkeypatch):
    engine = AnalyticsEngine(clock=lambda: FIXTURE_NOW)
    assert engine.compute_zone_stats() == 6
    before = engine.zone_stats()

    def boom(store):
        raise RuntimeError("zone classifier exploded")

    monkeypatch.setattr(hr_zones, "compute_zone_distribution", boom)
    assert engine.compute_zone_stats() == 0
    assert engine.zone_stats() == before

    (last,) = engine.computation_runs(limit=1)
    assert last["computation_type"] == "hr_zones"
    assert last["status"] == "error"
    assert "exploded" in last["error"]
    assert last["rows_written"] == 0


def test_write_failure_rolls_back_delete(fixture_db, monkeypatch):
    engine = AnalyticsEngine(clock=lambda: FIXTURE_NOW)
    engine.compute_best_efforts()
    before = engine.best_efforts()

    original = ActivityStore.replace_rows

    def failing_replace(self, table, columns, rows):
        original(self, table, columns, rows)
        raise sqlite3.OperationalError("disk full")

    monkeypatch.setattr(ActivityStore, "replace_rows", failing_replace)
    assert engine.compute_best_efforts() == 0
    monkeypatch.undo()
    assert engine.best_efforts() == before


def test_single_bad_activity_is_skipped(fixture_db, monkeypatch):
    original = ActivityStore.get_laps

    def flaky_laps(self, activity_id):
        if activity_id == 2:
            raise ValueError("corrupt lap row")
        return original(self, activity_id)

    monkeypatch.setattr(ActivityStore, "get_laps", flaky_laps)
    failures_before = metrics.snapshot()[0].get("analytics_item_failures_total", 0)

    engine = AnalyticsEngine(clock=lambda: FIXTURE_NOW)
    assert engine.compute_best_efforts() == 2
    assert {e.activity_id for e in engine.best_efforts()} == {1, 3}
    assert metrics.snapshot()[0]["analytics_item_failures_total"] == failures_before + 1


def test_successful_run_recorded(fixture_db):
    engine = AnalyticsEngine(clock=lambda: FIXTURE_NOW)
    engine.compute_yearly_monthly_stats()
    (last,) = engine.computation_runs(limit=1)
    assert last["computation_type"] == "statistics"
    assert last["status"] == "ok"
    assert last["rows_written"] == 5
    assert last["duration_sec"] >= 0


def test_unreadable_header_is_skipped_in_comparison(fixture_db, monkeypatch):
    original = ActivityStore.get_activity_header

    def flaky_header(self, activity_id):
        if activity_id == 3:
            raise ValueError("corrupt activity row")
        return original(self, activity_id)

    monkeypatch.setattr(ActivityStore, "get_activity_header", flaky_header)
    failures_before = metrics.snapshot()[0].get("analytics_item_failures_total", 0)

    engine = AnalyticsEngine(clock=lambda: FIXTURE_NOW)
    assert engine.compute_monthly_comparison() == 1
    row = engine.monthly_comparison()
    # December 2025 drops out, February 2026 remains
    assert row["other_total_km"] == pytest.approx(5.0)
    assert row["current_total_km"] == pytest.approx(3.0)
    assert metrics.snapshot()[0]["analytics_item_failures_total"] > failures_before

    (last,) = engine.computation_runs(limit=1)
    assert last["status"] == "ok"


def test_unreadable_activity_is_skipped_in_distribution(fixture_db, monkeypatch):
    original = ActivityStore.get_laps

    def flaky_laps(self, activity_id):
        if activity_id == 3:
            raise ValueError("corrupt lap row")
        return original(self, activity_id)

    monkeypatch.setattr(ActivityStore, "get_laps", flaky_laps)
    engine = AnalyticsEngine(clock=lambda: FIXTURE_NOW)
    times = engine.segment_time_distribution(1000)
    assert len(times) == 8
    assert 320.0 not in times
