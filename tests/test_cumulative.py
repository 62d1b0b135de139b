from datetime import date
from pathlib import Path
from tempfile import TemporaryDirectory

import pytest

from services.analytics.cumulative import year_series
from services.analytics.engine import AnalyticsEngine
from tests.fixtures.build_fixture_db import FIXTURE_NOW, build_fixture_db, use_db


def test_year_series_dense_and_monotonic():
    totals = {date(2024, 1, 1): 5000.0, date(2024, 2, 29): 10000.0, date(2024, 12, 31): 1000.0}
    series = year_series(2024, totals)
    assert len(series) == 366
    assert series[0].date == "2024-01-01"
    assert series[0].cumulative_km == pytest.approx(5.0)
    assert series[-1].date == "2024-12-31"
    assert series[-1].cumulative_km == pytest.approx(16.0)
    values = [d.cumulative_km for d in series]
    assert values == sorted(values)


def test_cumulative_for_current_and_previous_year():
    with TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "fixture.db"
        build_fixture_db(db_path)
        use_db(db_path, Path(tmpdir) / "locks")
        engine = AnalyticsEngine(clock=lambda: FIXTURE_NOW)
        assert engine.compute_cumulative() == 365 + 365

        this_year = engine.cumulative(year=2026)
        assert len(this_year) == 365
        assert this_year[0]["cumulative_km"] == 0.0
        # header distance counts, including the run without laps
        assert this_year[-1]["cumulative_km"] == pytest.approx(10.0)

        last_year = engine.cumulative(year=2025)
        assert last_year[-1]["cumulative_km"] == pytest.approx(2.0)

        (day,) = engine.cumulative(date="2026-03-02")
        assert day["cumulative_km"] == pytest.approx(8.0)
