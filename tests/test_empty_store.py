import sqlite3
from pathlib import Path
from tempfile import TemporaryDirectory

from services.analytics.engine import AnalyticsEngine
from services.analytics.models import ALL_KINDS
from tests.fixtures.build_fixture_db import FIXTURE_NOW, build_fixture_db, create_empty_db, use_db

DERIVED_TABLES = (
    "best_times",
    "yearly_stats",
    "monthly_stats",
    "hr_zone_stats",
    "monthly_comparison",
    "yearly_cumulative",
)


def _counts(db_path: Path) -> dict:
    with sqlite3.connect(db_path) as conn:
        return {t: conn.execute(f"SELECT COUNT(*) FROM {t}").fetchone()[0] for t in DERIVED_TABLES}


def test_empty_activity_set_writes_nothing():
    with TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "empty.db"
        create_empty_db(db_path)
        use_db(db_path, Path(tmpdir) / "locks")
        engine = AnalyticsEngine(clock=lambda: FIXTURE_NOW)

        results = engine.refresh(force=True)
        assert results == {kind: 0 for kind in ALL_KINDS}
        assert all(count == 0 for count in _counts(db_path).values())

        with sqlite3.connect(db_path) as conn:
            tracked = {
                row[0]: row[1]
                for row in conn.execute("SELECT computation_type, last_activity_id FROM computation_tracking")
            }
            statuses = {row[0] for row in conn.execute("SELECT status FROM computation_runs")}
        assert tracked == {kind: 0 for kind in ALL_KINDS}
        assert statuses == {"ok"}
        assert not engine.is_best_efforts_stale()
        assert not engine.is_period_stats_stale()


def test_removing_every_run_clears_previous_results():
    with TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "fixture.db"
        build_fixture_db(db_path)
        use_db(db_path, Path(tmpdir) / "locks")
        engine = AnalyticsEngine(clock=lambda: FIXTURE_NOW)
        engine.refresh(force=True)
        assert all(count > 0 for count in _counts(db_path).values())

        with sqlite3.connect(db_path) as conn:
            conn.execute("UPDATE activity SET deleted=1")
            conn.commit()
        engine.refresh(force=True)
        assert all(count == 0 for count in _counts(db_path).values())
