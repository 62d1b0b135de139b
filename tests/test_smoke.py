import sqlite3
from pathlib import Path
from tempfile import TemporaryDirectory

from tests.fixtures.build_fixture_db import use_db

ROOT = Path(__file__).resolve().parents[1]


def test_schema_files_present():
    assert (ROOT / "database" / "schemas" / "schema.sql").exists()
    assert (ROOT / "database" / "schemas" / "schema_pg.sql").exists()


def test_init_db_creates_every_table():
    with TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "nested" / "runstats.db"
        use_db(db_path, Path(tmpdir) / "locks")

        import scripts.init_db as init_db

        init_db.main()
        with sqlite3.connect(db_path) as conn:
            names = {row[0] for row in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")}
        for table in (
            "activity",
            "lap",
            "location",
            "best_times",
            "yearly_stats",
            "monthly_stats",
            "hr_zone_stats",
            "monthly_comparison",
            "yearly_cumulative",
            "computation_tracking",
            "computation_runs",
        ):
            assert table in names


def test_run_analytics_cli_on_fresh_db(capsys):
    with TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "cli.db"
        use_db(db_path, Path(tmpdir) / "locks")

        import scripts.init_db as init_db
        import scripts.run_analytics as run_analytics

        init_db.main()
        assert run_analytics.main(["--kind", "best_times"]) == 0
        assert "best_times: 0 rows" in capsys.readouterr().out
        assert run_analytics.main(["--kind", "best_times"]) == 0
        assert "fresh" in capsys.readouterr().out
