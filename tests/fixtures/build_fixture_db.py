import importlib
import os
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Optional, Sequence, Tuple

# Fixed "now" for time-dependent computations
FIXTURE_NOW = datetime(2026, 3, 15, 12, 0, 0, tzinfo=timezone.utc)

LapTuple = Tuple[float, float, Optional[int]]  # (time_s, distance_m, avg_hr)


def ts(year: int, month: int, day: int, hour: int = 7) -> int:
    return int(datetime(year, month, day, hour, 0, 0, tzinfo=timezone.utc).timestamp())


def apply_schema(conn: sqlite3.Connection, root: Path) -> None:
    schema_path = root / "database" / "schemas" / "schema.sql"
    conn.executescript(schema_path.read_text())


def insert_activity(
    conn: sqlite3.Connection,
    activity_id: int,
    start_time: int,
    laps: Sequence[LapTuple] = (),
    distance: Optional[float] = None,
    time: Optional[float] = None,
    avg_hr: Optional[int] = None,
    sport: int = 0,
    deleted: int = 0,
    samples: Iterable[Optional[int]] = (),
) -> None:
    if distance is None:
        distance = sum(lap[1] for lap in laps)
    if time is None:
        time = sum(lap[0] for lap in laps)
    conn.execute(
        "INSERT INTO activity(id, sport, start_time, distance, time, avg_hr, deleted) VALUES(?,?,?,?,?,?,?)",
        (activity_id, sport, start_time, distance, time, avg_hr, deleted),
    )
    for idx, (lap_time, lap_distance, lap_hr) in enumerate(laps):
        conn.execute(
            "INSERT INTO lap(activity_id, lap, time, distance, avg_hr) VALUES(?,?,?,?,?)",
            (activity_id, idx, lap_time, lap_distance, lap_hr),
        )
    for idx, hr in enumerate(samples):
        conn.execute(
            "INSERT INTO location(activity_id, time, elapsed, distance, hr) VALUES(?,?,?,?,?)",
            (activity_id, start_time * 1000 + idx * 1000, float(idx), float(idx * 3), hr),
        )


def create_empty_db(db_path: Path) -> None:
    root = Path(__file__).resolve().parents[2]
    if db_path.exists():
        db_path.unlink()
    db_path.parent.mkdir(parents=True, exist_ok=True)
    with sqlite3.connect(db_path) as conn:
        apply_schema(conn, root)
        conn.commit()


def build_fixture_db(db_path: Path) -> None:
    create_empty_db(db_path)
    with sqlite3.connect(db_path) as conn:
        # Current month (March 2026): three 1 km laps, fastest 290 s
        insert_activity(
            conn,
            1,
            ts(2026, 3, 2),
            laps=[(300, 1000, 140), (310, 1000, 150), (290, 1000, 160)],
            avg_hr=150,
            samples=[140, 150, 0, 160],
        )
        # February: steady 5 km at 295 s/km
        insert_activity(
            conn,
            2,
            ts(2026, 2, 10),
            laps=[(295, 1000, 145)] * 5,
            avg_hr=145,
            samples=[145, 146],
        )
        # Last December: no lap HR, falls back to the activity average
        insert_activity(
            conn,
            3,
            ts(2025, 12, 20),
            laps=[(320, 1000, None), (320, 1000, 0)],
            avg_hr=155,
        )
        # Excluded: deleted run, a ride, and a run without laps
        insert_activity(conn, 4, ts(2026, 3, 5), laps=[(200, 1000, 170)], deleted=1)
        insert_activity(conn, 5, ts(2026, 3, 6), laps=[(120, 1000, 130)], sport=1)
        insert_activity(conn, 6, ts(2026, 3, 7), laps=[], distance=2000, time=700, avg_hr=140)
        conn.commit()


def use_db(db_path: Path, lock_dir: Path):
    """Point configuration at a fixture DB and return the reloaded config module."""
    os.environ["RUNSTATS_DB_PATH"] = str(db_path)
    os.environ["RUNSTATS_DB_URL"] = ""
    os.environ["RUNSTATS_LOCK_DIR"] = str(lock_dir)
    os.environ["RUNSTATS_TZ"] = "UTC"

    import packages.config as config

    importlib.reload(config)
    return config
