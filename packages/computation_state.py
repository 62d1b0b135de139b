from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


@dataclass
class ComputationTracking:
    computation_type: str
    last_computed_time: int
    last_activity_id: Optional[int]
    catalog: Optional[str]


def ensure_state_tables(conn) -> None:
    if conn.postgres:
        return
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS computation_tracking (
          computation_type TEXT PRIMARY KEY,
          last_computed_time INTEGER NOT NULL,
          last_activity_id INTEGER,
          catalog TEXT
        )
        """
    )
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS computation_runs (
          id INTEGER PRIMARY KEY,
          computation_type TEXT NOT NULL,
          started_at TEXT NOT NULL,
          finished_at TEXT,
          status TEXT NOT NULL,
          rows_written INTEGER,
          error TEXT,
          duration_sec REAL
        )
        """
    )


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def load_tracking(conn, computation_type: str) -> Optional[ComputationTracking]:
    row = conn.execute(
        """
        SELECT computation_type, last_computed_time, last_activity_id, catalog
        FROM computation_tracking
        WHERE computation_type=?
        """,
        (computation_type,),
    ).fetchone()
    if not row:
        return None
    return ComputationTracking(row[0], int(row[1]), row[2], row[3])


def save_tracking(
    conn,
    computation_type: str,
    last_computed_time: int,
    last_activity_id: Optional[int] = None,
    catalog: Optional[str] = None,
) -> None:
    """Replace the tracking row; the caller owns the transaction."""
    conn.execute(
        "DELETE FROM computation_tracking WHERE computation_type=?",
        (computation_type,),
    )
    conn.execute(
        """
        INSERT INTO computation_tracking(computation_type, last_computed_time, last_activity_id, catalog)
        VALUES(?, ?, ?, ?)
        """,
        (computation_type, last_computed_time, last_activity_id, catalog),
    )


def start_run(conn, computation_type: str) -> int:
    ensure_state_tables(conn)
    cur = conn.cursor()
    if conn.postgres:
        cur.execute(
            """
            INSERT INTO computation_runs(computation_type, started_at, status)
            VALUES(?, ?, ?)
            RETURNING id
            """,
            (computation_type, _now_iso(), "running"),
        )
        run_id = cur.fetchone()[0]
        conn.commit()
        return run_id
    cur.execute(
        """
        INSERT INTO computation_runs(computation_type, started_at, status)
        VALUES(?, ?, ?)
        """,
        (computation_type, _now_iso(), "running"),
    )
    conn.commit()
    return cur.lastrowid


def finish_run(
    conn,
    run_id: int,
    status: str,
    rows_written: int,
    error: Optional[str],
    duration_sec: float,
) -> None:
    conn.execute(
        """
        UPDATE computation_runs
        SET finished_at=?,
            status=?,
            rows_written=?,
            error=?,
            duration_sec=?
        WHERE id=?
        """,
        (_now_iso(), status, rows_written, error, duration_sec, run_id),
    )
    conn.commit()


def recent_runs(conn, limit: int = 50) -> List[Dict[str, Any]]:
    ensure_state_tables(conn)
    cur = conn.execute(
        """
        SELECT id, computation_type, started_at, finished_at, status,
               rows_written, error, duration_sec
        FROM computation_runs
        ORDER BY id DESC
        LIMIT ?
        """,
        (limit,),
    )
    cols = [c[0] for c in cur.description]
    return [dict(zip(cols, row)) for row in cur.fetchall()]
