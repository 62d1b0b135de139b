"""Typed queries over the activity store and the derived tables."""
from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from services.analytics.models import (
    SPORT_RUNNING,
    ActivityHeader,
    BestEffort,
    HeartRateSample,
    Lap,
)


def _rows_as_dicts(cur) -> List[Dict[str, Any]]:
    cols = [c[0] for c in cur.description]
    return [dict(zip(cols, row)) for row in cur.fetchall()]


class ActivityStore:
    def __init__(self, conn):
        self.conn = conn

    # Source reads

    def list_running_activity_ids(self) -> List[int]:
        rows = self.conn.execute(
            """
            SELECT id FROM activity
            WHERE sport=? AND deleted=0
            ORDER BY start_time DESC, id DESC
            """,
            (SPORT_RUNNING,),
        ).fetchall()
        return [int(r[0]) for r in rows]

    def latest_running_activity_id(self) -> Optional[int]:
        row = self.conn.execute(
            "SELECT MAX(id) FROM activity WHERE sport=? AND deleted=0",
            (SPORT_RUNNING,),
        ).fetchone()
        if not row or row[0] is None:
            return None
        return int(row[0])

    def get_activity_header(self, activity_id: int) -> Optional[ActivityHeader]:
        row = self.conn.execute(
            """
            SELECT id, start_time, distance, time, avg_hr
            FROM activity
            WHERE id=? AND sport=? AND deleted=0
            """,
            (activity_id, SPORT_RUNNING),
        ).fetchone()
        if not row:
            return None
        return ActivityHeader(
            activity_id=int(row[0]),
            start_time=int(row[1]),
            distance=float(row[2] or 0.0),
            time=float(row[3] or 0.0),
            avg_hr=row[4],
        )

    def get_laps(self, activity_id: int) -> List[Lap]:
        rows = self.conn.execute(
            """
            SELECT lap, time, distance, avg_hr
            FROM lap
            WHERE activity_id=?
            ORDER BY lap ASC
            """,
            (activity_id,),
        ).fetchall()
        return [Lap(int(r[0]), float(r[1] or 0.0), float(r[2] or 0.0), r[3]) for r in rows]

    def get_heart_rate_samples(self, activity_id: int) -> List[HeartRateSample]:
        rows = self.conn.execute(
            """
            SELECT time, hr, elapsed, distance
            FROM location
            WHERE activity_id=?
            ORDER BY time ASC
            """,
            (activity_id,),
        ).fetchall()
        return [HeartRateSample(int(r[0]), r[1], r[2], r[3]) for r in rows]

    def running_activities_between(self, start: int, end: int) -> List[ActivityHeader]:
        """Headers of running activities starting within [start, end] (epoch seconds)."""
        rows = self.conn.execute(
            """
            SELECT id, start_time, distance, time, avg_hr
            FROM activity
            WHERE sport=? AND deleted=0 AND start_time >= ? AND start_time <= ?
            ORDER BY start_time ASC, id ASC
            """,
            (SPORT_RUNNING, start, end),
        ).fetchall()
        return [
            ActivityHeader(int(r[0]), int(r[1]), float(r[2] or 0.0), float(r[3] or 0.0), r[4])
            for r in rows
        ]

    # Derived tables

    def replace_rows(self, table: str, columns: Sequence[str], rows: Sequence[Sequence]) -> int:
        """Delete every row of a derived table and insert the given ones; no commit."""
        self.conn.execute(f"DELETE FROM {table}")
        if not rows:
            return 0
        placeholders = ", ".join("?" for _ in columns)
        self.conn.executemany(
            f"INSERT INTO {table}({', '.join(columns)}) VALUES({placeholders})",
            rows,
        )
        return len(rows)

    def count_rows(self, table: str) -> int:
        return int(self.conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0])

    def max_last_computed(self, table: str) -> Optional[int]:
        row = self.conn.execute(f"SELECT MAX(last_computed) FROM {table}").fetchone()
        if not row or row[0] is None:
            return None
        return int(row[0])

    def best_effort_distances(self) -> List[int]:
        rows = self.conn.execute("SELECT DISTINCT distance FROM best_times").fetchall()
        return [int(r[0]) for r in rows]

    def best_efforts(self, distance: Optional[int] = None) -> List[BestEffort]:
        sql = """
            SELECT distance, time, pace, activity_id, start_time, avg_hr, rank
            FROM best_times
        """
        params: list = []
        if distance is not None:
            sql += " WHERE distance=?"
            params.append(distance)
        sql += " ORDER BY distance ASC, rank ASC"
        rows = self.conn.execute(sql, params).fetchall()
        return [
            BestEffort(int(r[0]), int(r[1]), float(r[2]), int(r[3]), r[4], r[5], int(r[6]))
            for r in rows
        ]

    def best_effort_summary(self) -> List[Dict[str, Any]]:
        cur = self.conn.execute(
            """
            SELECT distance, COUNT(*) AS efforts, AVG(time) AS avg_time_ms, MIN(time) AS best_time_ms
            FROM best_times
            GROUP BY distance
            ORDER BY distance ASC
            """
        )
        return _rows_as_dicts(cur)

    def pb_count_between(self, start: int, end: int, outside: bool = False) -> int:
        window = "(a.start_time < ? OR a.start_time > ?)" if outside else "(a.start_time >= ? AND a.start_time <= ?)"
        row = self.conn.execute(
            f"""
            SELECT COUNT(DISTINCT b.distance)
            FROM best_times b
            JOIN activity a ON a.id = b.activity_id
            WHERE b.rank = 1 AND a.sport=? AND a.deleted=0 AND {window}
            """,
            (SPORT_RUNNING, start, end),
        ).fetchone()
        return int(row[0] or 0)

    def top_rank_activity_count_between(
        self, start: int, end: int, max_rank: int, outside: bool = False
    ) -> int:
        window = "(a.start_time < ? OR a.start_time > ?)" if outside else "(a.start_time >= ? AND a.start_time <= ?)"
        row = self.conn.execute(
            f"""
            SELECT COUNT(DISTINCT b.activity_id)
            FROM best_times b
            JOIN activity a ON a.id = b.activity_id
            WHERE b.rank <= ? AND a.sport=? AND a.deleted=0 AND {window}
            """,
            (max_rank, SPORT_RUNNING, start, end),
        ).fetchone()
        return int(row[0] or 0)

    def yearly_stats(self, year: Optional[int] = None) -> List[Dict[str, Any]]:
        sql = """
            SELECT year, total_distance, total_time, avg_pace, avg_run_length, run_count
            FROM yearly_stats
        """
        params: list = []
        if year is not None:
            sql += " WHERE year=?"
            params.append(year)
        sql += " ORDER BY year ASC"
        return _rows_as_dicts(self.conn.execute(sql, params))

    def monthly_stats(self, year: Optional[int] = None, month: Optional[int] = None) -> List[Dict[str, Any]]:
        sql = """
            SELECT year, month, total_distance, total_time, avg_pace, avg_run_length, run_count
            FROM monthly_stats
        """
        clauses = []
        params: list = []
        if year is not None:
            clauses.append("year=?")
            params.append(year)
        if month is not None:
            clauses.append("month=?")
            params.append(month)
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        sql += " ORDER BY year ASC, month ASC"
        return _rows_as_dicts(self.conn.execute(sql, params))

    def zone_stats(self, zone: Optional[int] = None) -> List[Dict[str, Any]]:
        sql = """
            SELECT zone_number, time_in_zone, distance_in_zone, avg_pace_in_zone, last_computed
            FROM hr_zone_stats
        """
        params: list = []
        if zone is not None:
            sql += " WHERE zone_number=?"
            params.append(zone)
        sql += " ORDER BY zone_number ASC"
        return _rows_as_dicts(self.conn.execute(sql, params))

    def monthly_comparison(self) -> Optional[Dict[str, Any]]:
        rows = _rows_as_dicts(self.conn.execute("SELECT * FROM monthly_comparison"))
        return rows[0] if rows else None

    def cumulative(self, year: Optional[int] = None, date: Optional[str] = None) -> List[Dict[str, Any]]:
        sql = "SELECT date, cumulative_km, year, last_computed FROM yearly_cumulative"
        clauses = []
        params: list = []
        if year is not None:
            clauses.append("year=?")
            params.append(year)
        if date is not None:
            clauses.append("date=?")
            params.append(date)
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        sql += " ORDER BY date ASC"
        return _rows_as_dicts(self.conn.execute(sql, params))
