import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterable, Optional, Sequence

import packages.config as config

try:  # Optional dependency for Postgres
    import psycopg2
except ImportError:  # pragma: no cover - optional in SQLite-only envs
    psycopg2 = None


class StoreUnavailableError(RuntimeError):
    """Raised when the activity store cannot be opened."""


def is_postgres() -> bool:
    return bool(config.DB_URL) and config.DB_URL.startswith("postgres")


def db_exists() -> bool:
    if is_postgres():
        return True
    return config.DB_PATH.exists()


def db_identity() -> str:
    """Stable key for the configured store, used to scope computation locks."""
    if is_postgres():
        return config.DB_URL
    return str(config.DB_PATH.resolve())


def _adapt_sql(sql: str) -> str:
    if not is_postgres():
        return sql
    return sql.replace("?", "%s")


class DBCursor:
    def __init__(self, cursor, postgres: bool):
        self._cursor = cursor
        self._postgres = postgres

    @property
    def description(self):
        return self._cursor.description

    @property
    def lastrowid(self):
        return self._cursor.lastrowid

    def execute(self, sql: str, params: Optional[Iterable] = None):
        sql = _adapt_sql(sql) if self._postgres else sql
        if params is None:
            self._cursor.execute(sql)
        else:
            self._cursor.execute(sql, list(params))
        return self

    def executemany(self, sql: str, rows: Iterable[Sequence]):
        sql = _adapt_sql(sql) if self._postgres else sql
        self._cursor.executemany(sql, [list(row) for row in rows])
        return self

    def fetchone(self):
        return self._cursor.fetchone()

    def fetchall(self):
        return self._cursor.fetchall()

    def __iter__(self):
        return iter(self._cursor)


class DBConnection:
    def __init__(self, conn, postgres: bool):
        self._conn = conn
        self._postgres = postgres

    @property
    def postgres(self) -> bool:
        return self._postgres

    def cursor(self):
        return DBCursor(self._conn.cursor(), self._postgres)

    def execute(self, sql: str, params: Optional[Iterable] = None):
        cur = self.cursor()
        cur.execute(sql, params)
        return cur

    def executemany(self, sql: str, rows: Iterable[Sequence]):
        cur = self.cursor()
        cur.executemany(sql, rows)
        return cur

    def executescript(self, sql: str) -> None:
        if not self._postgres:
            self._conn.executescript(sql)
            return
        for stmt in _split_sql(sql):
            if stmt:
                self._conn.cursor().execute(stmt)

    def commit(self) -> None:
        self._conn.commit()

    def rollback(self) -> None:
        self._conn.rollback()

    @contextmanager
    def transaction(self):
        """Commit the enclosed statements together or roll all of them back."""
        try:
            yield self
        except Exception:
            self.rollback()
            raise
        else:
            self.commit()

    def close(self) -> None:
        self._conn.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        if exc_type:
            try:
                self.rollback()
            finally:
                self.close()
        else:
            try:
                self.commit()
            finally:
                self.close()


def connect(create: bool = False) -> DBConnection:
    if is_postgres():
        if psycopg2 is None:
            raise StoreUnavailableError("psycopg2 is required for Postgres. Add psycopg2-binary.")
        try:
            return DBConnection(psycopg2.connect(config.DB_URL), postgres=True)
        except psycopg2.Error as exc:
            raise StoreUnavailableError(str(exc)) from exc
    if not create and not config.DB_PATH.exists():
        raise StoreUnavailableError(f"DB not initialized: {config.DB_PATH}. Run scripts/init_db.py")
    return DBConnection(sqlite3.connect(config.DB_PATH), postgres=False)


def configure_connection(conn: DBConnection) -> None:
    if conn.postgres:
        return
    try:
        conn.execute("PRAGMA foreign_keys=ON")
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA busy_timeout=5000")
    except sqlite3.OperationalError:
        return


def schema_path() -> Path:
    root = Path(__file__).resolve().parents[1]
    if is_postgres():
        return root / "database" / "schemas" / "schema_pg.sql"
    return root / "database" / "schemas" / "schema.sql"


def _split_sql(sql: str) -> list[str]:
    parts = []
    buf = []
    for line in sql.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("--"):
            continue
        buf.append(line)
        if stripped.endswith(";"):
            parts.append("\n".join(buf).strip().rstrip(";"))
            buf = []
    if buf:
        parts.append("\n".join(buf).strip().rstrip(";"))
    return parts
