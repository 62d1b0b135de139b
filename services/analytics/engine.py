"""Caller-facing analytics operations: compute, staleness and read accessors."""
from __future__ import annotations

import logging
import time
from contextlib import closing
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from packages import db, metrics
from packages.computation_state import finish_run, recent_runs, start_run
from packages.error_reporting import capture_computation_failure
from packages.request_context import computation_context
from services.analytics import best_efforts as best_efforts_mod
from services.analytics import comparison, cumulative, hr_zones, periods, staleness
from services.analytics.materializer import Materializer, Replacement
from services.analytics.models import (
    ALL_KINDS,
    BEST_EFFORTS,
    CUMULATIVE,
    HR_ZONES,
    MONTHLY_COMPARISON,
    PERIOD_STATS,
    BestEffort,
    TargetCatalog,
)
from services.analytics.store import ActivityStore

logger = logging.getLogger("runstats.analytics.engine")

Builder = Callable[[ActivityStore, Materializer], int]


class UnknownComputationError(ValueError):
    """Raised for a computation kind the engine does not know."""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# Tracking markers are epoch seconds, derived-table columns epoch milliseconds
def _epoch_seconds(moment: datetime) -> int:
    return int(moment.timestamp())


def _epoch_ms(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


class AnalyticsEngine:
    def __init__(
        self,
        connect: Optional[Callable[[], db.DBConnection]] = None,
        catalog: Optional[TargetCatalog] = None,
        clock: Optional[Callable[[], datetime]] = None,
        store_key: Optional[str] = None,
    ):
        self._connect = connect or db.connect
        self.catalog = catalog or TargetCatalog.from_config()
        self.clock = clock or _utcnow
        self.store_key = store_key or db.db_identity()

    # Plumbing

    def _open(self) -> db.DBConnection:
        conn = self._connect()
        db.configure_connection(conn)
        return conn

    def _read(self, fn: Callable[[ActivityStore], Any]) -> Any:
        with closing(self._open()) as conn:
            return fn(ActivityStore(conn))

    def _report_failure(self, kind: str, exc: BaseException) -> None:
        logger.exception("Computation %s failed: %s", kind, exc)
        capture_computation_failure(kind, exc)
        metrics.inc("analytics_computation_failures_total", kind=kind)

    def _execute(self, conn: db.DBConnection, kind: str, build: Builder) -> tuple:
        store = ActivityStore(conn)
        materializer = Materializer(store, self.store_key)
        try:
            with materializer.locked(kind) as acquired:
                if not acquired:
                    return "skipped", 0, None
                return "ok", build(store, materializer), None
        except Exception as exc:
            conn.rollback()
            self._report_failure(kind, exc)
            return "error", 0, str(exc)

    def _compute(self, kind: str, build: Builder) -> int:
        """Run one computation with run bookkeeping; failures yield 0 rows."""
        metrics.inc("analytics_computations_total", kind=kind)
        started = time.perf_counter()
        try:
            conn = self._open()
        except db.StoreUnavailableError as exc:
            self._report_failure(kind, exc)
            return 0
        try:
            run_id = start_run(conn, kind)
            with computation_context(kind, run_id):
                status, written, error = self._execute(conn, kind, build)
                duration = time.perf_counter() - started
                finish_run(conn, run_id, status, written, error, duration)
                logger.info("Computation %s finished status=%s rows=%s in %.3fs", kind, status, written, duration)
            metrics.observe("analytics_computation_seconds", duration, kind=kind)
            metrics.inc("analytics_rows_written_total", written, kind=kind)
            return written
        except Exception as exc:
            self._report_failure(kind, exc)
            return 0
        finally:
            conn.close()

    def _now(self) -> datetime:
        return self.clock()

    # Builders

    def _build_best_efforts(self, store: ActivityStore, materializer: Materializer) -> int:
        efforts, max_id = best_efforts_mod.find_best_efforts(store, self.catalog)
        return materializer.write(
            BEST_EFFORTS,
            [Replacement("best_times", best_efforts_mod.BEST_TIMES_COLUMNS, best_efforts_mod.best_effort_rows(efforts))],
            _epoch_seconds(self._now()),
            last_activity_id=max_id,
            catalog=self.catalog.signature,
        )

    def _build_period_stats(self, store: ActivityStore, materializer: Materializer) -> int:
        yearly, monthly = periods.aggregate_periods(store)
        return materializer.write(
            PERIOD_STATS,
            [
                Replacement("yearly_stats", periods.YEARLY_COLUMNS, periods.yearly_rows(yearly)),
                Replacement("monthly_stats", periods.MONTHLY_COLUMNS, periods.monthly_rows(monthly)),
            ],
            _epoch_seconds(self._now()),
            last_activity_id=store.latest_running_activity_id() or 0,
        )

    def _build_zone_stats(self, store: ActivityStore, materializer: Materializer) -> int:
        now = self._now()
        latest = store.latest_running_activity_id()
        rows: list = []
        if latest is not None:
            stats = hr_zones.compute_zone_distribution(store)
            rows = hr_zones.zone_rows(stats, _epoch_ms(now))
        return materializer.write(
            HR_ZONES,
            [Replacement("hr_zone_stats", hr_zones.HR_ZONE_COLUMNS, rows)],
            _epoch_seconds(now),
            last_activity_id=latest or 0,
        )

    def _build_monthly_comparison(self, store: ActivityStore, materializer: Materializer) -> int:
        now = self._now()
        latest = store.latest_running_activity_id()
        rows: list = []
        if latest is not None:
            result = comparison.compare_months(store, now)
            rows = [comparison.comparison_row(result, _epoch_ms(now))]
        return materializer.write(
            MONTHLY_COMPARISON,
            [Replacement("monthly_comparison", comparison.COMPARISON_COLUMNS, rows)],
            _epoch_seconds(now),
            last_activity_id=latest or 0,
        )

    def _build_cumulative(self, store: ActivityStore, materializer: Materializer) -> int:
        now = self._now()
        latest = store.latest_running_activity_id()
        rows: list = []
        if latest is not None:
            series = cumulative.cumulative_series(store, now)
            rows = cumulative.cumulative_rows(series, _epoch_ms(now))
        return materializer.write(
            CUMULATIVE,
            [Replacement("yearly_cumulative", cumulative.CUMULATIVE_COLUMNS, rows)],
            _epoch_seconds(now),
            last_activity_id=latest or 0,
        )

    # Computations

    def compute_best_efforts(self) -> int:
        return self._compute(BEST_EFFORTS, self._build_best_efforts)

    def compute_yearly_monthly_stats(self) -> int:
        return self._compute(PERIOD_STATS, self._build_period_stats)

    def compute_zone_stats(self) -> int:
        return self._compute(HR_ZONES, self._build_zone_stats)

    def compute_monthly_comparison(self) -> int:
        return self._compute(MONTHLY_COMPARISON, self._build_monthly_comparison)

    def compute_cumulative(self) -> int:
        return self._compute(CUMULATIVE, self._build_cumulative)

    def compute(self, kind: str) -> int:
        computations = {
            BEST_EFFORTS: self.compute_best_efforts,
            PERIOD_STATS: self.compute_yearly_monthly_stats,
            HR_ZONES: self.compute_zone_stats,
            MONTHLY_COMPARISON: self.compute_monthly_comparison,
            CUMULATIVE: self.compute_cumulative,
        }
        if kind not in computations:
            raise UnknownComputationError(kind)
        return computations[kind]()

    # Staleness

    def _stale(self, kind: str, check: Callable[[ActivityStore], bool]) -> bool:
        return staleness.fail_open(kind, lambda: self._read(check))

    def is_best_efforts_stale(self) -> bool:
        return self._stale(
            BEST_EFFORTS,
            lambda store: staleness.best_efforts_stale(store, BEST_EFFORTS, self.catalog),
        )

    def is_period_stats_stale(self) -> bool:
        return self._stale(PERIOD_STATS, lambda store: staleness.id_tracked_stale(store, PERIOD_STATS))

    def is_zone_stats_stale(self) -> bool:
        return self._stale(
            HR_ZONES,
            lambda store: staleness.freshness_stale(store, "hr_zone_stats", self._now()),
        )

    def is_monthly_comparison_stale(self) -> bool:
        return self._stale(
            MONTHLY_COMPARISON,
            lambda store: staleness.month_rolled_over(store, "monthly_comparison", self._now()),
        )

    def is_cumulative_stale(self) -> bool:
        return self._stale(
            CUMULATIVE,
            lambda store: staleness.freshness_stale(store, "yearly_cumulative", self._now()),
        )

    def is_stale(self, kind: str) -> bool:
        checks = {
            BEST_EFFORTS: self.is_best_efforts_stale,
            PERIOD_STATS: self.is_period_stats_stale,
            HR_ZONES: self.is_zone_stats_stale,
            MONTHLY_COMPARISON: self.is_monthly_comparison_stale,
            CUMULATIVE: self.is_cumulative_stale,
        }
        if kind not in checks:
            raise UnknownComputationError(kind)
        return checks[kind]()

    def staleness_report(self) -> Dict[str, bool]:
        return {kind: self.is_stale(kind) for kind in ALL_KINDS}

    def refresh(self, force: bool = False) -> Dict[str, int]:
        """Recompute every stale kind (all of them when forced), best efforts first."""
        results: Dict[str, int] = {}
        for kind in ALL_KINDS:
            if force or self.is_stale(kind):
                results[kind] = self.compute(kind)
        logger.info("Refresh finished: %s", results)
        return results

    # Read accessors

    def best_efforts(self, distance: Optional[int] = None) -> List[BestEffort]:
        return self._read(lambda store: store.best_efforts(distance))

    def best_effort_summary(self) -> List[Dict[str, Any]]:
        return self._read(lambda store: store.best_effort_summary())

    def yearly_stats(self, year: Optional[int] = None) -> List[Dict[str, Any]]:
        return self._read(lambda store: store.yearly_stats(year))

    def monthly_stats(self, year: Optional[int] = None, month: Optional[int] = None) -> List[Dict[str, Any]]:
        return self._read(lambda store: store.monthly_stats(year, month))

    def zone_stats(self, zone: Optional[int] = None) -> List[Dict[str, Any]]:
        return self._read(lambda store: store.zone_stats(zone))

    def monthly_comparison(self) -> Optional[Dict[str, Any]]:
        return self._read(lambda store: store.monthly_comparison())

    def cumulative(self, year: Optional[int] = None, date: Optional[str] = None) -> List[Dict[str, Any]]:
        return self._read(lambda store: store.cumulative(year, date))

    def segment_time_distribution(self, distance: int) -> List[float]:
        return self._read(lambda store: best_efforts_mod.segment_time_distribution(store, distance))

    def computation_runs(self, limit: int = 50) -> List[Dict[str, Any]]:
        return self._read(lambda store: recent_runs(store.conn, limit))
