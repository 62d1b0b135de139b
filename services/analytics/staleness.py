"""Per-kind "needs recompute?" decisions."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

import packages.config as config
from packages.computation_state import load_tracking
from services.analytics.models import TargetCatalog
from services.analytics.periods import local_tz
from services.analytics.store import ActivityStore

logger = logging.getLogger("runstats.analytics.staleness")


def fail_open(kind: str, check: Callable[[], bool]) -> bool:
    """Run a staleness check; any error counts as stale."""
    try:
        return bool(check())
    except Exception as exc:
        logger.warning("Staleness check for %s failed, treating as stale: %s", kind, exc)
        return True


def _newer_activity_exists(store: ActivityStore, tracked_id) -> bool:
    latest = store.latest_running_activity_id()
    if latest is None:
        return False
    return latest > int(tracked_id or 0)


def best_efforts_stale(store: ActivityStore, kind: str, catalog: TargetCatalog) -> bool:
    tracking = load_tracking(store.conn, kind)
    if tracking is None:
        return True
    if tracking.catalog != catalog.signature:
        logger.info("Best effort catalog changed (%s -> %s)", tracking.catalog, catalog.signature)
        return True
    allowed = set(catalog.distances)
    if any(d not in allowed for d in store.best_effort_distances()):
        return True
    return _newer_activity_exists(store, tracking.last_activity_id)


def id_tracked_stale(store: ActivityStore, kind: str) -> bool:
    tracking = load_tracking(store.conn, kind)
    if tracking is None:
        return True
    return _newer_activity_exists(store, tracking.last_activity_id)


def freshness_stale(store: ActivityStore, table: str, now: datetime) -> bool:
    """Stale when the table is empty or its newest stamp is older than the freshness window."""
    last_ms = store.max_last_computed(table)
    if last_ms is None:
        return True
    age_sec = now.timestamp() - (last_ms / 1000.0)
    return age_sec > config.FRESHNESS_SECONDS


def month_rolled_over(store: ActivityStore, table: str, now: datetime) -> bool:
    last_ms = store.max_last_computed(table)
    if last_ms is None:
        return True
    tz = local_tz()
    computed = datetime.fromtimestamp(last_ms / 1000.0, tz=tz)
    current = now.astimezone(tz)
    return (computed.year, computed.month) != (current.year, current.month)
