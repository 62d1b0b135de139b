"""Clear-then-insert of derived tables, one transaction per computation kind."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence

from packages.computation_lock import computation_lock
from packages.computation_state import save_tracking
from services.analytics.store import ActivityStore

logger = logging.getLogger("runstats.analytics.materializer")


@dataclass(frozen=True)
class Replacement:
    table: str
    columns: Sequence[str]
    rows: Sequence[Sequence]


class Materializer:
    def __init__(self, store: ActivityStore, store_key: str):
        self.store = store
        self.store_key = store_key

    @contextmanager
    def locked(self, kind: str) -> Iterator[bool]:
        with computation_lock(self.store_key, kind) as acquired:
            if not acquired:
                logger.warning("Computation lock busy for %s, skipping", kind)
            yield acquired

    def write(
        self,
        kind: str,
        replacements: List[Replacement],
        computed_at: int,
        last_activity_id: Optional[int] = None,
        catalog: Optional[str] = None,
    ) -> int:
        """Replace every listed table and the tracking marker atomically.

        Returns the number of rows inserted. On error the transaction is
        rolled back and the previous contents survive.
        """
        written = 0
        with self.store.conn.transaction() as conn:
            for item in replacements:
                written += self.store.replace_rows(item.table, item.columns, item.rows)
            save_tracking(conn, kind, computed_at, last_activity_id, catalog)
        logger.info("Materialized %s rows for %s", written, kind)
        return written
