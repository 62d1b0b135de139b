"""Recompute derived analytics tables from the command line.

Without flags only stale kinds are recomputed. `--kind` restricts the run to
one kind, `--force` ignores staleness and `--all` is shorthand for every kind.
"""
import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from packages.error_reporting import init_error_reporting
from packages.logging_utils import setup_logging
from services.analytics.engine import AnalyticsEngine
from services.analytics.models import ALL_KINDS

logger = logging.getLogger("runstats.cli")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Recompute running analytics")
    parser.add_argument("--kind", choices=ALL_KINDS, help="Only this computation kind")
    parser.add_argument("--force", action="store_true", help="Recompute even when fresh")
    parser.add_argument("--all", action="store_true", help="Consider every kind (default)")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    setup_logging()
    init_error_reporting("analytics-cli")
    engine = AnalyticsEngine()

    if args.kind and not args.all:
        if not args.force and not engine.is_stale(args.kind):
            print(f"{args.kind}: fresh, nothing to do")
            return 0
        results = {args.kind: engine.compute(args.kind)}
    else:
        results = engine.refresh(force=args.force)

    logger.info("Analytics run finished: %s", results)
    if not results:
        print("All analytics fresh, nothing to do")
    for kind, rows in results.items():
        print(f"{kind}: {rows} rows")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
