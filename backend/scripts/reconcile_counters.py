#!/usr/bin/env python
"""Recompute derived counters by full scan and report drift.

Checks user.upload_count, user.banned_file_count, file.like_count and
tag.usage_count against the rows they are derived from. Without --repair the
script only reports; with --repair it overwrites drifted values in one
transaction.

Usage:
    python backend/scripts/reconcile_counters.py [--repair] [--json]

Exit status is 0 when no drift was found (or it was repaired), 2 when drift
was found and left in place.
"""

import argparse
import json
import logging
import sys
from pathlib import Path

# Add backend/src to Python path
backend_src = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(backend_src))

from config import settings
from database import SessionLocal, UnitOfWork
from domain.moderation.errors import StorageError
from observability.logging_config import configure_logging


def main():
    parser = argparse.ArgumentParser(
        description='Reconcile DocShare derived counters',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )
    parser.add_argument(
        '--repair',
        action='store_true',
        help='Overwrite drifted counters with recomputed values'
    )
    parser.add_argument(
        '--json',
        action='store_true',
        help='Print drifts as a JSON array instead of a table'
    )
    args = parser.parse_args()

    configure_logging(level=settings.LOG_LEVEL, json_format=settings.LOG_JSON)
    logger = logging.getLogger("reconcile_counters")

    session = SessionLocal()
    try:
        with UnitOfWork(session) as uow:
            drifts = uow.counters.reconcile(repair=args.repair)
    except StorageError as e:
        print(f"ERROR: {e.message}", file=sys.stderr)
        sys.exit(1)
    finally:
        session.close()

    if args.json:
        print(json.dumps([drift.to_dict() for drift in drifts], indent=2))
    elif not drifts:
        print("All counters consistent")
    else:
        print(f"{'counter':<26} {'entity':>8} {'cached':>8} {'actual':>8}")
        for drift in drifts:
            print(f"{drift.counter.value:<26} {drift.entity_id:>8} {drift.cached:>8} {drift.actual:>8}")

    logger.info(f"Reconciliation finished: {len(drifts)} drifts, repair={args.repair}")
    if drifts and not args.repair:
        sys.exit(2)


if __name__ == "__main__":
    main()
