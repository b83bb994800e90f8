#!/usr/bin/env python3
"""Export the SQLite ledger to CSV, flat or grouped by month."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Optional

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from ledger_analytics import config, projections
from ledger_analytics.errors import StoreError
from ledger_analytics.logging_setup import configure_logging, get_logger
from ledger_analytics.session import LedgerSession
from ledger_analytics.store import SQLiteLedgerStore

logger = get_logger("ledger_analytics.scripts.export_ledger")


def main(
    output: Path,
    db_path: Optional[Path] = None,
    grouped: bool = False,
    purpose: str = '',
    txn_type: str = '',
    search: str = '',
    tz: Optional[str] = None,
) -> int:
    session = LedgerSession(SQLiteLedgerStore(db_path, tz=tz), tz=tz)
    try:
        session.refresh()
    except StoreError as exc:
        logger.error("Could not read ledger: %s", exc)
        return 1

    if grouped:
        rows = session.export_grouped()
    else:
        session.set_filter('purpose', purpose)
        session.set_filter('type', txn_type)
        session.set_filter('search_query', search)
        rows = session.export_rows()

    target = projections.write_export_csv(rows, output)
    logger.info("Wrote %d rows to %s", len(rows), target)
    return 0


if __name__ == '__main__':
    parser = argparse.ArgumentParser(description='Export ledger transactions to CSV.')
    parser.add_argument(
        'output',
        type=Path,
        nargs='?',
        default=config.EXPORTS_DIR / 'ledger_export.csv',
        help='Destination CSV file (default: data/exports/ledger_export.csv)',
    )
    parser.add_argument('--db', type=Path, default=None, help=f'Ledger database (default {config.get_db_path()})')
    parser.add_argument('--grouped', action='store_true', help='Insert a month header before each month')
    parser.add_argument('--purpose', default='', help='Only export this purpose (flat export)')
    parser.add_argument('--type', dest='txn_type', default='', choices=['', 'income', 'expense'])
    parser.add_argument('--search', default='', help='Case-insensitive description filter (flat export)')
    parser.add_argument('--tz', default=None, help='Timezone for month boundaries')
    parser.add_argument('--log-level', default=None)
    args = parser.parse_args()
    configure_logging(args.log_level)
    config.ensure_data_directories()
    raise SystemExit(main(
        args.output,
        db_path=args.db,
        grouped=args.grouped,
        purpose=args.purpose,
        txn_type=args.txn_type,
        search=args.search,
        tz=args.tz,
    ))
