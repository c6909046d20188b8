"""
Rebuild purchase lots and realized P&L from the stored transaction history.

Deletes every lot in scope and replays the transactions in chronological
order. Use it after importing history or changing the calculation rules.

Usage:
    python -m src.scripts.rebuild_ledger --yes
    python -m src.scripts.rebuild_ledger --owner user-1 --account acc-1 --ticker FPT --yes
"""

import argparse
import logging
import sys
from decimal import getcontext
from typing import List, Optional

from src.core.config.settings import settings
from src.core.models.group import GroupKey
from src.core.models.response import RebuildReport
from src.db.database import Database
from src.services.ledger_service import LedgerService

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description='Rebuild purchase lots and realized P&L from transaction history')
    ap.add_argument('--owner', type=str, default=None, help='Owner id (requires --account and --ticker)')
    ap.add_argument('--account', type=str, default=None, help='Account id')
    ap.add_argument('--ticker', type=str, default=None, help='Ticker')
    ap.add_argument('--workers', type=int, default=settings.REBUILD_MAX_WORKERS, help='Groups rebuilt in parallel')
    ap.add_argument('--database-url', type=str, default=settings.DATABASE_URL)
    ap.add_argument('--yes', action='store_true', help='Confirm deletion of the lots in scope')
    return ap


def parse_scope(args: argparse.Namespace) -> Optional[GroupKey]:
    given = [args.owner, args.account, args.ticker]
    if all(v is None for v in given):
        return None
    if any(v is None for v in given):
        raise ValueError('--owner, --account and --ticker must be given together')
    return GroupKey.of(args.owner, args.account, args.ticker)


def print_report(report: RebuildReport) -> None:
    print('Rebuild summary')
    print(f'  Groups processed:          {report.groups_processed}')
    print(f'  Groups failed:             {report.groups_failed}')
    print(f'  Lots created:              {report.lots_created}')
    print(f'  BUY transactions:          {report.buy_transactions}')
    print(f'  SELL transactions updated: {report.transactions_recalculated}')
    print(f'  Warnings:                  {len(report.warnings)}')
    for warning in report.warnings:
        print(f'    - #{warning.transaction_id}: {warning.message}')
    for failure in report.failures:
        print(f'  FAILED {failure.owner_id}/{failure.account_id}/{failure.ticker}: {failure.error_reason}')


def run(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        scope = parse_scope(args)
    except ValueError as e:
        print(f'Error: {e}', file=sys.stderr)
        return 2

    if not args.yes:
        print(f'This deletes and regenerates all purchase lots in scope ({scope or "ALL"}). Re-run with --yes to proceed.')
        return 1

    logger.info(f"Rebuild requested (scope: {scope or 'ALL'}, workers: {args.workers}).")
    database = Database(args.database_url, echo=settings.DATABASE_ECHO)
    try:
        database.create_all()
        service = LedgerService.from_settings(database, settings.model_copy(update={'REBUILD_MAX_WORKERS': args.workers}))
        report = service.rebuild(scope)
    finally:
        database.dispose()

    print_report(report)
    return 0 if report.groups_failed == 0 else 3


def main() -> None:
    logging.basicConfig(level=settings.LOG_LEVEL, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    getcontext().prec = settings.DECIMAL_PRECISION
    sys.exit(run())


if __name__ == '__main__':
    main()
