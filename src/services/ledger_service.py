# src/services/ledger_service.py

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import date
from typing import List, Optional

from sqlalchemy.orm import Session

from src.core.config.settings import Settings
from src.core.models.group import GroupKey
from src.core.models.request import CostBasisAdjustment, CostBasisAdjustmentCreate
from src.core.models.response import (
    LotConsumption,
    PositionSummary,
    PurchaseLotView,
    RealizedPLSummary,
    RebuildReport,
    RecordedTransactionResponse,
    TransactionResult,
)
from src.core.models.transaction import Transaction, TransactionCreate
from src.db.database import Database
from src.db.models import TransactionRecord
from src.db.repositories import AdjustmentRepository, LotConsumptionRepository, TransactionRepository
from src.db.sql_lot_store import SqlLotStore
from src.logic.average_cost_reporter import AverageCostReporter
from src.logic.cost_basis_adjuster import CostBasisAdjuster
from src.logic.errors import AdjustmentNotFound, GroupBusyError, TransactionNotFound
from src.logic.fifo_matcher import FIFOMatcher
from src.logic.realized_pl_reporter import RealizedPLReporter
from src.logic.sorter import TransactionSorter
from src.services.group_locks import GroupLockRegistry
from src.services.transaction_processor import GroupReplayResult, TransactionProcessor

logger = logging.getLogger(__name__)

# Attempts at locking a trade's group while concurrent edits keep moving it.
_MOVED_RETRIES = 3


class LedgerService:
    """
    Entry, rebuild and reporting over the persisted ledger.

    Every lot-mutating operation holds the group's lock and runs inside one
    Database.transaction(), so lots, lot consumptions and calculated_pl commit
    together or not at all.
    """
    def __init__(
        self,
        database: Database,
        processor: TransactionProcessor,
        locks: GroupLockRegistry,
        max_workers: int = 1,
        reporter: Optional[AverageCostReporter] = None,
        adjuster: Optional[CostBasisAdjuster] = None,
    ):
        self._database = database
        self._processor = processor
        self._locks = locks
        self._max_workers = max(1, max_workers)
        self._reporter = reporter or AverageCostReporter()
        self._adjuster = adjuster or CostBasisAdjuster(self._reporter)
        self._realized_reporter = RealizedPLReporter()

    @classmethod
    def from_settings(cls, database: Database, settings: Settings, locks: Optional[GroupLockRegistry] = None) -> "LedgerService":
        processor = TransactionProcessor(
            sorter=TransactionSorter(),
            matcher=FIFOMatcher(),
            shortfall_policy=settings.SHORTFALL_POLICY,
            decimal_precision=settings.DECIMAL_PRECISION,
        )
        return cls(
            database=database,
            processor=processor,
            locks=locks or GroupLockRegistry(settings.GROUP_LOCK_TIMEOUT_SECONDS),
            max_workers=settings.REBUILD_MAX_WORKERS,
        )

    # --- Transaction entry ---

    def record_transaction(self, data: TransactionCreate) -> RecordedTransactionResponse:
        """
        Stores a trade and returns its realized P&L. A trade dated before an
        existing trade of its group replays the whole group instead of being
        applied at the tail.
        """
        group = data.group_key
        with self._locks.hold(group):
            with self._database.transaction() as session:
                transactions = TransactionRepository(session)
                backdated = transactions.has_later_than(group, data.transaction_date)
                record = transactions.add(data)

                if backdated:
                    logger.info(f"Transaction {record.transaction_id} is backdated to {data.transaction_date}; rebuilding group {group}.")
                    replay = self._rebuild_group(session, group)
                    result = replay.result_for(record.transaction_id)
                else:
                    result = self._apply_at_tail(session, record)
                transaction = _to_transaction(record)

        logger.info(f"Recorded {transaction.transaction_type.value} {transaction.transaction_id} for {group}: P&L {result.calculated_pl}.")
        return RecordedTransactionResponse(transaction=transaction, result=result, rebuilt_group=backdated)

    def update_transaction(self, transaction_id: int, data: TransactionCreate) -> Transaction:
        """Edits a trade and rebuilds its old and new groups."""
        for _ in range(_MOVED_RETRIES):
            old_group = self.get_transaction(transaction_id).group_key
            groups = sorted({old_group, data.group_key})

            with self._locks.hold_many(groups):
                with self._database.transaction() as session:
                    transactions = TransactionRepository(session)
                    record = transactions.get(transaction_id)
                    if record is None:
                        raise TransactionNotFound(transaction_id)
                    if record.group_key not in groups:
                        logger.info(f"Transaction {transaction_id} moved to {record.group_key} before {groups} were locked; retrying.")
                        continue
                    lot_store = SqlLotStore(session)
                    for group in groups:
                        lot_store.delete_all_lots(group)
                    transactions.update(record, data)
                    for group in groups:
                        self._rebuild_group(session, group)
                    transaction = _to_transaction(record)

            logger.info(f"Updated transaction {transaction_id}; rebuilt {len(groups)} group(s).")
            return transaction

        raise GroupBusyError(old_group, self._locks.timeout_seconds)

    def delete_transaction(self, transaction_id: int) -> None:
        """Removes a trade and rebuilds its group without it."""
        for _ in range(_MOVED_RETRIES):
            group = self.get_transaction(transaction_id).group_key

            with self._locks.hold(group):
                with self._database.transaction() as session:
                    transactions = TransactionRepository(session)
                    record = transactions.get(transaction_id)
                    if record is None:
                        raise TransactionNotFound(transaction_id)
                    if record.group_key != group:
                        logger.info(f"Transaction {transaction_id} moved to {record.group_key} before {group} was locked; retrying.")
                        continue
                    # Lots and consumptions refer to the trade; clear them before it goes.
                    SqlLotStore(session).delete_all_lots(group)
                    transactions.delete(record)
                    self._rebuild_group(session, group)

            logger.info(f"Deleted transaction {transaction_id}; rebuilt group {group}.")
            return

        raise GroupBusyError(group, self._locks.timeout_seconds)

    def get_transaction(self, transaction_id: int) -> Transaction:
        with self._database.transaction() as session:
            record = TransactionRepository(session).get(transaction_id)
            if record is None:
                raise TransactionNotFound(transaction_id)
            return _to_transaction(record)

    def list_transactions(
        self,
        owner_id: Optional[str] = None,
        account_id: Optional[str] = None,
        ticker: Optional[str] = None,
    ) -> List[Transaction]:
        with self._database.transaction() as session:
            records = TransactionRepository(session).list_filtered(owner_id, account_id, ticker)
            return [_to_transaction(record) for record in records]

    def get_consumptions(self, transaction_id: int) -> List[LotConsumption]:
        """The lots a SELL consumed, oldest first."""
        with self._database.transaction() as session:
            if TransactionRepository(session).get(transaction_id) is None:
                raise TransactionNotFound(transaction_id)
            return [
                LotConsumption(
                    lot_id=row.lot_id,
                    quantity=row.quantity,
                    cost_per_share=row.cost_per_share,
                    cost=row.cost,
                )
                for row in LotConsumptionRepository(session).list_for_sell(transaction_id)
            ]

    # --- Rebuild ---

    def rebuild(self, scope: Optional[GroupKey] = None) -> RebuildReport:
        """
        Deletes and regenerates lots, consumptions and calculated_pl for one group
        or for every group. Each group is rebuilt in its own atomic boundary; a
        failed group is rolled back, reported, and the others carry on.
        """
        if scope is not None:
            groups = [scope]
        else:
            with self._database.transaction() as session:
                groups = TransactionRepository(session).list_groups()
                orphans = set(SqlLotStore(session).list_lot_groups()) - set(groups)
            # Lots left over from groups whose trades are all gone.
            groups = groups + sorted(orphans)

        workers = self._max_workers if self._database.supports_parallel_writes else 1
        logger.info(f"Rebuilding {len(groups)} group(s) (scope: {scope or 'ALL'}) with {workers} worker(s).")

        report = RebuildReport()
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = {group: pool.submit(self._rebuild_locked, group) for group in groups}
            for group, future in futures.items():
                try:
                    replay = future.result()
                except Exception as e:
                    logger.error(f"Rebuild failed for group {group}, rolled back: {type(e).__name__}: {e}")
                    report.record_failure(group, f"{type(e).__name__}: {e}")
                    continue
                if replay is None:
                    report.groups_processed += 1
                else:
                    report.merge(replay.to_report())

        logger.info(
            f"Rebuild finished: {report.groups_processed} processed, {report.groups_failed} failed, "
            f"{report.lots_created} lots created, {report.transactions_recalculated} sells recalculated, "
            f"{len(report.warnings)} warnings."
        )
        return report

    def _rebuild_locked(self, group: GroupKey) -> Optional[GroupReplayResult]:
        with self._locks.hold(group):
            with self._database.transaction() as session:
                return self._rebuild_group(session, group)

    def _rebuild_group(self, session: Session, group: GroupKey) -> Optional[GroupReplayResult]:
        """
        Replays a group from scratch inside the caller's session. The caller holds
        the group's lock. Returns None when the group has no trades left.
        """
        lot_store = SqlLotStore(session)
        lot_store.delete_all_lots(group)

        transactions = TransactionRepository(session)
        records = transactions.list_group(group)
        if not records:
            return None

        by_id = {record.transaction_id: record for record in records}
        replay = self._processor.replay_group([_to_transaction(r) for r in records], lot_store)

        consumptions = LotConsumptionRepository(session)
        for result in replay.results:
            record = by_id[result.transaction_id]
            transactions.set_calculated_pl(record, result.calculated_pl)
            if result.consumptions:
                consumptions.add_many(record.transaction_id, group, result.consumptions)
        return replay

    def _apply_at_tail(self, session: Session, record: TransactionRecord) -> TransactionResult:
        result = self._processor.process_transaction(_to_transaction(record), SqlLotStore(session))
        TransactionRepository(session).set_calculated_pl(record, result.calculated_pl)
        if result.consumptions:
            LotConsumptionRepository(session).add_many(record.transaction_id, record.group_key, result.consumptions)
        return result

    # --- Reporting ---

    def get_position(
        self,
        group: GroupKey,
        include_adjustments: bool = False,
        as_of: Optional[date] = None,
    ) -> PositionSummary:
        with self._database.transaction() as session:
            lots = SqlLotStore(session).list_open_lots(group)
            if not include_adjustments:
                return self._reporter.summarize(group, lots)
            adjustments = [
                CostBasisAdjustment.model_validate(row)
                for row in AdjustmentRepository(session).list_group(group)
            ]
            return self._adjuster.adjusted_summary(group, lots, adjustments, as_of)

    def get_portfolio(self, owner_id: str, account_id: Optional[str] = None) -> List[PositionSummary]:
        with self._database.transaction() as session:
            lots = SqlLotStore(session).list_owner_lots(owner_id, account_id)
            return self._reporter.summarize_portfolio(lots)

    def list_lots(self, group: GroupKey, include_closed: bool = False) -> List[PurchaseLotView]:
        with self._database.transaction() as session:
            lot_store = SqlLotStore(session)
            lots = lot_store.list_lots(group) if include_closed else lot_store.list_open_lots(group)
            return [PurchaseLotView.model_validate(lot) for lot in lots]

    def get_realized_summary(
        self,
        owner_id: str,
        account_id: Optional[str] = None,
        ticker: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> RealizedPLSummary:
        """Profit statistics over the stored P&L of the owner's SELLs in the date range (inclusive)."""
        with self._database.transaction() as session:
            sells = TransactionRepository(session).list_sells(owner_id, account_id, ticker, date_from, date_to)
            return self._realized_reporter.summarize(owner_id, sells, account_id, ticker, date_from, date_to)

    # --- Cost-basis adjustments ---

    def add_adjustment(self, data: CostBasisAdjustmentCreate) -> CostBasisAdjustment:
        with self._database.transaction() as session:
            record = AdjustmentRepository(session).add(data)
            adjustment = CostBasisAdjustment.model_validate(record)
        logger.info(f"Added {adjustment.adjustment_type.value} adjustment {adjustment.adjustment_id} for {data.group_key} on {data.event_date}.")
        return adjustment

    def list_adjustments(self, group: GroupKey, include_inactive: bool = False) -> List[CostBasisAdjustment]:
        with self._database.transaction() as session:
            rows = AdjustmentRepository(session).list_group(group, active_only=not include_inactive)
            return [CostBasisAdjustment.model_validate(row) for row in rows]

    def deactivate_adjustment(self, adjustment_id: int) -> CostBasisAdjustment:
        with self._database.transaction() as session:
            record = AdjustmentRepository(session).get(adjustment_id)
            if record is None:
                raise AdjustmentNotFound(adjustment_id)
            record.is_active = False
            return CostBasisAdjustment.model_validate(record)


def _to_transaction(record: TransactionRecord) -> Transaction:
    return Transaction.model_validate(record)
