# src/services/transaction_processor.py

import logging
from concurrent.futures import ThreadPoolExecutor
from decimal import localcontext
from typing import Dict, Iterable, List, Optional

from src.core.enums.shortfall_policy import ShortfallPolicy
from src.core.enums.transaction_type import TransactionType
from src.core.models.group import GroupKey
from src.core.models.response import LedgerWarning, RebuildReport, TransactionResult
from src.core.models.transaction import Transaction
from src.logic.cost_calculator import CostCalculator
from src.logic.error_reporter import ErrorReporter
from src.logic.fifo_matcher import FIFOMatcher
from src.logic.lot_store import InMemoryLotStore, LotStore
from src.logic.sorter import TransactionSorter

logger = logging.getLogger(__name__)


class GroupReplayResult:
    """Everything one group's replay produced."""
    def __init__(self, group: GroupKey, lot_store: LotStore):
        self.group = group
        self.lot_store = lot_store
        self.results: List[TransactionResult] = []
        self.warnings: List[LedgerWarning] = []

    @property
    def lots_created(self) -> int:
        return sum(1 for r in self.results if r.transaction_type == TransactionType.BUY)

    @property
    def sells_recalculated(self) -> int:
        return sum(1 for r in self.results if r.transaction_type == TransactionType.SELL)

    def result_for(self, transaction_id: int) -> Optional[TransactionResult]:
        return next((r for r in self.results if r.transaction_id == transaction_id), None)

    def to_report(self) -> RebuildReport:
        return RebuildReport(
            groups_processed=1,
            lots_created=self.lots_created,
            buy_transactions=self.lots_created,
            transactions_recalculated=self.sells_recalculated,
            warnings=list(self.warnings),
        )


class LedgerReplayResult:
    """Outcome of replaying many independent groups."""
    def __init__(self):
        self.groups: Dict[GroupKey, GroupReplayResult] = {}
        self.report = RebuildReport()


class TransactionProcessor:
    """
    Replays chronological transaction histories into lots and realized P&L.
    Each group is replayed strictly in order; groups are independent of each other.
    """
    def __init__(
        self,
        sorter: TransactionSorter,
        matcher: FIFOMatcher,
        shortfall_policy: ShortfallPolicy = ShortfallPolicy.WARN,
        decimal_precision: int = 28,
    ):
        # Dependency Injection: core logic components are injected
        self._sorter = sorter
        self._matcher = matcher
        self._shortfall_policy = shortfall_policy
        self._decimal_precision = decimal_precision

    def new_cost_calculator(self, error_reporter: Optional[ErrorReporter] = None) -> CostCalculator:
        return CostCalculator(
            matcher=self._matcher,
            error_reporter=error_reporter or ErrorReporter(),
            shortfall_policy=self._shortfall_policy,
        )

    def process_transaction(self, transaction: Transaction, lot_store: LotStore) -> TransactionResult:
        """
        Applies one transaction at the tail of its group (normal entry).
        """
        with localcontext() as ctx:
            ctx.prec = self._decimal_precision
            return self.new_cost_calculator().calculate_transaction_costs(transaction, lot_store)

    def replay_group(self, transactions: Iterable[Transaction], lot_store: LotStore) -> GroupReplayResult:
        """
        Replays the full history of one group against lot_store, which must not
        already hold lots for that group. Every transaction is processed exactly
        once, in (transaction_date, transaction_id) order, and gets its
        calculated_pl set in place.

        InvariantViolation, PersistenceFailure and InsufficientLotsError stop the
        replay at the offending transaction; later transactions are not processed.
        """
        ordered = self._sorter.sort_transactions(transactions)
        if not ordered:
            raise ValueError("Cannot replay an empty transaction history.")
        group = ordered[0].group_key
        foreign = [txn.transaction_id for txn in ordered if txn.group_key != group]
        if foreign:
            raise ValueError(f"Transactions {foreign} do not belong to group '{group}'.")

        logger.info(f"Replaying {len(ordered)} transactions for group {group}.")
        error_reporter = ErrorReporter()
        cost_calculator = self.new_cost_calculator(error_reporter)
        replay = GroupReplayResult(group, lot_store)

        with localcontext() as ctx:
            ctx.prec = self._decimal_precision
            for transaction in ordered:
                replay.results.append(cost_calculator.calculate_transaction_costs(transaction, lot_store))

        replay.warnings = error_reporter.get_warnings()
        logger.info(f"Group {group}: {replay.lots_created} lots created, {replay.sells_recalculated} sells recalculated, {len(replay.warnings)} warnings.")
        return replay

    def replay_all(self, transactions: Iterable[Transaction], max_workers: int = 1) -> LedgerReplayResult:
        """
        Pure full rebuild: groups the history and replays every group into its
        own in-memory lot store, in parallel across groups. A failing group is
        reported and does not affect the others.
        """
        grouped = self._sorter.group_transactions(transactions)
        outcome = LedgerReplayResult()
        logger.info(f"Starting replay of {len(grouped)} groups with {max_workers} workers.")

        def _replay(group: GroupKey) -> GroupReplayResult:
            return self.replay_group(grouped[group], InMemoryLotStore())

        with ThreadPoolExecutor(max_workers=max(1, max_workers)) as pool:
            futures = {group: pool.submit(_replay, group) for group in grouped}
            for group, future in futures.items():
                try:
                    replay = future.result()
                except Exception as e:
                    logger.error(f"Replay failed for group {group}: {type(e).__name__}: {e}")
                    outcome.report.record_failure(group, f"{type(e).__name__}: {e}")
                    continue
                outcome.groups[group] = replay
                outcome.report.merge(replay.to_report())

        logger.info(f"Finished replay. Processed {outcome.report.groups_processed} groups, {outcome.report.groups_failed} failed.")
        return outcome
