# src/logic/cost_calculator.py

import logging
from typing import Protocol
from decimal import Decimal

from src.core.models.transaction import Transaction
from src.core.models.response import TransactionResult
from src.core.enums.transaction_type import TransactionType
from src.core.enums.shortfall_policy import ShortfallPolicy
from src.logic.fifo_matcher import FIFOMatcher
from src.logic.lot_store import LotStore
from src.logic.error_reporter import ErrorReporter
from src.logic.errors import InsufficientLotsError, InsufficientLotsWarning

logger = logging.getLogger(__name__)

# Precision set at process start from settings.DECIMAL_PRECISION

class TransactionCostStrategy(Protocol):
    """
    Protocol (interface) for per-type realized P&L strategies.
    """
    def calculate_costs(self, transaction: Transaction, lot_store: LotStore) -> TransactionResult:
        """
        Applies the transaction to its group's lots and returns the outcome.
        Sets transaction.calculated_pl in place.
        """
        ...


class BuyStrategy:
    """Strategy for BUY transactions: opens a new lot, P&L is always 0."""
    def calculate_costs(self, transaction: Transaction, lot_store: LotStore) -> TransactionResult:
        lot = lot_store.create_lot(
            owner_id=transaction.owner_id,
            account_id=transaction.account_id,
            ticker=transaction.ticker,
            purchase_date=transaction.transaction_date,
            quantity=transaction.quantity,
            price_per_share=Decimal(str(transaction.price)),
            buy_fee=Decimal(str(transaction.fee)),
            source_transaction_id=transaction.transaction_id,
        )
        transaction.calculated_pl = Decimal(0)
        logger.debug(f"BUY {transaction.transaction_id}: opened lot {lot.lot_id} ({transaction.quantity} @ {transaction.price}, fee {transaction.fee}).")
        return TransactionResult(
            transaction_id=transaction.transaction_id,
            transaction_type=TransactionType.BUY,
            calculated_pl=Decimal(0),
            lot_id=lot.lot_id,
        )


class SellStrategy:
    """Strategy for SELL transactions: FIFO matching and realized P&L net of fee and selling tax."""
    def __init__(
        self,
        matcher: FIFOMatcher,
        error_reporter: ErrorReporter,
        shortfall_policy: ShortfallPolicy = ShortfallPolicy.WARN,
    ):
        self._matcher = matcher
        self._error_reporter = error_reporter
        self._shortfall_policy = shortfall_policy

    def calculate_costs(self, transaction: Transaction, lot_store: LotStore) -> TransactionResult:
        """
        realized P&L = (gross - fee - gross * tax_rate / 100) - COGS.
        Unmatched shares contribute no COGS.
        """
        group = transaction.group_key
        open_lots = lot_store.list_open_lots(group)

        if self._shortfall_policy == ShortfallPolicy.REJECT:
            available = sum(lot.remaining_quantity for lot in open_lots)
            if available < transaction.quantity:
                # Checked before matching so no lot is touched.
                raise InsufficientLotsError(InsufficientLotsWarning(
                    group, transaction.quantity, available, transaction.transaction_id
                ))

        match = self._matcher.match(transaction.quantity, open_lots, lot_store)

        gross_proceeds = transaction.gross_amount
        selling_tax = gross_proceeds * Decimal(str(transaction.tax_rate)) / Decimal(100)
        net_proceeds = gross_proceeds - Decimal(str(transaction.fee)) - selling_tax
        realized_pl = net_proceeds - match.total_cogs

        warning = None
        if match.has_shortfall:
            warning = self._error_reporter.add_warning(InsufficientLotsWarning(
                group, transaction.quantity, match.matched_quantity, transaction.transaction_id
            ))

        transaction.calculated_pl = realized_pl
        logger.debug(f"SELL {transaction.transaction_id}: gross={gross_proceeds}, tax={selling_tax}, net={net_proceeds}, COGS={match.total_cogs}, P&L={realized_pl}.")
        return TransactionResult(
            transaction_id=transaction.transaction_id,
            transaction_type=TransactionType.SELL,
            calculated_pl=realized_pl,
            cogs=match.total_cogs,
            gross_proceeds=gross_proceeds,
            selling_tax=selling_tax,
            net_proceeds=net_proceeds,
            matched_quantity=match.matched_quantity,
            unmatched_quantity=match.unmatched_quantity,
            consumptions=match.consumptions,
            warning=warning,
        )


class CostCalculator:
    """
    Applies the appropriate strategy based on transaction type.
    """

    def __init__(
        self,
        matcher: FIFOMatcher,
        error_reporter: ErrorReporter,
        shortfall_policy: ShortfallPolicy = ShortfallPolicy.WARN,
    ):
        self._strategies: dict[TransactionType, TransactionCostStrategy] = {
            TransactionType.BUY: BuyStrategy(),
            TransactionType.SELL: SellStrategy(matcher, error_reporter, shortfall_policy),
        }

    def calculate_transaction_costs(self, transaction: Transaction, lot_store: LotStore) -> TransactionResult:
        """
        Delegates to the strategy registered for the transaction's type.
        """
        strategy = self._strategies[transaction.transaction_type]
        return strategy.calculate_costs(transaction, lot_store)
