# src/logic/cost_basis_adjuster.py

import logging
from datetime import date
from decimal import Decimal
from typing import Iterable, List, Optional

from src.core.enums.adjustment_type import AdjustmentType
from src.core.models.group import GroupKey
from src.core.models.request import CostBasisAdjustment
from src.core.models.response import PositionSummary
from src.logic.average_cost_reporter import AverageCostReporter

logger = logging.getLogger(__name__)


class AdjustedLot:
    """
    A read-only view of a purchase lot after corporate actions.
    The underlying lot is never modified.
    """
    def __init__(self, lot, total_cost: Decimal, quantity: int, remaining_quantity: int, applied_adjustments: int):
        self.lot_id = lot.lot_id
        self.owner_id = lot.owner_id
        self.account_id = lot.account_id
        self.ticker = lot.ticker
        self.purchase_date = lot.purchase_date
        self.source_transaction_id = lot.source_transaction_id
        self.price_per_share = lot.price_per_share
        self.buy_fee = lot.buy_fee
        self.total_cost = total_cost
        self.quantity = quantity
        self.remaining_quantity = remaining_quantity
        self.applied_adjustments = applied_adjustments

    @property
    def cost_per_share(self) -> Decimal:
        if self.quantity <= 0:
            return Decimal(0)
        return self.total_cost / self.quantity


class CostBasisAdjuster:
    """
    Applies cash dividends, stock dividends and splits to lot cost basis for display.
    Realized P&L always uses the unadjusted lots.
    """
    def __init__(self, reporter: Optional[AverageCostReporter] = None):
        self._reporter = reporter or AverageCostReporter()

    def apply_to_lot(self, lot, adjustments: Iterable[CostBasisAdjustment]) -> AdjustedLot:
        """
        Only active adjustments dated on or after the purchase date apply, in event-date order.
        """
        effective = sorted(
            (adj for adj in adjustments if adj.is_active and adj.event_date >= lot.purchase_date),
            key=lambda adj: (adj.event_date, adj.adjustment_id),
        )

        total_cost = Decimal(lot.total_cost)
        quantity = lot.quantity
        remaining_quantity = lot.remaining_quantity

        for adjustment in effective:
            if adjustment.adjustment_type == AdjustmentType.CASH_DIVIDEND:
                total_cost -= Decimal(quantity) * Decimal(str(adjustment.dividend_per_share))
            elif adjustment.adjustment_type.changes_quantity:
                ratio = Decimal(str(adjustment.split_ratio))
                # Fractional shares are dropped.
                quantity = int(Decimal(quantity) * ratio)
                remaining_quantity = int(Decimal(remaining_quantity) * ratio)
            logger.debug(f"Adjuster: lot {lot.lot_id} after {adjustment.adjustment_type.value} on {adjustment.event_date}: qty={quantity}, remaining={remaining_quantity}, cost={total_cost}.")

        return AdjustedLot(lot, total_cost, quantity, remaining_quantity, len(effective))

    def adjusted_summary(
        self,
        group: GroupKey,
        lots: Iterable,
        adjustments: Iterable[CostBasisAdjustment],
        as_of: Optional[date] = None,
    ) -> PositionSummary:
        relevant: List[CostBasisAdjustment] = [
            adj for adj in adjustments
            if adj.group_key == group and (as_of is None or adj.event_date <= as_of)
        ]
        adjusted = [self.apply_to_lot(lot, relevant) for lot in lots if lot.remaining_quantity > 0]
        # A lot split down to zero shares has no cost per share left to report.
        adjusted = [lot for lot in adjusted if lot.quantity > 0]

        summary = self._reporter.summarize(group, adjusted)
        summary.applied_adjustments = len([adj for adj in relevant if adj.is_active])
        return summary
