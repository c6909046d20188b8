# src/logic/average_cost_reporter.py

import logging
from decimal import Decimal
from typing import Dict, Iterable, List

from src.core.models.group import GroupKey
from src.core.models.response import PositionSummary, PurchaseLotView

logger = logging.getLogger(__name__)


class AverageCostReporter:
    """
    Derives the weighted-average cost per remaining share from live lots.
    Each lot contributes its original per-share cost (buy fee included)
    scaled by the fraction of the lot still held. Read-only.
    """

    def summarize(self, group: GroupKey, lots: Iterable) -> PositionSummary:
        open_lots = [lot for lot in lots if lot.remaining_quantity > 0]

        total_quantity = sum(lot.remaining_quantity for lot in open_lots)
        total_cost = sum(
            (lot.total_cost * lot.remaining_quantity / lot.quantity for lot in open_lots),
            Decimal(0),
        )
        average_cost = total_cost / total_quantity if total_quantity > 0 else Decimal(0)

        logger.debug(f"AverageCostReporter: {group}: qty={total_quantity}, cost={total_cost}, avg={average_cost}.")
        return PositionSummary(
            owner_id=group.owner_id,
            account_id=group.account_id,
            ticker=group.ticker,
            total_quantity=total_quantity,
            total_cost=total_cost,
            average_cost=average_cost,
            open_lots=[PurchaseLotView.model_validate(lot) for lot in open_lots],
        )

    def summarize_portfolio(self, lots: Iterable) -> List[PositionSummary]:
        """
        Summarizes every group that still has open lots, ordered by account then ticker.
        """
        by_group: Dict[GroupKey, list] = {}
        for lot in lots:
            if lot.remaining_quantity > 0:
                key = GroupKey(lot.owner_id, lot.account_id, lot.ticker)
                by_group.setdefault(key, []).append(lot)

        return [
            self.summarize(group, by_group[group])
            for group in sorted(by_group, key=lambda g: (g.owner_id, g.account_id, g.ticker))
        ]
