# src/logic/fifo_matcher.py
import logging
from decimal import Decimal
from typing import List, NamedTuple, Sequence

from src.core.models.response import LotConsumption
from src.logic.cost_objects import PurchaseLot
from src.logic.lot_store import LotStore

logger = logging.getLogger(__name__)


class MatchResult(NamedTuple):
    total_cogs: Decimal
    matched_quantity: int
    unmatched_quantity: int
    consumptions: List[LotConsumption]

    @property
    def has_shortfall(self) -> bool:
        return self.unmatched_quantity > 0


class FIFOMatcher:
    """
    Implements First-In, First-Out lot matching for a sell.
    Cost per share is always the lot's original total_cost / quantity, so
    consuming a lot in several pieces keeps its unit economics.
    """

    def match(
        self, sell_quantity: int, open_lots: Sequence[PurchaseLot], lot_store: LotStore
    ) -> MatchResult:
        """
        Consumes sell_quantity from open_lots (oldest first) through lot_store.
        When the lots hold fewer shares than requested, everything available is
        consumed and the rest is reported as unmatched; no lot is fabricated.
        """
        if sell_quantity <= 0:
            raise ValueError(f"Sell quantity must be positive, got {sell_quantity}.")

        required_quantity = sell_quantity
        total_cogs = Decimal(0)
        consumptions: List[LotConsumption] = []

        available_qty = sum(lot.remaining_quantity for lot in open_lots)
        logger.debug(f"FIFO Sell: Consuming {required_quantity}. Available: {available_qty}. Open lots: {[lot.lot_id for lot in open_lots]}")

        for lot in open_lots:
            if required_quantity == 0:
                break
            if lot.remaining_quantity <= 0:
                continue

            consumed = min(lot.remaining_quantity, required_quantity)
            cost_per_share = lot.total_cost / lot.quantity
            cost_from_lot = cost_per_share * consumed

            # The store mutates the lot; a failure here aborts the whole match.
            lot_store.decrement_lot(lot.lot_id, consumed)

            total_cogs += cost_from_lot
            required_quantity -= consumed
            consumptions.append(LotConsumption(
                lot_id=lot.lot_id,
                quantity=consumed,
                cost_per_share=cost_per_share,
                cost=cost_from_lot,
            ))
            logger.debug(f"  FIFO Sell: Consumed {consumed} from lot {lot.lot_id} @ {cost_per_share:.4f}. Lot remaining: {lot.remaining_quantity}. Still needed: {required_quantity}.")

        matched_quantity = sell_quantity - required_quantity
        if required_quantity > 0:
            logger.debug(f"FIFO Sell: Insufficient open lots. Required: {sell_quantity}, Matched: {matched_quantity}, Unmatched: {required_quantity}.")

        logger.debug(f"FIFO Sell: Finished consuming. Total COGS: {total_cogs:.4f}, Matched quantity: {matched_quantity}.")
        return MatchResult(
            total_cogs=total_cogs,
            matched_quantity=matched_quantity,
            unmatched_quantity=required_quantity,
            consumptions=consumptions,
        )
