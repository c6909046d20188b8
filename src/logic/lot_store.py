# src/logic/lot_store.py
import logging
from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional, Protocol

from src.core.models.group import GroupKey
from src.logic.cost_objects import PurchaseLot
from src.logic.errors import InvariantViolation

logger = logging.getLogger(__name__)

# --- Lot Store Protocol ---

class LotStore(Protocol):
    """
    Persisted collection of purchase lots.
    Lots returned by list_open_lots are live: decrement_lot mutates the same
    objects, so callers always see the current remaining quantity.
    """
    def create_lot(
        self,
        owner_id: str,
        account_id: str,
        ticker: str,
        purchase_date: date,
        quantity: int,
        price_per_share: Decimal,
        buy_fee: Decimal,
        source_transaction_id: Optional[int] = None,
    ) -> PurchaseLot:
        ...

    def list_open_lots(self, group: GroupKey) -> List[PurchaseLot]:
        ...

    def list_lots(self, group: GroupKey) -> List[PurchaseLot]:
        ...

    def decrement_lot(self, lot_id: int, amount: int) -> int:
        ...

    def delete_all_lots(self, group: Optional[GroupKey] = None) -> int:
        ...


def check_decrement(lot_id: int, remaining_quantity: int, amount: int) -> None:
    """Raises InvariantViolation unless 0 < amount <= remaining_quantity."""
    if amount <= 0:
        raise InvariantViolation(f"Decrement of lot {lot_id} must be positive, got {amount}.")
    if amount > remaining_quantity:
        raise InvariantViolation(
            f"Cannot decrement lot {lot_id} by {amount}: only {remaining_quantity} remaining."
        )

# --- In-Memory Implementation ---

class InMemoryLotStore:
    """
    Keeps lots in process memory, one list per group.
    Used for pure replays (no database) and in tests.
    """
    def __init__(self):
        self._lots: Dict[GroupKey, List[PurchaseLot]] = defaultdict(list)
        self._by_id: Dict[int, PurchaseLot] = {}
        self._next_id = 1
        logger.debug("InMemoryLotStore initialized.")

    def create_lot(
        self,
        owner_id: str,
        account_id: str,
        ticker: str,
        purchase_date: date,
        quantity: int,
        price_per_share: Decimal,
        buy_fee: Decimal,
        source_transaction_id: Optional[int] = None,
    ) -> PurchaseLot:
        lot = PurchaseLot(
            lot_id=self._next_id,
            owner_id=owner_id,
            account_id=account_id,
            ticker=ticker,
            purchase_date=purchase_date,
            quantity=quantity,
            price_per_share=price_per_share,
            buy_fee=buy_fee,
            source_transaction_id=source_transaction_id,
        )
        self._next_id += 1
        self._lots[lot.group_key].append(lot)
        self._by_id[lot.lot_id] = lot
        logger.debug(f"InMemoryLotStore: Created {lot!r} for {lot.group_key}.")
        return lot

    def list_lots(self, group: GroupKey) -> List[PurchaseLot]:
        return sorted(self._lots.get(group, []), key=PurchaseLot.fifo_key)

    def list_open_lots(self, group: GroupKey) -> List[PurchaseLot]:
        return [lot for lot in self.list_lots(group) if lot.remaining_quantity > 0]

    def decrement_lot(self, lot_id: int, amount: int) -> int:
        lot = self._by_id.get(lot_id)
        if lot is None:
            raise InvariantViolation(f"Lot {lot_id} does not exist.")
        check_decrement(lot_id, lot.remaining_quantity, amount)
        lot.remaining_quantity -= amount
        return lot.remaining_quantity

    def delete_all_lots(self, group: Optional[GroupKey] = None) -> int:
        if group is None:
            deleted = len(self._by_id)
            self._lots.clear()
            self._by_id.clear()
        else:
            removed = self._lots.pop(group, [])
            for lot in removed:
                del self._by_id[lot.lot_id]
            deleted = len(removed)
        logger.debug(f"InMemoryLotStore: Deleted {deleted} lots (scope: {group or 'ALL'}).")
        return deleted

    def groups(self) -> List[GroupKey]:
        return [key for key, lots in self._lots.items() if lots]
