# src/logic/cost_objects.py

from datetime import date
from decimal import Decimal
from typing import Optional

from src.core.models.group import GroupKey


class PurchaseLot:
    """
    Represents a single 'lot' of shares acquired through one BUY transaction.
    total_cost includes the buy fee and is fixed at creation; only
    remaining_quantity changes afterwards.
    """
    def __init__(
        self,
        lot_id: int,
        owner_id: str,
        account_id: str,
        ticker: str,
        purchase_date: date,
        quantity: int,
        price_per_share: Decimal,
        buy_fee: Decimal,
        source_transaction_id: Optional[int] = None,
    ):
        self.lot_id = lot_id
        self.owner_id = owner_id
        self.account_id = account_id
        self.ticker = ticker
        self.purchase_date = purchase_date
        self.source_transaction_id = source_transaction_id
        self.quantity = quantity
        self.price_per_share = price_per_share
        self.buy_fee = buy_fee
        self.total_cost = price_per_share * quantity + buy_fee
        self.remaining_quantity = quantity

    @property
    def cost_per_share(self) -> Decimal:
        """Average cost of the original lot including its buy fee."""
        return self.total_cost / self.quantity

    @property
    def remaining_cost(self) -> Decimal:
        return self.total_cost * self.remaining_quantity / self.quantity

    @property
    def group_key(self) -> GroupKey:
        return GroupKey(self.owner_id, self.account_id, self.ticker)

    @property
    def is_open(self) -> bool:
        return self.remaining_quantity > 0

    def fifo_key(self) -> tuple:
        """Explicit FIFO position: purchase date, then the source transaction sequence."""
        return (self.purchase_date, self.source_transaction_id or 0, self.lot_id)

    def __repr__(self) -> str:
        return (f"PurchaseLot(lot_id={self.lot_id}, ticker='{self.ticker}', "
                f"qty={self.quantity}, remaining_qty={self.remaining_quantity}, "
                f"cost_per_share={self.cost_per_share:.4f})")
