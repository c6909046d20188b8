# src/db/models.py
"""ORM tables of the ledger: trades, the lots they open, lot consumptions and cost-basis adjustments."""

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import Boolean, CheckConstraint, Date, DateTime, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from src.core.models.group import GroupKey
from src.db.database import Base

MONEY = Numeric(24, 6)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TransactionRecord(Base):
    """A stored BUY/SELL trade. The primary key doubles as the same-day tie-break."""

    __tablename__ = "transactions"
    __table_args__ = (
        Index("idx_transactions_group_date", "owner_id", "account_id", "ticker", "transaction_date"),
        CheckConstraint("quantity > 0", name="ck_transaction_quantity_positive"),
        CheckConstraint("transaction_type IN ('BUY', 'SELL')", name="ck_transaction_type"),
    )

    transaction_id: Mapped[int] = mapped_column("id", Integer, primary_key=True, autoincrement=True)
    owner_id: Mapped[str] = mapped_column(String(64))
    account_id: Mapped[str] = mapped_column(String(64))
    ticker: Mapped[str] = mapped_column(String(16))
    transaction_type: Mapped[str] = mapped_column(String(4))
    transaction_date: Mapped[date] = mapped_column(Date)
    quantity: Mapped[int] = mapped_column(Integer)
    price: Mapped[Decimal] = mapped_column(MONEY)
    fee: Mapped[Decimal] = mapped_column(MONEY, default=Decimal("0"))
    tax_rate: Mapped[Decimal] = mapped_column(Numeric(9, 6), default=Decimal("0"))
    calculated_pl: Mapped[Optional[Decimal]] = mapped_column(MONEY, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow)

    @property
    def group_key(self) -> GroupKey:
        return GroupKey(self.owner_id, self.account_id, self.ticker)

    def __repr__(self) -> str:
        return f"<TransactionRecord(id={self.transaction_id}, {self.transaction_type} {self.quantity} {self.ticker} @ {self.price}, date={self.transaction_date})>"


class PurchaseLotRecord(Base):
    """Shares acquired by one BUY, tracked until fully sold."""

    __tablename__ = "purchase_lots"
    __table_args__ = (
        Index("idx_lots_group_fifo", "owner_id", "account_id", "ticker", "purchase_date", "source_transaction_id"),
        CheckConstraint("quantity > 0", name="ck_lot_quantity_positive"),
        CheckConstraint("remaining_quantity >= 0", name="ck_lot_remaining_non_negative"),
        CheckConstraint("remaining_quantity <= quantity", name="ck_lot_remaining_le_quantity"),
    )

    lot_id: Mapped[int] = mapped_column("id", Integer, primary_key=True, autoincrement=True)
    owner_id: Mapped[str] = mapped_column(String(64))
    account_id: Mapped[str] = mapped_column(String(64))
    ticker: Mapped[str] = mapped_column(String(16))
    purchase_date: Mapped[date] = mapped_column(Date)
    source_transaction_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("transactions.id", ondelete="CASCADE"), nullable=True
    )
    quantity: Mapped[int] = mapped_column(Integer)
    price_per_share: Mapped[Decimal] = mapped_column(MONEY)
    buy_fee: Mapped[Decimal] = mapped_column(MONEY, default=Decimal("0"))
    total_cost: Mapped[Decimal] = mapped_column(MONEY)
    remaining_quantity: Mapped[int] = mapped_column(Integer)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow)

    @property
    def cost_per_share(self) -> Decimal:
        return self.total_cost / self.quantity

    @property
    def remaining_cost(self) -> Decimal:
        return self.total_cost * self.remaining_quantity / self.quantity

    @property
    def group_key(self) -> GroupKey:
        return GroupKey(self.owner_id, self.account_id, self.ticker)

    def __repr__(self) -> str:
        return f"<PurchaseLotRecord(id={self.lot_id}, ticker={self.ticker}, qty={self.quantity}, remaining={self.remaining_quantity}, total_cost={self.total_cost})>"


class LotConsumptionRecord(Base):
    """
    Shares one SELL took from one lot. Regenerated together with the lots on rebuild.
    """

    __tablename__ = "lot_consumptions"
    __table_args__ = (
        Index("idx_consumptions_group", "owner_id", "account_id", "ticker"),
        CheckConstraint("quantity > 0", name="ck_consumption_quantity_positive"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    sell_transaction_id: Mapped[int] = mapped_column(ForeignKey("transactions.id", ondelete="CASCADE"), index=True)
    lot_id: Mapped[int] = mapped_column(ForeignKey("purchase_lots.id", ondelete="CASCADE"), index=True)
    owner_id: Mapped[str] = mapped_column(String(64))
    account_id: Mapped[str] = mapped_column(String(64))
    ticker: Mapped[str] = mapped_column(String(16))
    quantity: Mapped[int] = mapped_column(Integer)
    cost_per_share: Mapped[Decimal] = mapped_column(MONEY)
    cost: Mapped[Decimal] = mapped_column(MONEY)


class CostBasisAdjustmentRecord(Base):
    """Cash dividend, stock dividend or split affecting a group's displayed cost basis."""

    __tablename__ = "cost_basis_adjustments"
    __table_args__ = (
        Index("idx_adjustments_group_date", "owner_id", "account_id", "ticker", "event_date"),
    )

    adjustment_id: Mapped[int] = mapped_column("id", Integer, primary_key=True, autoincrement=True)
    owner_id: Mapped[str] = mapped_column(String(64))
    account_id: Mapped[str] = mapped_column(String(64))
    ticker: Mapped[str] = mapped_column(String(16))
    adjustment_type: Mapped[str] = mapped_column(String(20))
    event_date: Mapped[date] = mapped_column(Date)
    dividend_per_share: Mapped[Decimal] = mapped_column(MONEY, default=Decimal("0"))
    split_ratio: Mapped[Decimal] = mapped_column(Numeric(12, 6), default=Decimal("1"))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow)
