# src/core/models/response.py

from datetime import date
from decimal import Decimal
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field

from src.core.enums.transaction_type import TransactionType
from src.core.models.transaction import Transaction


class LedgerWarning(BaseModel):
    """
    A SELL that could only be partially matched against open lots.
    """
    transaction_id: Optional[int] = None
    owner_id: str
    account_id: str
    ticker: str
    requested_quantity: int
    matched_quantity: int
    unmatched_quantity: int
    message: str


class LotConsumption(BaseModel):
    """Shares taken from one lot by one SELL."""
    lot_id: int
    quantity: int
    cost_per_share: Decimal
    cost: Decimal


class TransactionResult(BaseModel):
    """
    Outcome of replaying one transaction against its group's lots.
    """
    transaction_id: Optional[int] = None
    transaction_type: TransactionType
    calculated_pl: Decimal = Field(..., description="0 for BUYs, net proceeds minus COGS for SELLs")
    lot_id: Optional[int] = Field(None, description="Lot created by a BUY")
    cogs: Decimal = Decimal(0)
    gross_proceeds: Decimal = Decimal(0)
    selling_tax: Decimal = Decimal(0)
    net_proceeds: Decimal = Decimal(0)
    matched_quantity: int = 0
    unmatched_quantity: int = 0
    consumptions: List[LotConsumption] = Field(default_factory=list)
    warning: Optional[LedgerWarning] = None


class RecordedTransactionResponse(BaseModel):
    """Response of the transaction entry API."""
    transaction: Transaction
    result: TransactionResult
    rebuilt_group: bool = Field(False, description="True when the entry was backdated and the whole group was replayed")


class PurchaseLotView(BaseModel):
    lot_id: int
    owner_id: str
    account_id: str
    ticker: str
    purchase_date: date
    source_transaction_id: Optional[int] = None
    quantity: int
    price_per_share: Decimal
    buy_fee: Decimal
    total_cost: Decimal
    remaining_quantity: int
    cost_per_share: Decimal

    model_config = ConfigDict(from_attributes=True)


class PositionSummary(BaseModel):
    """
    Current holding of one group: open quantity and weighted-average cost per share.
    """
    owner_id: str
    account_id: str
    ticker: str
    total_quantity: int = 0
    total_cost: Decimal = Decimal(0)
    average_cost: Decimal = Decimal(0)
    open_lots: List[PurchaseLotView] = Field(default_factory=list)
    applied_adjustments: int = Field(0, description="Number of cost-basis adjustments reflected in the figures")


class RealizedPLSummary(BaseModel):
    """
    Statistics over the stored realized P&L of an owner's SELLs.
    """
    owner_id: str
    account_id: Optional[str] = None
    ticker: Optional[str] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    total_sells: int = 0
    profitable_sells: int = 0
    unprofitable_sells: int = 0
    break_even_sells: int = 0
    gross_profit: Decimal = Field(Decimal(0), description="Sum of the positive P&Ls")
    gross_loss: Decimal = Field(Decimal(0), description="Sum of the negative P&Ls (zero or below)")
    total_pl: Decimal = Decimal(0)
    average_pl: Decimal = Field(Decimal(0), description="total_pl per SELL")
    success_rate: Decimal = Field(Decimal(0), description="Profitable SELLs in percent of all SELLs, two decimals")


class GroupFailure(BaseModel):
    owner_id: str
    account_id: str
    ticker: str
    error_reason: str


class RebuildReport(BaseModel):
    """
    Counts reported by a ledger rebuild.
    """
    groups_processed: int = 0
    groups_failed: int = 0
    lots_created: int = 0
    transactions_recalculated: int = Field(0, description="SELL transactions whose P&L was recomputed")
    buy_transactions: int = 0
    warnings: List[LedgerWarning] = Field(default_factory=list)
    failures: List[GroupFailure] = Field(default_factory=list)

    def record_failure(self, group, error_reason: str) -> None:
        self.groups_failed += 1
        self.failures.append(GroupFailure(
            owner_id=group.owner_id,
            account_id=group.account_id,
            ticker=group.ticker,
            error_reason=error_reason,
        ))

    def merge(self, other: "RebuildReport") -> None:
        self.groups_processed += other.groups_processed
        self.groups_failed += other.groups_failed
        self.lots_created += other.lots_created
        self.transactions_recalculated += other.transactions_recalculated
        self.buy_transactions += other.buy_transactions
        self.warnings.extend(other.warnings)
        self.failures.extend(other.failures)
