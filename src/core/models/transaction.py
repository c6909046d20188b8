# src/core/models/transaction.py

from datetime import date
from typing import Optional
from pydantic import BaseModel, Field, condecimal, conint, ConfigDict, field_validator
from decimal import Decimal

from src.core.enums.transaction_type import TransactionType
from src.core.models.group import GroupKey


class TransactionCreate(BaseModel):
    """
    A trade as entered by the user, before it has been stored.
    """
    owner_id: str = Field(..., min_length=1, description="Identifier of the user owning the trade")
    account_id: str = Field(..., min_length=1, description="Identifier of the stock account")
    ticker: str = Field(..., min_length=1, description="Instrument ticker, normalized to upper case")
    transaction_type: TransactionType = Field(..., description="BUY or SELL")
    transaction_date: date = Field(..., description="Trade date (ISO format), the chronological ordering key")
    quantity: conint(gt=0) = Field(..., description="Number of shares traded")
    price: condecimal(ge=0, max_digits=24, decimal_places=6) = Field(..., description="Price per share")
    fee: condecimal(ge=0, max_digits=24, decimal_places=6) = Field(default=Decimal(0), description="Absolute fee charged for the trade")
    tax_rate: condecimal(ge=0, le=100, decimal_places=6) = Field(default=Decimal(0), description="Selling tax in percent, applied to SELLs only")
    notes: Optional[str] = Field(None, description="Free-form trade rationale")

    model_config = ConfigDict(
        populate_by_name=True,
        from_attributes=True
    )

    @field_validator("ticker")
    @classmethod
    def normalize_ticker(cls, value: str) -> str:
        return value.strip().upper()

    @property
    def group_key(self) -> GroupKey:
        return GroupKey(self.owner_id, self.account_id, self.ticker)

    @property
    def gross_amount(self) -> Decimal:
        """price x quantity, before fees and taxes."""
        return Decimal(str(self.price)) * self.quantity


class Transaction(TransactionCreate):
    """
    A stored trade. transaction_id is the storage sequence and breaks ties
    between trades on the same date.
    """
    transaction_id: int = Field(..., description="Storage sequence of the transaction")

    # --- Computed / Enriched Fields
    calculated_pl: Optional[condecimal()] = Field(None, description="Realized P&L; 0 for BUYs, net proceeds minus COGS for SELLs")
