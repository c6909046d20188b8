# src/core/models/request.py

import logging
from datetime import date
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict, condecimal, field_validator, model_validator

from src.core.enums.adjustment_type import AdjustmentType
from src.core.models.group import GroupKey

logger = logging.getLogger(__name__)


class RebuildRequest(BaseModel):
    """
    Scope of a ledger rebuild: either every group, or exactly one group
    when owner_id, account_id and ticker are all given.
    """
    owner_id: Optional[str] = None
    account_id: Optional[str] = None
    ticker: Optional[str] = None

    model_config = ConfigDict(
        json_schema_extra = {
            "example": {"owner_id": "user-1", "account_id": "acc-1", "ticker": "FPT"}
        },
        extra='ignore'
    )

    @model_validator(mode="after")
    def check_scope(self) -> "RebuildRequest":
        given = [v is not None for v in (self.owner_id, self.account_id, self.ticker)]
        if any(given) and not all(given):
            raise ValueError("owner_id, account_id and ticker must be given together or not at all")
        return self

    @property
    def scope(self) -> Optional[GroupKey]:
        if self.owner_id is None:
            return None
        return GroupKey.of(self.owner_id, self.account_id, self.ticker)


class CostBasisAdjustmentCreate(BaseModel):
    """
    A corporate action affecting one group's cost basis.
    CASH_DIVIDEND needs dividend_per_share; STOCK_DIVIDEND and STOCK_SPLIT need split_ratio.
    """
    owner_id: str = Field(..., min_length=1)
    account_id: str = Field(..., min_length=1)
    ticker: str = Field(..., min_length=1)
    adjustment_type: AdjustmentType
    event_date: date
    dividend_per_share: condecimal(ge=0, max_digits=24, decimal_places=6) = Decimal(0)
    split_ratio: condecimal(gt=0, max_digits=12, decimal_places=6) = Decimal(1)
    notes: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)

    @field_validator("ticker")
    @classmethod
    def normalize_ticker(cls, value: str) -> str:
        return value.strip().upper()

    @model_validator(mode="after")
    def check_amounts(self) -> "CostBasisAdjustmentCreate":
        if self.adjustment_type == AdjustmentType.CASH_DIVIDEND and self.dividend_per_share <= 0:
            raise ValueError("CASH_DIVIDEND requires a positive dividend_per_share")
        if self.adjustment_type.changes_quantity and self.split_ratio == 1:
            raise ValueError(f"{self.adjustment_type.value} requires a split_ratio other than 1")
        return self

    @property
    def group_key(self) -> GroupKey:
        return GroupKey(self.owner_id, self.account_id, self.ticker)


class CostBasisAdjustment(CostBasisAdjustmentCreate):
    adjustment_id: int
    is_active: bool = True
