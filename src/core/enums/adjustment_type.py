# src/core/enums/adjustment_type.py

from enum import Enum

class AdjustmentType(str, Enum):
    """Corporate actions that change the cost basis of held lots."""
    CASH_DIVIDEND = "CASH_DIVIDEND"
    STOCK_DIVIDEND = "STOCK_DIVIDEND"
    STOCK_SPLIT = "STOCK_SPLIT"

    @property
    def changes_quantity(self) -> bool:
        return self in (AdjustmentType.STOCK_DIVIDEND, AdjustmentType.STOCK_SPLIT)
