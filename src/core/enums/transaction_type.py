# src/core/enums/transaction_type.py

from enum import Enum

class TransactionType(str, Enum):
    """
    Defines the supported types of trade transactions.
    Inheriting from 'str' ensures that the enum values are strings,
    making them directly usable and comparable with string inputs.
    """
    BUY = "BUY"
    SELL = "SELL"
