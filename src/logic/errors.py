# src/logic/errors.py

from typing import Optional

from src.core.models.group import GroupKey


class LedgerError(Exception):
    """Base class for failures of a ledger operation."""


class InvariantViolation(LedgerError):
    """
    A lot mutation would break 0 <= remaining_quantity <= quantity.
    Fatal to the current operation: the enclosing atomic boundary must roll back.
    """


class PersistenceFailure(LedgerError):
    """Reading or writing lots/transactions through the persistence layer failed."""


class TransactionNotFound(LedgerError):
    def __init__(self, transaction_id: int):
        super().__init__(f"Transaction {transaction_id} not found.")
        self.transaction_id = transaction_id


class GroupBusyError(LedgerError):
    """Another operation holds the group for longer than the configured lock timeout."""
    def __init__(self, group: GroupKey, timeout: float):
        super().__init__(f"Group '{group}' is busy; could not acquire it within {timeout}s.")
        self.group = group
        self.timeout = timeout


class InsufficientLotsWarning(UserWarning):
    """
    A SELL asked for more shares than the open lots of its group hold.
    Non-fatal: the sell is matched as far as possible and the shortfall is reported.
    """
    def __init__(
        self,
        group: GroupKey,
        requested_quantity: int,
        matched_quantity: int,
        transaction_id: Optional[int] = None,
    ):
        self.group = group
        self.requested_quantity = requested_quantity
        self.matched_quantity = matched_quantity
        self.transaction_id = transaction_id
        super().__init__(self.message)

    @property
    def unmatched_quantity(self) -> int:
        return self.requested_quantity - self.matched_quantity

    @property
    def message(self) -> str:
        return (
            f"Sell quantity ({self.requested_quantity}) exceeds open lot quantity "
            f"({self.matched_quantity}) for ticker '{self.group.ticker}' in account "
            f"'{self.group.account_id}': {self.unmatched_quantity} unmatched."
        )


class InsufficientLotsError(LedgerError):
    """Raised instead of the warning when the shortfall policy is REJECT."""
    def __init__(self, warning: InsufficientLotsWarning):
        super().__init__(warning.message)
        self.warning = warning


class AdjustmentNotFound(LedgerError):
    def __init__(self, adjustment_id: int):
        super().__init__(f"Cost-basis adjustment {adjustment_id} not found.")
        self.adjustment_id = adjustment_id
