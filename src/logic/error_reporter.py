# src/logic/error_reporter.py

import logging

from src.core.models.response import LedgerWarning
from src.logic.errors import InsufficientLotsWarning

logger = logging.getLogger(__name__)

class ErrorReporter:
    """
    Manages the collection of shortfall warnings raised while replaying transactions.
    """
    def __init__(self):
        self._warnings: list[LedgerWarning] = []

    def add_warning(self, warning: InsufficientLotsWarning) -> LedgerWarning:
        """
        Records a shortfall warning and logs it for manual review.
        """
        record = LedgerWarning(
            transaction_id=warning.transaction_id,
            owner_id=warning.group.owner_id,
            account_id=warning.group.account_id,
            ticker=warning.group.ticker,
            requested_quantity=warning.requested_quantity,
            matched_quantity=warning.matched_quantity,
            unmatched_quantity=warning.unmatched_quantity,
            message=warning.message,
        )
        logger.warning(f"Transaction {warning.transaction_id}: {warning.message}")
        self._warnings.append(record)
        return record

    def get_warnings(self) -> list[LedgerWarning]:
        return list(self._warnings)

    def has_warnings(self) -> bool:
        return bool(self._warnings)
