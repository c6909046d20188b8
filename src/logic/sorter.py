# src/logic/sorter.py

from typing import Dict, Iterable, List
from src.core.models.group import GroupKey
from src.core.models.transaction import Transaction

class TransactionSorter:
    """
    Responsible for ordering and grouping transactions according to
    the ledger's replay rules.
    """

    def sort_transactions(self, transactions: Iterable[Transaction]) -> List[Transaction]:
        """
        Sorts transactions into replay order.

        Sorting Rules:
        1. Primary sort: transaction_date ascending.
        2. Secondary sort: transaction_id ascending (storage sequence), so trades
           entered on the same date replay in the order they were recorded.

        Args:
            transactions: Transaction objects in any order.

        Returns:
            A new, sorted list of the same Transaction objects.
        """
        return sorted(transactions, key=lambda txn: (txn.transaction_date, txn.transaction_id))

    def group_transactions(self, transactions: Iterable[Transaction]) -> Dict[GroupKey, List[Transaction]]:
        """
        Splits transactions by (owner, account, ticker); each group's list is in replay order.
        Groups are returned in key order so runs over the same history are deterministic.
        """
        grouped: Dict[GroupKey, List[Transaction]] = {}
        for txn in self.sort_transactions(transactions):
            grouped.setdefault(txn.group_key, []).append(txn)
        return dict(sorted(grouped.items()))
