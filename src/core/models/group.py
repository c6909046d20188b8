# src/core/models/group.py

from typing import NamedTuple


class GroupKey(NamedTuple):
    """
    Scope of all FIFO state: one owner's holding of one ticker in one account.
    Lots and transactions of different groups never interact.
    """
    owner_id: str
    account_id: str
    ticker: str

    @classmethod
    def of(cls, owner_id: str, account_id: str, ticker: str) -> "GroupKey":
        return cls(owner_id, account_id, ticker.strip().upper())

    def __str__(self) -> str:
        return f"{self.owner_id}/{self.account_id}/{self.ticker}"
