# src/tests/conftest.py

import itertools
from datetime import date
from decimal import Decimal

import pytest

from src.core.enums.transaction_type import TransactionType
from src.core.models.transaction import Transaction, TransactionCreate
from src.db.database import Database


@pytest.fixture
def make_transaction():
    """
    Factory for stored transactions. Ids are handed out in call order unless
    given explicitly, mirroring the storage sequence.
    """
    ids = itertools.count(1)

    def _make(
        transaction_type, quantity, price, transaction_date,
        fee="0", tax_rate="0", transaction_id=None,
        owner_id="user-1", account_id="acc-1", ticker="FPT",
    ) -> Transaction:
        return Transaction(
            transaction_id=transaction_id if transaction_id is not None else next(ids),
            owner_id=owner_id,
            account_id=account_id,
            ticker=ticker,
            transaction_type=TransactionType(transaction_type),
            transaction_date=transaction_date,
            quantity=quantity,
            price=Decimal(price),
            fee=Decimal(fee),
            tax_rate=Decimal(tax_rate),
        )
    return _make


@pytest.fixture
def make_entry():
    """Factory for not-yet-stored transactions (entry payloads)."""
    def _make(
        transaction_type, quantity, price, transaction_date,
        fee="0", tax_rate="0",
        owner_id="user-1", account_id="acc-1", ticker="FPT",
    ) -> TransactionCreate:
        return TransactionCreate(
            owner_id=owner_id,
            account_id=account_id,
            ticker=ticker,
            transaction_type=TransactionType(transaction_type),
            transaction_date=transaction_date,
            quantity=quantity,
            price=Decimal(price),
            fee=Decimal(fee),
            tax_rate=Decimal(tax_rate),
        )
    return _make


@pytest.fixture
def example_history(make_transaction):
    """Two buys and one sell that spans both lots."""
    return [
        make_transaction("BUY", 1000, "20000", date(2024, 1, 10), fee="50000"),
        make_transaction("BUY", 500, "22000", date(2024, 2, 10), fee="30000"),
        make_transaction("SELL", 1200, "25000", date(2024, 3, 10), fee="40000", tax_rate="0.1"),
    ]


@pytest.fixture
def database():
    """A fresh in-memory SQLite database with the ledger schema."""
    db = Database("sqlite://")
    db.create_all()
    yield db
    db.dispose()
