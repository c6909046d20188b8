# src/db/repositories.py

import logging
from datetime import date
from decimal import Decimal
from typing import Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from src.core.enums.transaction_type import TransactionType
from src.core.models.group import GroupKey
from src.core.models.request import CostBasisAdjustmentCreate
from src.core.models.response import LotConsumption
from src.core.models.transaction import TransactionCreate
from src.db.models import CostBasisAdjustmentRecord, LotConsumptionRecord, TransactionRecord
from src.logic.errors import PersistenceFailure

logger = logging.getLogger(__name__)


class _Repository:
    def __init__(self, session: Session):
        self._session = session

    def _scalars(self, stmt) -> list:
        try:
            return list(self._session.scalars(stmt))
        except SQLAlchemyError as e:
            raise PersistenceFailure(f"Query failed: {e}") from e

    def _flush(self) -> None:
        try:
            self._session.flush()
        except SQLAlchemyError as e:
            raise PersistenceFailure(f"Write failed: {e}") from e


class TransactionRepository(_Repository):
    """Reads and writes trade records inside the caller's session."""

    def add(self, data: TransactionCreate) -> TransactionRecord:
        record = TransactionRecord(
            owner_id=data.owner_id,
            account_id=data.account_id,
            ticker=data.ticker,
            transaction_type=data.transaction_type.value,
            transaction_date=data.transaction_date,
            quantity=data.quantity,
            price=Decimal(str(data.price)),
            fee=Decimal(str(data.fee)),
            tax_rate=Decimal(str(data.tax_rate)),
            notes=data.notes,
        )
        self._session.add(record)
        self._flush()
        return record

    def update(self, record: TransactionRecord, data: TransactionCreate) -> TransactionRecord:
        record.owner_id = data.owner_id
        record.account_id = data.account_id
        record.ticker = data.ticker
        record.transaction_type = data.transaction_type.value
        record.transaction_date = data.transaction_date
        record.quantity = data.quantity
        record.price = Decimal(str(data.price))
        record.fee = Decimal(str(data.fee))
        record.tax_rate = Decimal(str(data.tax_rate))
        record.notes = data.notes
        record.calculated_pl = None
        self._flush()
        return record

    def get(self, transaction_id: int) -> Optional[TransactionRecord]:
        try:
            return self._session.get(TransactionRecord, transaction_id)
        except SQLAlchemyError as e:
            raise PersistenceFailure(f"Could not load transaction {transaction_id}: {e}") from e

    def delete(self, record: TransactionRecord) -> None:
        self._session.delete(record)
        self._flush()

    def list_group(self, group: GroupKey) -> List[TransactionRecord]:
        """The group's history in replay order."""
        stmt = (
            select(TransactionRecord)
            .where(
                TransactionRecord.owner_id == group.owner_id,
                TransactionRecord.account_id == group.account_id,
                TransactionRecord.ticker == group.ticker,
            )
            .order_by(TransactionRecord.transaction_date, TransactionRecord.transaction_id)
        )
        return self._scalars(stmt)

    def list_filtered(
        self,
        owner_id: Optional[str] = None,
        account_id: Optional[str] = None,
        ticker: Optional[str] = None,
    ) -> List[TransactionRecord]:
        stmt = select(TransactionRecord)
        if owner_id is not None:
            stmt = stmt.where(TransactionRecord.owner_id == owner_id)
        if account_id is not None:
            stmt = stmt.where(TransactionRecord.account_id == account_id)
        if ticker is not None:
            stmt = stmt.where(TransactionRecord.ticker == ticker.strip().upper())
        return self._scalars(stmt.order_by(TransactionRecord.transaction_date, TransactionRecord.transaction_id))

    def list_sells(
        self,
        owner_id: str,
        account_id: Optional[str] = None,
        ticker: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> List[TransactionRecord]:
        """An owner's SELLs, optionally narrowed to an account, a ticker and an inclusive date range."""
        stmt = select(TransactionRecord).where(
            TransactionRecord.owner_id == owner_id,
            TransactionRecord.transaction_type == TransactionType.SELL.value,
        )
        if account_id is not None:
            stmt = stmt.where(TransactionRecord.account_id == account_id)
        if ticker is not None:
            stmt = stmt.where(TransactionRecord.ticker == ticker.strip().upper())
        if date_from is not None:
            stmt = stmt.where(TransactionRecord.transaction_date >= date_from)
        if date_to is not None:
            stmt = stmt.where(TransactionRecord.transaction_date <= date_to)
        return self._scalars(stmt.order_by(TransactionRecord.transaction_date, TransactionRecord.transaction_id))

    def list_groups(self) -> List[GroupKey]:
        stmt = (
            select(TransactionRecord.owner_id, TransactionRecord.account_id, TransactionRecord.ticker)
            .distinct()
            .order_by(TransactionRecord.owner_id, TransactionRecord.account_id, TransactionRecord.ticker)
        )
        try:
            return [GroupKey(*row) for row in self._session.execute(stmt)]
        except SQLAlchemyError as e:
            raise PersistenceFailure(f"Could not list transaction groups: {e}") from e

    def has_later_than(self, group: GroupKey, transaction_date: date, exclude_id: Optional[int] = None) -> bool:
        """
        True when the group already holds a trade dated after transaction_date,
        i.e. a new trade on that date would not be the chronological tail.
        """
        stmt = (
            select(TransactionRecord.transaction_id)
            .where(
                TransactionRecord.owner_id == group.owner_id,
                TransactionRecord.account_id == group.account_id,
                TransactionRecord.ticker == group.ticker,
                TransactionRecord.transaction_date > transaction_date,
            )
            .limit(1)
        )
        if exclude_id is not None:
            stmt = stmt.where(TransactionRecord.transaction_id != exclude_id)
        return bool(self._scalars(stmt))

    def set_calculated_pl(self, record: TransactionRecord, calculated_pl: Decimal) -> None:
        record.calculated_pl = calculated_pl


class LotConsumptionRepository(_Repository):
    """Audit trail of which lots each SELL consumed."""

    def add_many(self, sell_transaction_id: int, group: GroupKey, consumptions: Iterable[LotConsumption]) -> None:
        for consumption in consumptions:
            self._session.add(LotConsumptionRecord(
                sell_transaction_id=sell_transaction_id,
                lot_id=consumption.lot_id,
                owner_id=group.owner_id,
                account_id=group.account_id,
                ticker=group.ticker,
                quantity=consumption.quantity,
                cost_per_share=consumption.cost_per_share,
                cost=consumption.cost,
            ))
        self._flush()

    def list_for_sell(self, sell_transaction_id: int) -> List[LotConsumptionRecord]:
        stmt = (
            select(LotConsumptionRecord)
            .where(LotConsumptionRecord.sell_transaction_id == sell_transaction_id)
            .order_by(LotConsumptionRecord.id)
        )
        return self._scalars(stmt)


class AdjustmentRepository(_Repository):
    """Cost-basis adjustments (dividends and splits)."""

    def add(self, data: CostBasisAdjustmentCreate) -> CostBasisAdjustmentRecord:
        record = CostBasisAdjustmentRecord(
            owner_id=data.owner_id,
            account_id=data.account_id,
            ticker=data.ticker,
            adjustment_type=data.adjustment_type.value,
            event_date=data.event_date,
            dividend_per_share=Decimal(str(data.dividend_per_share)),
            split_ratio=Decimal(str(data.split_ratio)),
            is_active=True,
            notes=data.notes,
        )
        self._session.add(record)
        self._flush()
        return record

    def get(self, adjustment_id: int) -> Optional[CostBasisAdjustmentRecord]:
        try:
            return self._session.get(CostBasisAdjustmentRecord, adjustment_id)
        except SQLAlchemyError as e:
            raise PersistenceFailure(f"Could not load adjustment {adjustment_id}: {e}") from e

    def list_group(self, group: GroupKey, active_only: bool = True) -> List[CostBasisAdjustmentRecord]:
        stmt = select(CostBasisAdjustmentRecord).where(
            CostBasisAdjustmentRecord.owner_id == group.owner_id,
            CostBasisAdjustmentRecord.account_id == group.account_id,
            CostBasisAdjustmentRecord.ticker == group.ticker,
        )
        if active_only:
            stmt = stmt.where(CostBasisAdjustmentRecord.is_active.is_(True))
        return self._scalars(stmt.order_by(CostBasisAdjustmentRecord.event_date, CostBasisAdjustmentRecord.adjustment_id))
