# src/db/sql_lot_store.py

import logging
from datetime import date
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from src.core.models.group import GroupKey
from src.db.models import LotConsumptionRecord, PurchaseLotRecord
from src.logic.errors import InvariantViolation, PersistenceFailure
from src.logic.lot_store import check_decrement

logger = logging.getLogger(__name__)


def _group_filter(model, group: GroupKey):
    return (
        model.owner_id == group.owner_id,
        model.account_id == group.account_id,
        model.ticker == group.ticker,
    )


class SqlLotStore:
    """
    Lot store over a SQLAlchemy session. It never commits: every call joins
    the caller's atomic boundary (Database.transaction()).
    """
    def __init__(self, session: Session):
        self._session = session

    def create_lot(
        self,
        owner_id: str,
        account_id: str,
        ticker: str,
        purchase_date: date,
        quantity: int,
        price_per_share: Decimal,
        buy_fee: Decimal,
        source_transaction_id: Optional[int] = None,
    ) -> PurchaseLotRecord:
        lot = PurchaseLotRecord(
            owner_id=owner_id,
            account_id=account_id,
            ticker=ticker,
            purchase_date=purchase_date,
            source_transaction_id=source_transaction_id,
            quantity=quantity,
            price_per_share=price_per_share,
            buy_fee=buy_fee,
            total_cost=price_per_share * quantity + buy_fee,
            remaining_quantity=quantity,
        )
        try:
            self._session.add(lot)
            self._session.flush()
        except SQLAlchemyError as e:
            raise PersistenceFailure(f"Could not create lot for {ticker}: {e}") from e
        logger.debug(f"SqlLotStore: Created {lot!r}.")
        return lot

    def list_lots(self, group: GroupKey) -> List[PurchaseLotRecord]:
        stmt = (
            select(PurchaseLotRecord)
            .where(*_group_filter(PurchaseLotRecord, group))
            .order_by(
                PurchaseLotRecord.purchase_date,
                PurchaseLotRecord.source_transaction_id,
                PurchaseLotRecord.lot_id,
            )
        )
        return self._scalars(stmt)

    def list_open_lots(self, group: GroupKey) -> List[PurchaseLotRecord]:
        stmt = (
            select(PurchaseLotRecord)
            .where(*_group_filter(PurchaseLotRecord, group), PurchaseLotRecord.remaining_quantity > 0)
            .order_by(
                PurchaseLotRecord.purchase_date,
                PurchaseLotRecord.source_transaction_id,
                PurchaseLotRecord.lot_id,
            )
        )
        return self._scalars(stmt)

    def list_owner_lots(self, owner_id: str, account_id: Optional[str] = None) -> List[PurchaseLotRecord]:
        stmt = select(PurchaseLotRecord).where(
            PurchaseLotRecord.owner_id == owner_id, PurchaseLotRecord.remaining_quantity > 0
        )
        if account_id is not None:
            stmt = stmt.where(PurchaseLotRecord.account_id == account_id)
        return self._scalars(stmt.order_by(
            PurchaseLotRecord.account_id,
            PurchaseLotRecord.ticker,
            PurchaseLotRecord.purchase_date,
            PurchaseLotRecord.source_transaction_id,
            PurchaseLotRecord.lot_id,
        ))

    def list_lot_groups(self) -> List[GroupKey]:
        stmt = (
            select(PurchaseLotRecord.owner_id, PurchaseLotRecord.account_id, PurchaseLotRecord.ticker)
            .distinct()
        )
        try:
            return [GroupKey(*row) for row in self._session.execute(stmt)]
        except SQLAlchemyError as e:
            raise PersistenceFailure(f"Could not list lot groups: {e}") from e

    def decrement_lot(self, lot_id: int, amount: int) -> int:
        try:
            lot = self._session.get(PurchaseLotRecord, lot_id)
        except SQLAlchemyError as e:
            raise PersistenceFailure(f"Could not load lot {lot_id}: {e}") from e
        if lot is None:
            raise InvariantViolation(f"Lot {lot_id} does not exist.")
        check_decrement(lot_id, lot.remaining_quantity, amount)
        lot.remaining_quantity -= amount
        return lot.remaining_quantity

    def delete_all_lots(self, group: Optional[GroupKey] = None) -> int:
        """
        Destructive reset used only by rebuilds. Consumptions referencing the
        deleted lots go with them.
        """
        consumptions = delete(LotConsumptionRecord)
        lots = delete(PurchaseLotRecord)
        if group is not None:
            consumptions = consumptions.where(*_group_filter(LotConsumptionRecord, group))
            lots = lots.where(*_group_filter(PurchaseLotRecord, group))
        try:
            self._session.flush()
            self._session.execute(consumptions)
            deleted = self._session.execute(lots).rowcount
        except SQLAlchemyError as e:
            raise PersistenceFailure(f"Could not delete lots (scope: {group or 'ALL'}): {e}") from e
        logger.info(f"SqlLotStore: Deleted {deleted} lots (scope: {group or 'ALL'}).")
        return deleted

    def _scalars(self, stmt) -> list:
        try:
            return list(self._session.scalars(stmt))
        except SQLAlchemyError as e:
            raise PersistenceFailure(f"Could not read lots: {e}") from e
