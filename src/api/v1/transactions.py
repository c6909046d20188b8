# src/api/v1/transactions.py

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status

from src.api.dependencies import get_ledger_service
from src.core.models.response import LotConsumption, RecordedTransactionResponse
from src.core.models.transaction import Transaction, TransactionCreate
from src.services.ledger_service import LedgerService

router = APIRouter(prefix="/transactions")


@router.post(
    "",
    response_model=RecordedTransactionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record a BUY or SELL transaction",
    description="Stores the trade, matches SELLs against open lots in FIFO order "
                "and returns the realized P&L (0 for BUYs). A backdated trade "
                "replays its whole (owner, account, ticker) group."
)
def record_transaction_endpoint(
    transaction: TransactionCreate,
    service: LedgerService = Depends(get_ledger_service)
) -> RecordedTransactionResponse:
    return service.record_transaction(transaction)


@router.get("", response_model=List[Transaction], summary="List transactions in chronological order")
def list_transactions_endpoint(
    owner_id: Optional[str] = Query(None),
    account_id: Optional[str] = Query(None),
    ticker: Optional[str] = Query(None),
    service: LedgerService = Depends(get_ledger_service)
) -> List[Transaction]:
    return service.list_transactions(owner_id, account_id, ticker)


@router.get("/{transaction_id}", response_model=Transaction, summary="Get one transaction")
def get_transaction_endpoint(
    transaction_id: int,
    service: LedgerService = Depends(get_ledger_service)
) -> Transaction:
    return service.get_transaction(transaction_id)


@router.get(
    "/{transaction_id}/consumptions",
    response_model=List[LotConsumption],
    summary="Lots consumed by a SELL",
)
def get_consumptions_endpoint(
    transaction_id: int,
    service: LedgerService = Depends(get_ledger_service)
) -> List[LotConsumption]:
    return service.get_consumptions(transaction_id)


@router.put(
    "/{transaction_id}",
    response_model=Transaction,
    summary="Edit a transaction",
    description="Replaces the trade and rebuilds every group it belonged to before and after the edit."
)
def update_transaction_endpoint(
    transaction_id: int,
    transaction: TransactionCreate,
    service: LedgerService = Depends(get_ledger_service)
) -> Transaction:
    return service.update_transaction(transaction_id, transaction)


@router.delete("/{transaction_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete a transaction")
def delete_transaction_endpoint(
    transaction_id: int,
    service: LedgerService = Depends(get_ledger_service)
) -> Response:
    service.delete_transaction(transaction_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
