# src/api/v1/adjustments.py

from typing import List

from fastapi import APIRouter, Depends, Query, status

from src.api.dependencies import get_ledger_service
from src.core.models.group import GroupKey
from src.core.models.request import CostBasisAdjustment, CostBasisAdjustmentCreate
from src.services.ledger_service import LedgerService

router = APIRouter(prefix="/adjustments")


@router.post(
    "",
    response_model=CostBasisAdjustment,
    status_code=status.HTTP_201_CREATED,
    summary="Record a dividend or split",
    description="Adjustments only change the reported cost basis; realized P&L is unaffected."
)
def add_adjustment_endpoint(
    adjustment: CostBasisAdjustmentCreate,
    service: LedgerService = Depends(get_ledger_service)
) -> CostBasisAdjustment:
    return service.add_adjustment(adjustment)


@router.get("/{owner_id}/{account_id}/{ticker}", response_model=List[CostBasisAdjustment])
def list_adjustments_endpoint(
    owner_id: str,
    account_id: str,
    ticker: str,
    include_inactive: bool = Query(False),
    service: LedgerService = Depends(get_ledger_service)
) -> List[CostBasisAdjustment]:
    return service.list_adjustments(GroupKey.of(owner_id, account_id, ticker), include_inactive)


@router.delete("/{adjustment_id}", response_model=CostBasisAdjustment, summary="Deactivate an adjustment")
def deactivate_adjustment_endpoint(
    adjustment_id: int,
    service: LedgerService = Depends(get_ledger_service)
) -> CostBasisAdjustment:
    return service.deactivate_adjustment(adjustment_id)
