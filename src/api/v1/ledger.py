# src/api/v1/ledger.py

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Body, Depends, Query

from src.api.dependencies import get_ledger_service
from src.core.models.group import GroupKey
from src.core.models.request import RebuildRequest
from src.core.models.response import PositionSummary, PurchaseLotView, RealizedPLSummary, RebuildReport
from src.services.ledger_service import LedgerService

router = APIRouter()


@router.post(
    "/ledger/rebuild",
    response_model=RebuildReport,
    summary="Rebuild lots and realized P&L",
    description="Deletes and regenerates purchase lots, lot consumptions and realized P&L "
                "for one (owner, account, ticker) group, or for every group when no scope is given."
)
def rebuild_ledger_endpoint(
    request: Optional[RebuildRequest] = Body(None),
    service: LedgerService = Depends(get_ledger_service)
) -> RebuildReport:
    scope = request.scope if request is not None else None
    return service.rebuild(scope)


@router.get(
    "/positions/{owner_id}/{account_id}/{ticker}",
    response_model=PositionSummary,
    summary="Open position and weighted-average cost of one ticker",
)
def get_position_endpoint(
    owner_id: str,
    account_id: str,
    ticker: str,
    include_adjustments: bool = Query(False, description="Reflect dividends and splits in the cost basis"),
    as_of: Optional[date] = Query(None, description="Ignore adjustments after this date"),
    service: LedgerService = Depends(get_ledger_service)
) -> PositionSummary:
    return service.get_position(GroupKey.of(owner_id, account_id, ticker), include_adjustments, as_of)


@router.get(
    "/portfolio/{owner_id}",
    response_model=List[PositionSummary],
    summary="All open positions of an owner",
)
def get_portfolio_endpoint(
    owner_id: str,
    account_id: Optional[str] = Query(None),
    service: LedgerService = Depends(get_ledger_service)
) -> List[PositionSummary]:
    return service.get_portfolio(owner_id, account_id)


@router.get(
    "/lots/{owner_id}/{account_id}/{ticker}",
    response_model=List[PurchaseLotView],
    summary="Purchase lots of one ticker in FIFO order",
)
def list_lots_endpoint(
    owner_id: str,
    account_id: str,
    ticker: str,
    include_closed: bool = Query(False, description="Also return fully consumed lots"),
    service: LedgerService = Depends(get_ledger_service)
) -> List[PurchaseLotView]:
    return service.list_lots(GroupKey.of(owner_id, account_id, ticker), include_closed)


@router.get(
    "/realized/{owner_id}",
    response_model=RealizedPLSummary,
    summary="Realized P&L statistics of an owner's SELLs",
    description="Total, gross profit and loss, win/loss counts, success rate and average P&L "
                "over the stored realized P&L, optionally narrowed to an account, a ticker and a date range."
)
def get_realized_summary_endpoint(
    owner_id: str,
    account_id: Optional[str] = Query(None),
    ticker: Optional[str] = Query(None),
    date_from: Optional[date] = Query(None, description="First trade date included"),
    date_to: Optional[date] = Query(None, description="Last trade date included"),
    service: LedgerService = Depends(get_ledger_service)
) -> RealizedPLSummary:
    return service.get_realized_summary(owner_id, account_id, ticker, date_from, date_to)
