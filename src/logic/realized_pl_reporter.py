# src/logic/realized_pl_reporter.py

import logging
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from src.core.models.response import RealizedPLSummary

logger = logging.getLogger(__name__)


class RealizedPLReporter:
    """
    Aggregates the calculated_pl already stored on SELL transactions.
    A SELL whose P&L has not been computed yet counts as break-even.
    """

    def summarize(
        self,
        owner_id: str,
        sells: Iterable,
        account_id: Optional[str] = None,
        ticker: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> RealizedPLSummary:
        pls = [sell.calculated_pl or Decimal(0) for sell in sells]

        gross_profit = sum((pl for pl in pls if pl > 0), Decimal(0))
        gross_loss = sum((pl for pl in pls if pl < 0), Decimal(0))
        profitable = sum(1 for pl in pls if pl > 0)
        unprofitable = sum(1 for pl in pls if pl < 0)
        total_pl = gross_profit + gross_loss

        if pls:
            average_pl = total_pl / len(pls)
            success_rate = (Decimal(profitable) * 100 / len(pls)).quantize(Decimal("0.01"))
        else:
            average_pl = Decimal(0)
            success_rate = Decimal(0)

        logger.debug(f"RealizedPLReporter: {owner_id}: {len(pls)} sells, total={total_pl}, success={success_rate}%.")
        return RealizedPLSummary(
            owner_id=owner_id,
            account_id=account_id,
            ticker=ticker.strip().upper() if ticker else None,
            date_from=date_from,
            date_to=date_to,
            total_sells=len(pls),
            profitable_sells=profitable,
            unprofitable_sells=unprofitable,
            break_even_sells=len(pls) - profitable - unprofitable,
            gross_profit=gross_profit,
            gross_loss=gross_loss,
            total_pl=total_pl,
            average_pl=average_pl,
            success_rate=success_rate,
        )
