# src/api/dependencies.py

from fastapi import Request

from src.core.config.settings import settings
from src.services.ledger_service import LedgerService


def get_ledger_service(request: Request) -> LedgerService:
    """
    Provides a LedgerService bound to the process-wide Database handle and
    group lock registry kept on the app state.
    """
    return LedgerService.from_settings(
        database=request.app.state.database,
        settings=settings,
        locks=request.app.state.group_locks,
    )
