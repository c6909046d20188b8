# src/api/main.py

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse, RedirectResponse
import uvicorn
import logging
from decimal import getcontext

from src.api.v1.router import router as v1_router
from src.core.config.settings import settings
from src.db.database import Database
from src.logic.errors import (
    AdjustmentNotFound,
    GroupBusyError,
    InsufficientLotsError,
    InvariantViolation,
    LedgerError,
    PersistenceFailure,
    TransactionNotFound,
)
from src.services.group_locks import GroupLockRegistry

# Configure logging
logging.basicConfig(level=settings.LOG_LEVEL, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(settings.APP_NAME)

# Set global Decimal precision at application startup
getcontext().prec = settings.DECIMAL_PRECISION


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Builds the Database handle once per process. Tests may pre-populate
    app.state.database with their own handle.
    """
    owns_database = getattr(app.state, "database", None) is None
    if owns_database:
        app.state.database = Database(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)
        app.state.database.create_all()
        logger.info(f"Database ready at {app.state.database.engine.url.render_as_string(hide_password=True)}.")
    # One registry per process: every request must see the same group locks.
    if getattr(app.state, "group_locks", None) is None:
        app.state.group_locks = GroupLockRegistry(settings.GROUP_LOCK_TIMEOUT_SECONDS)
    yield
    if owns_database:
        app.state.database.dispose()
        app.state.database = None


# Create FastAPI app instance
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    debug=settings.DEBUG_MODE,
    description="API for recording stock trades and calculating FIFO cost basis and realized P&L.",
    lifespan=lifespan,
)

# Map ledger errors to HTTP status codes
_ERROR_STATUS = (
    (TransactionNotFound, status.HTTP_404_NOT_FOUND),
    (AdjustmentNotFound, status.HTTP_404_NOT_FOUND),
    (InsufficientLotsError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (InvariantViolation, status.HTTP_409_CONFLICT),
    (GroupBusyError, status.HTTP_409_CONFLICT),
    (PersistenceFailure, status.HTTP_503_SERVICE_UNAVAILABLE),
)


@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
    status_code = next(
        (code for error_type, code in _ERROR_STATUS if isinstance(exc, error_type)),
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {type(exc).__name__}: {exc}")
    else:
        logger.warning(f"{request.method} {request.url.path} rejected: {type(exc).__name__}: {exc}")
    content = {"detail": str(exc), "error": type(exc).__name__}
    if isinstance(exc, InsufficientLotsError):
        content["unmatched_quantity"] = exc.warning.unmatched_quantity
    return JSONResponse(status_code=status_code, content=content)


# Include API routers
app.include_router(v1_router, prefix=settings.API_V1_STR)

@app.get("/", include_in_schema=False)
async def root():
    """Redirects to the API documentation."""
    return RedirectResponse(url="/docs")

# Entry point for running with Uvicorn directly (for development)
if __name__ == "__main__":
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION} in {'DEBUG' if settings.DEBUG_MODE else 'PRODUCTION'} mode...")
    uvicorn.run(
        "src.api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG_MODE,
        log_level=settings.LOG_LEVEL.lower()
    )
