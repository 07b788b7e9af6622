"""
Exception handlers for the affiliate ledger API.

Register on a FastAPI app via `register_exception_handlers(app)`.
Ledger errors map to fixed HTTP statuses; anything else is a 500 whose
details are only shown in local environments.
"""
import logging

from fastapi import Request, HTTPException
from fastapi.responses import JSONResponse

from .core.env import is_local_env
from .services.errors import (
    AffiliateLedgerError,
    AlreadySettled,
    InvalidRequest,
    NotFound,
    TransactionConflict,
    UpstreamUnavailable,
)

logger = logging.getLogger("affiliate_ledger")

# Most specific first
_STATUS_BY_ERROR = (
    (InvalidRequest, 400),
    (NotFound, 404),
    (AlreadySettled, 200),
    (TransactionConflict, 409),
    (UpstreamUnavailable, 503),
)


def status_for_error(exc: AffiliateLedgerError) -> int:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return 500


async def ledger_error_handler(request: Request, exc: AffiliateLedgerError):
    status_code = status_for_error(exc)
    if status_code >= 500:
        logger.error(f"{exc.__class__.__name__} on {request.method} {request.url.path}: {exc}")
    else:
        logger.warning(f"{exc.__class__.__name__} on {request.method} {request.url.path}: {exc}")

    headers = {"Retry-After": "5"} if isinstance(exc, UpstreamUnavailable) else None
    return JSONResponse(
        status_code=status_code,
        content={"success": isinstance(exc, AlreadySettled), "error": str(exc)},
        headers=headers,
    )


async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler for unhandled errors"""
    if isinstance(exc, HTTPException):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=exc.headers)

    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)

    # Don't leak internals outside local environments
    if is_local_env():
        error_response = {"detail": f"Internal server error: {exc}"}
    else:
        error_response = {"detail": "Internal server error"}

    return JSONResponse(status_code=500, content=error_response)


def register_exception_handlers(app):
    """Register all exception handlers on the given FastAPI app."""
    app.add_exception_handler(AffiliateLedgerError, ledger_error_handler)
    app.add_exception_handler(Exception, global_exception_handler)
