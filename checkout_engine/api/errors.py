# checkout_engine/api/errors.py
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from checkout_engine.domain.errors import (
    ConcurrencyConflict,
    EmptyCart,
    EngineError,
    InsufficientStock,
    NotFound,
    TransactionFailure,
    Unauthorized,
    ValidationFailure,
)
from checkout_engine.utils.logging import get_logger

logger = get_logger(__name__)

# kolejnosc ma znaczenie - podklasy przed klasami bazowymi
_STATUS = [
    (NotFound, 404),
    (Unauthorized, 403),
    (InsufficientStock, 409),
    (ConcurrencyConflict, 409),
    (TransactionFailure, 503),
    (EmptyCart, 400),
    (ValidationFailure, 400),
]


def status_for(exc: EngineError) -> int:
    for cls, status in _STATUS:
        if isinstance(exc, cls):
            return status
    return 400


async def engine_error_handler(request: Request, exc: EngineError) -> JSONResponse:
    status = status_for(exc)
    if status >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc!r}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected: {exc!r}")
    return JSONResponse(status_code=status, content=exc.to_dict())


def register_error_handlers(app: FastAPI):
    app.add_exception_handler(EngineError, engine_error_handler)
