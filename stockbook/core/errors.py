from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..services.errors import (
    BatchLocked,
    DuplicateSku,
    InsufficientStock,
    InvariantViolation,
    LedgerError,
    NotFound,
    ValidationError,
)
from ..services.exchange_rate import ExchangeRateUnavailable

logger = logging.getLogger(__name__)

LEDGER_STATUS: dict[type[LedgerError], int] = {
    ValidationError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    InsufficientStock: status.HTTP_409_CONFLICT,
    BatchLocked: status.HTTP_409_CONFLICT,
    DuplicateSku: status.HTTP_409_CONFLICT,
    NotFound: status.HTTP_404_NOT_FOUND,
    InvariantViolation: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


class ErrorEnvelope(JSONResponse):
    def __init__(
        self,
        *,
        status_code: int,
        code: str,
        message: str,
        details: Any | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        payload: dict[str, Any] = {"code": code, "message": message}
        if details is not None:
            payload["details"] = details
        super().__init__(payload, status_code=status_code, headers=headers)


def _status_for(exc: LedgerError) -> int:
    for klass in type(exc).__mro__:
        if klass in LEDGER_STATUS:
            return LEDGER_STATUS[klass]
    return status.HTTP_400_BAD_REQUEST


async def ledger_exception_handler(request: Request, exc: LedgerError):
    status_code = _status_for(exc)
    if isinstance(exc, InvariantViolation):
        logger.error(
            "ledger.invariant_violation",
            exc_info=exc,
            extra={"extra_data": {"path": request.url.path, **exc.details}},
        )
    return ErrorEnvelope(status_code=status_code, code=exc.code, message=exc.message, details=exc.details)


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    detail = exc.detail
    message = detail if isinstance(detail, str) else "Error"
    details = detail if isinstance(detail, dict) else None
    return ErrorEnvelope(
        status_code=exc.status_code,
        code="http_error",
        message=message,
        details=details,
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return ErrorEnvelope(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        code="validation_error",
        message="Validation failed",
        details={"errors": jsonable_errors(exc)},
    )


async def exchange_rate_unavailable_handler(request: Request, exc: ExchangeRateUnavailable):
    return ErrorEnvelope(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        code="exchange_rate_unavailable",
        message=str(exc),
    )


def jsonable_errors(exc: RequestValidationError) -> list[dict[str, Any]]:
    # ``ctx`` may hold exception instances which JSONResponse cannot encode.
    errors = []
    for error in exc.errors():
        item = {key: value for key, value in error.items() if key != "ctx"}
        if "ctx" in error:
            item["ctx"] = {key: str(value) for key, value in error["ctx"].items()}
        errors.append(item)
    return errors


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(LedgerError, ledger_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(ExchangeRateUnavailable, exchange_rate_unavailable_handler)
