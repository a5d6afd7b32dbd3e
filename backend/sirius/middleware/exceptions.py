"""Wizard service errors and the handlers that render them.

Every failure leaves the API as

    {"error": {"code": "...", "message": "...", "details": {...}}}

with `details` present only when there is something to show (validation
field errors, feed config problems, valid step ids).
"""

import logging
from typing import Union

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError, OperationalError
from starlette.exceptions import HTTPException

logger = logging.getLogger(__name__)

Details = Union[dict, list, None]


class SiriusException(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code = "INTERNAL_ERROR"

    def __init__(self, message: str, error_code: str | None = None, details: Details = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.error_code
        self.details = details


class BusinessLogicError(SiriusException):
    """Well-formed request that breaks a wizard rule (bad step, status, period)."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    error_code = "BUSINESS_LOGIC_ERROR"


class ResourceNotFoundError(SiriusException):
    status_code = status.HTTP_404_NOT_FOUND
    error_code = "RESOURCE_NOT_FOUND"

    def __init__(self, resource: str, identifier: str):
        super().__init__(f"{resource} not found: {identifier}")


class WizardTypeError(SiriusException):
    """Unknown wizard type, or one that does not support the operation."""

    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "WIZARD_TYPE_ERROR"


def error_response(
    status_code: int, code: str, message: str, details: Details = None
) -> JSONResponse:
    body = {"code": code, "message": message}
    if details:
        body["details"] = details
    return JSONResponse(status_code=status_code, content={"error": body})


def _where(request: Request) -> dict:
    return {"path": request.url.path, "method": request.method}


async def sirius_exception_handler(request: Request, exc: SiriusException) -> JSONResponse:
    logger.warning("%s: %s", exc.error_code, exc.message, extra={"error_code": exc.error_code, **_where(request)})
    return error_response(exc.status_code, exc.error_code, exc.message, exc.details)


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    response = error_response(exc.status_code, f"HTTP_{exc.status_code}", str(exc.detail))
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def validation_exception_handler(
    request: Request, exc: Union[RequestValidationError, ValidationError]
) -> JSONResponse:
    errors = [
        {"field": ".".join(str(part) for part in err["loc"]), "message": err["msg"]}
        for err in exc.errors()
    ]
    logger.info("Rejected request body on %s", request.url.path, extra=_where(request))
    return error_response(
        status.HTTP_422_UNPROCESSABLE_ENTITY, "VALIDATION_ERROR", "Validation error", {"errors": errors}
    )


async def integrity_exception_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    # Unique keys: one monthly wizard per employer period, one report row per pk
    logger.error("Integrity error: %s", exc.orig, extra=_where(request))
    return error_response(
        status.HTTP_409_CONFLICT, "CONFLICT", "The change conflicts with an existing wizard record"
    )


async def operational_exception_handler(request: Request, exc: OperationalError) -> JSONResponse:
    logger.error("Database unavailable: %s", exc.orig, extra=_where(request))
    return error_response(
        status.HTTP_503_SERVICE_UNAVAILABLE, "DATABASE_UNAVAILABLE", "Database temporarily unavailable"
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    # Report runs record their own error text in progress.run.error
    logger.exception("Unhandled error on %s", request.url.path, extra=_where(request))
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR, "INTERNAL_SERVER_ERROR", "An unexpected error occurred"
    )


def register_exception_handlers(app):
    app.add_exception_handler(SiriusException, sirius_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(ValidationError, validation_exception_handler)
    app.add_exception_handler(IntegrityError, integrity_exception_handler)
    app.add_exception_handler(OperationalError, operational_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
