"""
Application exceptions and their JSON rendering.

Every error leaves the API as `{"error": <message>}` (plus `"details"` when
there is structured context) with the matching status code:

- UnauthorizedError (401): missing, invalid or expired token
- ForbiddenError (403): the permission evaluator said no
- NotFoundError (404): an id lookup failed
- ValidationError (400): payload shape violations
- BusinessRuleError (400): duplicate join, user-has-content, duplicate email

The same classes are raised by the client data layer so callers handle
server and in-memory failures identically.
"""

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from studygroup.config import sanitize_error

logger = logging.getLogger(__name__)


class AppException(Exception):
    """Base exception for all application errors."""

    message: str = "An unexpected error occurred"
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str | None = None, details: Any = None) -> None:
        self.message = message or self.message
        self.details = details
        super().__init__(self.message)

    def to_body(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class UnauthorizedError(AppException):
    message = "Not authenticated"
    status_code = status.HTTP_401_UNAUTHORIZED


class ForbiddenError(AppException):
    message = "Insufficient permissions"
    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(AppException):
    message = "Resource not found"
    status_code = status.HTTP_404_NOT_FOUND


class ValidationError(AppException):
    message = "Validation failed"
    status_code = status.HTTP_400_BAD_REQUEST


class BusinessRuleError(AppException):
    """A well-formed request that the domain rules reject."""

    message = "Request violates a business rule"
    status_code = status.HTTP_400_BAD_REQUEST


# Client-side lookup when turning an error response back into an exception
ERRORS_BY_STATUS: dict[int, type[AppException]] = {
    status.HTTP_401_UNAUTHORIZED: UnauthorizedError,
    status.HTTP_403_FORBIDDEN: ForbiddenError,
    status.HTTP_404_NOT_FOUND: NotFoundError,
}


def format_validation_errors(errors: list[dict[str, Any]]) -> tuple[str, list[dict[str, str]]]:
    """Flatten pydantic errors into a message naming every failing field."""
    fields: list[dict[str, str]] = []
    for error in errors:
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        fields.append(
            {
                "field": ".".join(loc) if loc else "body",
                "message": error.get("msg", "Invalid value"),
            }
        )
    summary = "; ".join(f"{f['field']}: {f['message']}" for f in fields)
    return f"Validation failed: {summary}", fields


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        logger.info(
            "%s %s -> %d %s", request.method, request.url.path, exc.status_code, exc.message
        )
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    message, fields = format_validation_errors(list(exc.errors()))
    logger.info("%s %s -> 400 %s", request.method, request.url.path, message)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": message, "details": fields},
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": sanitize_error(exc)},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install the JSON error renderers on the app."""
    app.add_exception_handler(AppException, app_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, request_validation_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, unhandled_exception_handler)
