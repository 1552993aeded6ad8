from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Any

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from gymhub.context import get_correlation_id


logger = logging.getLogger("gymhub.errors")


class ErrorKind(str, enum.Enum):
    VALIDATION = "VALIDATION"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    LIMIT_EXCEEDED = "LIMIT_EXCEEDED"
    SUBSCRIPTION_INACTIVE = "SUBSCRIPTION_INACTIVE"
    INTERNAL = "INTERNAL"


STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.UNAUTHORIZED: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorKind.SUBSCRIPTION_INACTIVE: status.HTTP_403_FORBIDDEN,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.LIMIT_EXCEEDED: status.HTTP_409_CONFLICT,
    ErrorKind.INTERNAL: status.HTTP_500_INTERNAL_SERVER_ERROR,
}

_KIND_BY_STATUS: dict[int, ErrorKind] = {
    status.HTTP_400_BAD_REQUEST: ErrorKind.VALIDATION,
    status.HTTP_401_UNAUTHORIZED: ErrorKind.UNAUTHORIZED,
    status.HTTP_403_FORBIDDEN: ErrorKind.FORBIDDEN,
    status.HTTP_404_NOT_FOUND: ErrorKind.NOT_FOUND,
    status.HTTP_409_CONFLICT: ErrorKind.CONFLICT,
}


class DomainError(Exception):
    """Business-rule failure carrying an explicit kind instead of a message convention."""

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(self, message: str, *, kind: ErrorKind | None = None, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        if kind is not None:
            self.kind = kind
        self.details = details

    @property
    def status_code(self) -> int:
        return STATUS_BY_KIND[self.kind]


class ValidationError(DomainError):
    kind = ErrorKind.VALIDATION


class AuthenticationError(DomainError):
    kind = ErrorKind.UNAUTHORIZED


class AuthorizationError(DomainError):
    kind = ErrorKind.FORBIDDEN


class NotFoundError(DomainError):
    kind = ErrorKind.NOT_FOUND


class ConflictError(DomainError):
    kind = ErrorKind.CONFLICT


class SubscriptionInactiveError(DomainError):
    kind = ErrorKind.SUBSCRIPTION_INACTIVE


class LimitExceededError(DomainError):
    kind = ErrorKind.LIMIT_EXCEEDED

    def __init__(self, resource_type: str, current: int, max: int, location_id: str | None = None) -> None:
        self.resource_type = resource_type
        self.current = current
        self.max = max
        self.location_id = location_id
        if location_id is not None:
            message = f"{resource_type} limit reached for this location ({current}/{max}). Please upgrade your plan."
        else:
            message = f"{resource_type} limit reached ({current}/{max}). Please upgrade your plan."
        details: dict[str, Any] = {"resource_type": resource_type, "current": current, "max": max}
        if location_id is not None:
            details["location_id"] = location_id
        super().__init__(message, details=details)


@dataclass
class ErrorEnvelope:
    error: str
    code: str
    details: Any
    correlation_id: str | None


def error_response(
    request: Request,
    *,
    status_code: int,
    code: ErrorKind | str,
    message: str,
    details: Any = None,
) -> JSONResponse:
    correlation_id = get_correlation_id() or getattr(request.state, "correlation_id", None)
    payload = ErrorEnvelope(
        error=message,
        code=code.value if isinstance(code, ErrorKind) else code,
        details=details,
        correlation_id=correlation_id,
    )
    return JSONResponse(status_code=status_code, content=payload.__dict__)


async def _handle_domain_error(request: Request, exc: DomainError) -> JSONResponse:
    if exc.kind is ErrorKind.INTERNAL:
        logger.error("request.domain_error", extra={"path": request.url.path, "error": exc.message})
    return error_response(request, status_code=exc.status_code, code=exc.kind, message=exc.message, details=exc.details)


async def _handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == status.HTTP_405_METHOD_NOT_ALLOWED:
        code = "METHOD_NOT_ALLOWED"
    else:
        code = _KIND_BY_STATUS.get(exc.status_code, ErrorKind.INTERNAL).value
    response = error_response(request, status_code=exc.status_code, code=code, message=str(exc.detail))
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def _handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [
        {"loc": [str(part) for part in error.get("loc", ())], "msg": error.get("msg", "")}
        for error in exc.errors()
    ]
    first = details[0] if details else None
    message = "invalid request"
    if first is not None:
        message = f"{'.'.join(first['loc'][1:]) or 'body'}: {first['msg']}"
    return error_response(request, status_code=status.HTTP_400_BAD_REQUEST, code=ErrorKind.VALIDATION, message=message, details=details)


async def _handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("request.unhandled_error", extra={"path": request.url.path, "error": str(exc)})
    return error_response(
        request,
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        code=ErrorKind.INTERNAL,
        message=str(exc) or "internal error",
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DomainError, _handle_domain_error)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, _handle_http_exception)  # type: ignore[arg-type]
    app.add_exception_handler(HTTPException, _handle_http_exception)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _handle_request_validation)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _handle_unexpected)
