"""Error taxonomy and the single place where errors become HTTP responses.

Domain code raises :class:`ApiError` tagged with an :class:`ErrorKind`.
Storage-driver and token-library errors are left to propagate untouched.
:func:`normalize_error` matches all of them, once, at the boundary.
"""

import logging
import traceback
from enum import Enum

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from jose import ExpiredSignatureError, JWTError
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from crud_users.config import settings

logger = logging.getLogger(__name__)


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    INVALID_ID = "invalid_id"
    CONFLICT = "conflict"
    PAYLOAD_TOO_LARGE = "payload_too_large"
    RATE_LIMITED = "rate_limited"
    INTERNAL = "internal"


STATUS_BY_KIND = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.INVALID_ID: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.PAYLOAD_TOO_LARGE: 413,
    ErrorKind.RATE_LIMITED: 429,
    ErrorKind.INTERNAL: 500,
}

NOT_FOUND_MESSAGE = "Resource not found"
INTERNAL_MESSAGE = "Internal server error"

# Unique columns and the API field each one is reported as.
UNIQUE_FIELDS = {
    "phone_number": "phoneNumber",
    "email": "email",
    "username": "username",
}


class ApiError(Exception):
    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        errors: list[dict] | None = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.errors = errors

    @property
    def status_code(self) -> int:
        return STATUS_BY_KIND[self.kind]

    @classmethod
    def validation(cls, errors: list[dict]) -> "ApiError":
        return cls(ErrorKind.VALIDATION, "Validation error", errors)

    @classmethod
    def unauthorized(cls, message: str = "Not authenticated") -> "ApiError":
        return cls(ErrorKind.UNAUTHORIZED, message)

    @classmethod
    def forbidden(
        cls, message: str = "You do not have permission to perform this action"
    ) -> "ApiError":
        return cls(ErrorKind.FORBIDDEN, message)

    @classmethod
    def not_found(cls, message: str = NOT_FOUND_MESSAGE) -> "ApiError":
        return cls(ErrorKind.NOT_FOUND, message)

    @classmethod
    def invalid_id(cls, value: str) -> "ApiError":
        return cls(ErrorKind.INVALID_ID, f"Malformed identifier: {value!r}")

    @classmethod
    def conflict(cls, field: str) -> "ApiError":
        return cls(
            ErrorKind.CONFLICT,
            f"The {field} is already in use. Please use a different value.",
        )

    @classmethod
    def payload_too_large(cls, limit: int) -> "ApiError":
        return cls(
            ErrorKind.PAYLOAD_TOO_LARGE,
            f"Request body cannot be larger than {limit} bytes",
        )

    @classmethod
    def rate_limited(cls) -> "ApiError":
        return cls(ErrorKind.RATE_LIMITED, "Too many requests, please try again later")


def duplicate_field(exc: IntegrityError) -> str | None:
    """Return the API field a unique-constraint violation refers to."""
    message = str(exc.orig or exc).lower()
    if "unique" not in message and "duplicate" not in message:
        return None
    for column, field in UNIQUE_FIELDS.items():
        if column in message:
            return field
    return None


def _request_validation_errors(exc: RequestValidationError) -> list[dict]:
    errors = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part != "body"]
        errors.append(
            {"field": ".".join(loc) or "body", "message": err.get("msg", "Invalid value")}
        )
    return errors


def normalize_error(exc: Exception, include_stack: bool = False) -> tuple[int, dict]:
    """Map any exception to ``(status_code, body)``. First match wins."""
    if isinstance(exc, ApiError) and exc.kind is ErrorKind.VALIDATION:
        return 400, {
            "success": False,
            "error": exc.message,
            "errors": exc.errors or [],
        }
    if isinstance(exc, RequestValidationError):
        return 400, {
            "success": False,
            "error": "Validation error",
            "errors": _request_validation_errors(exc),
        }

    if isinstance(exc, ApiError) and exc.kind is ErrorKind.INVALID_ID:
        return 404, {"success": False, "error": NOT_FOUND_MESSAGE}

    if isinstance(exc, IntegrityError):
        field = duplicate_field(exc)
        if field is not None:
            return 409, {"success": False, "error": ApiError.conflict(field).message}
        return 409, {"success": False, "error": "Duplicate or conflicting value"}

    if isinstance(exc, ExpiredSignatureError):
        return 401, {"success": False, "error": "Session expired. Please log in again."}
    if isinstance(exc, JWTError):
        return 401, {"success": False, "error": "Invalid token"}

    if isinstance(exc, ApiError):
        return exc.status_code, {"success": False, "error": exc.message}
    if isinstance(exc, StarletteHTTPException):
        return exc.status_code, {"success": False, "error": str(exc.detail)}

    body = {"success": False, "error": INTERNAL_MESSAGE}
    if include_stack:
        body["stack"] = "".join(
            traceback.format_exception(type(exc), exc, exc.__traceback__)
        )
    return 500, body


async def handle_error(request: Request, exc: Exception) -> JSONResponse:
    status_code, body = normalize_error(exc, include_stack=not settings.is_production)
    if status_code >= 500:
        logger.error(
            "Unhandled error on %s %s", request.method, request.url.path, exc_info=exc
        )
    else:
        logger.info(
            "%s %s -> %d: %s", request.method, request.url.path, status_code, body["error"]
        )
    headers = getattr(exc, "headers", None)
    return JSONResponse(status_code=status_code, content=body, headers=headers)


def register_error_handlers(app: FastAPI) -> None:
    for exc_class in (
        ApiError,
        RequestValidationError,
        IntegrityError,
        JWTError,
        StarletteHTTPException,
        Exception,
    ):
        app.add_exception_handler(exc_class, handle_error)
