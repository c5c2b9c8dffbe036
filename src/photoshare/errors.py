"""
Error taxonomy and JSend response shaping.

Client-caused failures render as `{"status": "fail", "data": {...}}`,
server faults as `{"status": "error", "message": "..."}`.
"""

from __future__ import annotations

import enum
import logging
from typing import Any, Dict, Mapping

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Base class for every failure that ends a request with a JSend body."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def body(self) -> Dict[str, Any]:
        return {"status": "error", "message": str(self)}


class ClientFailure(ApiError):
    """A `fail` response carrying field-keyed messages."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, data: Mapping[str, str]):
        super().__init__(dict(data))
        self.data: Dict[str, str] = dict(data)

    def body(self) -> Dict[str, Any]:
        return {"status": "fail", "data": self.data}


class ValidationFailure(ClientFailure):
    """Request fields violated one or more rules."""


class BadRequest(ClientFailure):
    def __init__(self, field: str, message: str):
        super().__init__({field: message})


class Conflict(ClientFailure):
    """A unique value is already taken."""

    def __init__(self, field: str, message: str):
        super().__init__({field: message})


class AuthFailure(str, enum.Enum):
    MISSING = "missing"
    MALFORMED = "malformed"
    INVALID_TOKEN = "invalid_token"
    SUBJECT_NOT_FOUND = "subject_not_found"


_AUTH_MESSAGES = {
    AuthFailure.MISSING: ("token", "There's no token provided, please login"),
    AuthFailure.MALFORMED: ("token", "Token provided is invalid"),
    AuthFailure.INVALID_TOKEN: ("token", "Token is invalid or has expired, please login"),
    AuthFailure.SUBJECT_NOT_FOUND: ("message", "There's no user found related to the token"),
}


class Unauthenticated(ClientFailure):
    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, reason: AuthFailure):
        field, message = _AUTH_MESSAGES[reason]
        super().__init__({field: message})
        self.reason = reason


class CredentialMismatch(ClientFailure):
    """Supplied password does not match the stored hash."""

    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, field: str, message: str):
        super().__init__({field: message})


class Forbidden(ClientFailure):
    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, reason: str = "not_owner"):
        super().__init__({"message": "Access denied, you are unauthorized to access this resource"})
        self.reason = reason


class NotFound(ClientFailure):
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, kind: str):
        super().__init__({kind: f"There's no {kind} found related with provided {kind} id"})
        self.kind = kind


class InternalFault(ApiError):
    """Store, file-system or signing failure; the message is surfaced verbatim."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


def _render(exc: ApiError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(exc.body()))


async def _api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    if isinstance(exc, InternalFault):
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return _render(exc)


async def _store_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception("Store failure on %s %s", request.method, request.url.path)
    return _render(InternalFault(str(exc)))


async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    data: Dict[str, str] = {}
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part != "body"]
        if err.get("type") in ("json_invalid", "model_attributes_type", "dict_type") or not loc:
            data = {"json": "Invalid json format"}
            break
        data.setdefault(loc[-1], err.get("msg", "Invalid value"))
    return _render(ValidationFailure(data))


async def _http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"status": "fail", "data": {"message": str(exc.detail)}},
        headers=getattr(exc, "headers", None),
    )


# PUBLIC_INTERFACE
def register_error_handlers(app: FastAPI) -> None:
    """Install handlers that turn every failure into exactly one JSend response."""
    app.add_exception_handler(ApiError, _api_error_handler)
    app.add_exception_handler(SQLAlchemyError, _store_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, _http_error_handler)
