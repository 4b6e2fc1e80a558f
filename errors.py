"""
Uniform error envelope.

Every failure leaves the API as {"error": true, "kind": ..., "message": ...}
with the HTTP status belonging to its kind.
"""
import logging
from enum import Enum

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError

logger = logging.getLogger(__name__)


class ErrorKind(str, Enum):
    INVALID = "invalid"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not-found"
    CONFLICT = "conflict"
    UPSTREAM = "upstream-failure"


STATUS_BY_KIND = {
    ErrorKind.INVALID: 400,
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.UPSTREAM: 502,
}


class ApiError(HTTPException):
    def __init__(self, kind: ErrorKind, message: str):
        super().__init__(status_code=STATUS_BY_KIND[kind], detail=message)
        self.kind = kind
        self.message = message


class GatewayError(Exception):
    """Payment gateway call failed or answered with an error."""


def invalid(message: str) -> ApiError:
    return ApiError(ErrorKind.INVALID, message)


def unauthorized(message: str = "unauthorized access") -> ApiError:
    return ApiError(ErrorKind.UNAUTHORIZED, message)


def forbidden(message: str = "forbidden access") -> ApiError:
    return ApiError(ErrorKind.FORBIDDEN, message)


def not_found(what: str) -> ApiError:
    return ApiError(ErrorKind.NOT_FOUND, f"{what} not found")


def conflict(message: str) -> ApiError:
    return ApiError(ErrorKind.CONFLICT, message)


def envelope(kind: ErrorKind, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=STATUS_BY_KIND[kind],
        content={"error": True, "kind": kind.value, "message": message},
    )


async def _api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    return envelope(exc.kind, exc.message)


async def _database_error_handler(request: Request, exc: PyMongoError) -> JSONResponse:
    logger.error(f"❌ Database error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return envelope(ErrorKind.UPSTREAM, "database unavailable")


async def _gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
    logger.error(f"❌ Payment gateway error on {request.url.path}: {exc}")
    return envelope(ErrorKind.UPSTREAM, "payment gateway unavailable")


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, _api_error_handler)
    app.add_exception_handler(PyMongoError, _database_error_handler)
    app.add_exception_handler(GatewayError, _gateway_error_handler)
