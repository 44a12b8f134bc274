"""
Response envelope and error handling.
Every response body is {"success": bool, "data"?: ..., "error"?: {"code", "message"}}.
"""

from contextlib import contextmanager
from typing import Any, Iterator, Type, TypeVar

import structlog
from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = structlog.get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

_HTTP_ERROR_CODES = {
    status.HTTP_400_BAD_REQUEST: "INVALID_REQUEST",
    status.HTTP_401_UNAUTHORIZED: "UNAUTHORIZED",
    status.HTTP_403_FORBIDDEN: "FORBIDDEN",
    status.HTTP_404_NOT_FOUND: "NOT_FOUND",
    status.HTTP_405_METHOD_NOT_ALLOWED: "METHOD_NOT_ALLOWED",
}


class ApiError(Exception):
    """An error that maps directly onto an HTTP status and error code."""

    def __init__(self, status_code: int, code: str, message: str, details: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.message = message
        self.details = details

    @classmethod
    def unauthorized(cls, message: str = "Authentication required") -> "ApiError":
        return cls(status.HTTP_401_UNAUTHORIZED, "UNAUTHORIZED", message)

    @classmethod
    def forbidden(cls, message: str = "Insufficient permissions") -> "ApiError":
        return cls(status.HTTP_403_FORBIDDEN, "FORBIDDEN", message)

    @classmethod
    def bad_request(cls, code: str, message: str, details: Any = None) -> "ApiError":
        return cls(status.HTTP_400_BAD_REQUEST, code, message, details)

    @classmethod
    def not_found(cls, message: str) -> "ApiError":
        return cls(status.HTTP_404_NOT_FOUND, "NOT_FOUND", message)

    @classmethod
    def conflict(cls, code: str, message: str) -> "ApiError":
        return cls(status.HTTP_409_CONFLICT, code, message)

    @classmethod
    def internal(cls, message: str, code: str = "INTERNAL_ERROR") -> "ApiError":
        return cls(status.HTTP_500_INTERNAL_SERVER_ERROR, code, message)


def ok(data: Any = None, **extra: Any) -> dict:
    """Success envelope. Extra keys sit beside `data` (e.g. `cached`)."""
    body = {"success": True, "data": data}
    body.update(extra)
    return body


def error_body(code: str, message: str, details: Any = None) -> dict:
    error = {"code": code, "message": message}
    if details is not None:
        error["details"] = details
    return {"success": False, "error": error}


@contextmanager
def internal_errors(message: str) -> Iterator[None]:
    """
    Turn unexpected exceptions inside a route body into a 500 INTERNAL_ERROR
    carrying `message`. ApiErrors pass through untouched.
    """
    try:
        yield
    except ApiError:
        raise
    except Exception as exc:
        logger.exception("request_failed", message=message, error=str(exc))
        raise ApiError.internal(message) from exc


async def parse_body(request: Request, model: Type[ModelT]) -> ModelT:
    """
    Read and validate a JSON request body.
    Called inside the route so authentication always runs first.
    """
    try:
        payload = await request.json()
    except ValueError:
        raise ApiError.bad_request("INVALID_REQUEST", "Request body must be valid JSON")

    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise ApiError.bad_request(
            "VALIDATION_ERROR",
            "Invalid input data",
            details=jsonable_encoder(exc.errors(include_url=False, include_context=False)),
        )


def register_exception_handlers(app: FastAPI) -> None:
    """Render every error through the common envelope."""

    @app.exception_handler(ApiError)
    async def api_error_handler(request: Request, exc: ApiError):
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(exc.code, exc.message, exc.details),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=error_body(
                "VALIDATION_ERROR",
                "Invalid input data",
                jsonable_encoder(exc.errors()),
            ),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        code = _HTTP_ERROR_CODES.get(exc.status_code, "HTTP_ERROR")
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(code, str(exc.detail)),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("unhandled_error", path=request.url.path, error=str(exc))
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_body("INTERNAL_ERROR", "Internal server error"),
        )
