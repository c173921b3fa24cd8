"""Centralized error handling.

Domain exceptions are mapped to HTTP responses with one consistent envelope:
``{"error": {"category": ..., "code": ..., "detail": ...}}``.
"""

import logging
from typing import Any
from uuid import UUID, uuid4

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from upskill.exceptions import InvalidInputError, RepositoryError, ResourceNotFoundError


logger = logging.getLogger(__name__)


# === Error Categories ===


class ErrorCategory:
    """Error category constants."""

    VALIDATION = "VALIDATION_ERROR"
    DATABASE = "DATABASE_ERROR"
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    INTERNAL = "INTERNAL_ERROR"


class ErrorCode:
    """Specific error codes for better client handling."""

    INVALID_INPUT = "INVALID_INPUT"
    NOT_FOUND = "NOT_FOUND"
    DB_UNAVAILABLE = "DB_UNAVAILABLE"
    INTERNAL = "INTERNAL_ERROR"


# === Error Response Formatting ===


def format_error_response(
    category: str,
    code: str,
    detail: str,
    status_code: int,
    suggestions: list[str] | None = None,
    metadata: dict[str, Any] | None = None,
) -> JSONResponse:
    """Format a consistent error response."""
    content: dict[str, Any] = {
        "error": {
            "category": category,
            "code": code,
            "detail": detail,
        }
    }

    if suggestions:
        content["error"]["suggestions"] = suggestions

    if metadata:
        content["error"]["metadata"] = metadata

    return JSONResponse(status_code=status_code, content=content)


async def handle_request_validation_errors(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle malformed request bodies and path parameters."""
    logger.info("Validation error on %s %s", request.method, request.url.path)
    errors = [
        {
            "field": " -> ".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]
    return format_error_response(
        category=ErrorCategory.VALIDATION,
        code=ErrorCode.INVALID_INPUT,
        detail="Invalid input data",
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        metadata={"errors": errors},
    )


async def handle_invalid_input(request: Request, exc: InvalidInputError) -> JSONResponse:
    """Handle mutations rejected before anything was written."""
    logger.info("Invalid input on %s %s: %s", request.method, request.url.path, exc.message)
    return format_error_response(
        category=ErrorCategory.VALIDATION,
        code=ErrorCode.INVALID_INPUT,
        detail=exc.message,
        status_code=status.HTTP_400_BAD_REQUEST,
        metadata={"field": exc.field} if exc.field else None,
    )


async def handle_not_found(_request: Request, exc: ResourceNotFoundError) -> JSONResponse:
    return format_error_response(
        category=ErrorCategory.RESOURCE_NOT_FOUND,
        code=ErrorCode.NOT_FOUND,
        detail=str(exc),
        status_code=status.HTTP_404_NOT_FOUND,
        suggestions=["The requested resource does not exist"],
    )


async def handle_repository_errors(request: Request, exc: RepositoryError) -> JSONResponse:
    """Handle record store failures: the only error that reaches read callers."""
    logger.error(
        "Record store failure on %s %s during %s",
        request.method,
        request.url.path,
        exc.operation,
        exc_info=(type(exc), exc, exc.__traceback__),
    )
    return format_error_response(
        category=ErrorCategory.DATABASE,
        code=ErrorCode.DB_UNAVAILABLE,
        detail="The record store is unavailable",
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        suggestions=["Please try again later"],
    )


async def handle_unexpected_errors(request: Request, exc: Exception) -> JSONResponse:
    """Global handler for unhandled errors."""
    error_id = uuid4()
    log_error_context(request, exc, error_id)
    return format_error_response(
        category=ErrorCategory.INTERNAL,
        code=ErrorCode.INTERNAL,
        detail="An unexpected error occurred",
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        metadata={"error_id": str(error_id)},
        suggestions=["Please try again later", "If the problem persists, contact support with the error ID"],
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RequestValidationError, handle_request_validation_errors)
    app.add_exception_handler(InvalidInputError, handle_invalid_input)
    app.add_exception_handler(ResourceNotFoundError, handle_not_found)
    app.add_exception_handler(RepositoryError, handle_repository_errors)
    app.add_exception_handler(Exception, handle_unexpected_errors)


# === Utility Functions ===


def log_error_context(request: Request, exc: Exception, error_id: UUID | None = None) -> None:
    """Log comprehensive error context for debugging."""
    context = {
        "error_id": str(error_id) if error_id else None,
        "method": request.method,
        "path": request.url.path,
        "query_params": dict(request.query_params),
        "client_host": request.client.host if request.client else "unknown",
        "user_id": request.path_params.get("user_id"),
        "error_type": type(exc).__name__,
        "error_message": str(exc),
    }
    logger.error("Request failed", extra=context, exc_info=exc)
