"""Domain error taxonomy and the standardized error responses built from it.

Services raise the ``DealError`` subclasses below; routers let them propagate
and the handlers registered in ``dealdesk.main`` turn them into the common
JSON envelope. The base classes double as the builtin exception families the
rest of the codebase already catches (``ValueError``, ``PermissionError``,
``LookupError``).
"""
from typing import Any

import sentry_sdk
import structlog
from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

logger = structlog.get_logger()


class DealError(Exception):
    """Root of every error the negotiation and settlement core raises."""

    status_code = 500
    code = "deal_error"

    def __init__(self, message: str, **detail: Any) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail or None


# ── Validation (terminal, reported to the caller) ───────────────────────────


class ValidationError(DealError, ValueError):
    status_code = 400
    code = "validation_error"


class InvalidAmount(ValidationError):
    code = "invalid_amount"


class MissingPayoutHandle(ValidationError):
    code = "missing_payout_handle"


class InvalidAttachment(ValidationError):
    code = "invalid_attachment"


# ── State conflicts (never retried automatically) ───────────────────────────


class StateConflict(DealError):
    status_code = 409
    code = "state_conflict"


class AlreadyProposed(StateConflict):
    code = "already_proposed"


class InvalidState(StateConflict):
    code = "invalid_state"


class AlreadyCompleted(StateConflict):
    code = "already_completed"


# ── Authorization ────────────────────────────────────────────────────────────


class AuthorizationError(DealError, PermissionError):
    status_code = 403
    code = "not_authorized"


class NotAuthorized(AuthorizationError):
    pass


class NotFound(DealError, LookupError):
    status_code = 404
    code = "not_found"


# ── Collaborator failures ────────────────────────────────────────────────────


class DependencyFailure(DealError):
    status_code = 503
    code = "dependency_failure"


# ── HTTP envelope ────────────────────────────────────────────────────────────


class ErrorResponse(BaseModel):
    """Standard error envelope returned by all API error handlers."""
    error: str
    message: str
    detail: Any = None
    request_id: str = "unknown"


async def deal_error_handler(request: Request, exc: DealError) -> JSONResponse:
    """Render a domain error with the status code its class declares."""
    request_id = request.headers.get("x-request-id", "unknown")

    if isinstance(exc, DependencyFailure):
        logger.error("dependency_failure", error=exc.message, path=request.url.path)
        sentry_sdk.capture_exception(exc)

    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=exc.code,
            message=exc.message,
            detail=exc.detail,
            request_id=request_id,
        ).model_dump(),
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch unhandled exceptions and return a consistent JSON envelope."""
    request_id = request.headers.get("x-request-id", "unknown")

    logger.error(
        "unhandled_exception",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
        method=request.method,
        request_id=request_id,
    )

    sentry_sdk.capture_exception(exc)

    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_server_error",
            "message": "An unexpected error occurred. Our team has been notified.",
            "request_id": request_id,
        },
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Standardize HTTPException responses into the same JSON envelope."""
    request_id = request.headers.get("x-request-id", "unknown")

    if isinstance(exc.detail, dict):
        error = exc.detail.get("error", f"http_{exc.status_code}")
        message = exc.detail.get("message", str(exc.detail))
        detail: Any = exc.detail.get("detail")
    else:
        error = f"http_{exc.status_code}"
        message = str(exc.detail)
        detail = exc.detail

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": error,
            "message": message,
            "detail": detail,
            "request_id": request_id,
        },
        headers=dict(exc.headers or {}),
    )
