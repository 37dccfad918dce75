"""FastAPI middleware for request tracing, error handling, and CORS.

Middleware stack (applied bottom-up):
    1. RequestIDMiddleware: injects X-Request-ID into every request/response
    2. ErrorHandlerMiddleware: domain exceptions -> structured JSON errors
    3. CORSMiddleware: lets the portal and admin UI call the API from a browser
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

import structlog
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from trademark_workflow.domain.exceptions import (
    ApplicationNotFoundError,
    ConcurrentTransitionError,
    DuplicateOperationError,
    InvalidTransitionError,
    MissingMemoError,
    PaymentIncompleteError,
    PaymentNotFoundError,
    PaymentValidationError,
    StorageError,
    TrademarkWorkflowError,
    UnmappedStageError,
    UnsupportedStatusError,
)

if TYPE_CHECKING:
    from fastapi import FastAPI, Request, Response

logger = structlog.get_logger(__name__)

# First match wins; subclasses before their bases.
ERROR_STATUS_CODES: tuple[tuple[type[TrademarkWorkflowError], int], ...] = (
    (ApplicationNotFoundError, 404),
    (PaymentNotFoundError, 404),
    (InvalidTransitionError, 409),
    (PaymentIncompleteError, 409),
    (ConcurrentTransitionError, 409),
    (DuplicateOperationError, 409),
    (MissingMemoError, 422),
    (UnsupportedStatusError, 422),
    (PaymentValidationError, 400),
    (UnmappedStageError, 500),
    (StorageError, 503),
)


def status_code_for(exc: TrademarkWorkflowError) -> int:
    for error_type, status_code in ERROR_STATUS_CODES:
        if isinstance(exc, error_type):
            return status_code
    return 500


def error_response(exc: TrademarkWorkflowError) -> JSONResponse:
    return JSONResponse(status_code=status_code_for(exc), content=exc.to_dict())


# ---------------------------------------------------------------------------
# 1. Request ID Middleware
# ---------------------------------------------------------------------------
class RequestIDMiddleware(BaseHTTPMiddleware):
    """Inject a unique X-Request-ID into every request for log correlation."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


# ---------------------------------------------------------------------------
# 2. Error Handler Middleware
# ---------------------------------------------------------------------------
class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Catch domain exceptions and return structured JSON error responses."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        try:
            return await call_next(request)
        except TrademarkWorkflowError as exc:
            response = error_response(exc)
            log = logger.warning if response.status_code < 500 else logger.error
            log(
                "request.domain_error",
                code=exc.code,
                error=exc.message,
                status_code=response.status_code,
                path=request.url.path,
            )
            return response
        except Exception as exc:
            logger.exception("unhandled.error", error=str(exc), path=request.url.path)
            return JSONResponse(
                status_code=500,
                content={
                    "error": "INTERNAL_ERROR",
                    "message": "An unexpected error occurred",
                },
            )


# ---------------------------------------------------------------------------
# Setup function
# ---------------------------------------------------------------------------
def setup_middleware(app: FastAPI, allowed_origins: list[str] | None = None) -> None:
    """Register all middleware on the FastAPI application.

    Middleware is applied bottom-up, so the last added runs first.
    """
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(ErrorHandlerMiddleware)
    app.add_middleware(RequestIDMiddleware)
