"""API middleware -- CORS, request logging, and error handling.

Starlette runs middleware last-added-first, so ``main.py`` adds
``ErrorHandlingMiddleware`` before ``RequestLoggingMiddleware``; the logger
then sees the final status code, including the ones produced by error
conversion.
"""

from __future__ import annotations

import time

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from stackdigger.api.schemas import ErrorResponse
from stackdigger.utils.errors import NoNewContentError, StackDiggerError
from stackdigger.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)


def configure_cors(app: FastAPI, *, allowed_origins: list[str] | None = None) -> None:
    """Add CORS middleware; all origins are allowed unless a list is given."""
    origins = allowed_origins or ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every HTTP request with method, path, status code, and duration."""

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        start = time.perf_counter()
        response: Response | None = None

        try:
            response = await call_next(request)
            return response
        finally:
            duration_ms = round((time.perf_counter() - start) * 1000, 2)
            status_code = response.status_code if response else 500
            _logger.info(
                "http_request",
                method=request.method,
                path=str(request.url.path),
                status=status_code,
                duration_ms=duration_ms,
            )


def error_response(exc: StackDiggerError) -> JSONResponse:
    """Render *exc* as an :class:`ErrorResponse` with its mapped status code."""
    body = ErrorResponse(
        error=type(exc).__name__,
        detail=exc.message,
        reason=exc.reason if isinstance(exc, NoNewContentError) else None,
    )
    return JSONResponse(status_code=exc.status_code, content=body.model_dump())


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Convert ``StackDiggerError`` subclasses into structured JSON errors.

    The status code comes from the exception class (400 for missing seeds,
    404 when nothing new is left, 504 on build timeout, 500 otherwise).
    Stack traces stay in the server log.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        try:
            return await call_next(request)
        except StackDiggerError as exc:
            log = _logger.warning if exc.status_code < 500 else _logger.error
            log(
                "application_error",
                error_type=type(exc).__name__,
                message=exc.message,
                provider=exc.provider_name,
                path=str(request.url.path),
            )
            return error_response(exc)
