"""stackdigger API layer -- routes, schemas, and middleware."""

from stackdigger.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from stackdigger.api.routes import router
from stackdigger.api.schemas import (
    BuildStackRequest,
    BuildStackResponse,
    CreateStackRequest,
    ErrorResponse,
    HealthResponse,
    ProvidersResponse,
)

__all__ = [
    "ErrorHandlingMiddleware",
    "RequestLoggingMiddleware",
    "configure_cors",
    "router",
    "BuildStackRequest",
    "BuildStackResponse",
    "CreateStackRequest",
    "ErrorResponse",
    "HealthResponse",
    "ProvidersResponse",
]
