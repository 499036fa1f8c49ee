"""FastAPI API routes for stackdigger.

Provides REST endpoints for building stacks, browsing and deleting stack
history, exposure maintenance, health checks, and provider listing.
Service dependencies are resolved from ``app.state`` via FastAPI's
``Depends`` using the ``Annotated`` pattern.

    Endpoint                         Method  Description
    /api/v1/stacks/build             POST    Build against caller-held state (stateless)
    /api/v1/stacks                   POST    Build against the server store and commit
    /api/v1/stacks                   GET     Stack history, newest first
    /api/v1/stacks/{stack_id}        GET     One stack
    /api/v1/stacks/{stack_id}        DELETE  Delete a stack and reclaim its tracks
    /api/v1/exposure/stats           GET     Sizes of the exposure sets
    /api/v1/exposure/seen            POST    Mark containers as seen
    /api/v1/exposure                 DELETE  Reset all exposure state
    /api/v1/health                   GET     Health check + provider status
    /api/v1/providers                GET     Configured providers

Application errors raised by the service layer are turned into
``ErrorResponse`` bodies by ``ErrorHandlingMiddleware``.
"""

from __future__ import annotations

from typing import Annotated, Any

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request

from stackdigger.api.schemas import (
    BuildStackRequest,
    BuildStackResponse,
    CreateStackRequest,
    DeleteStackResponse,
    ErrorResponse,
    ExposureStatsResponse,
    HealthResponse,
    MarkSeenRequest,
    MarkSeenResponse,
    ProvidersResponse,
    StackListResponse,
    StackResponse,
)
from stackdigger.services.stack_service import StackService
from stackdigger.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

router = APIRouter(prefix="/api/v1")

_VERSION = "0.1.0"

_BUILD_ERRORS: dict[int | str, dict[str, Any]] = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    504: {"model": ErrorResponse},
}


def _get_stack_service(request: Request) -> StackService:
    """Return the stack service from application state."""
    return request.app.state.stack_service


StackServiceDep = Annotated[StackService, Depends(_get_stack_service)]


# ---------------------------------------------------------------------------
# Stack building
# ---------------------------------------------------------------------------


@router.post(
    "/stacks/build",
    response_model=BuildStackResponse,
    responses=_BUILD_ERRORS,
    summary="Build a stack from caller-supplied exposure state",
)
async def build_stack(body: BuildStackRequest, service: StackServiceDep) -> BuildStackResponse:
    """Build without touching the server store.

    The caller keeps its own seen/referenced sets and applies the returned
    mutation itself.
    """
    result = await service.build_stateless(
        body.seeds,
        seen_containers=body.seen_containers,
        referenced_tracks=body.referenced_tracks,
        max_per_seed=body.max_per_seed,
    )
    return BuildStackResponse(stack=result.stack, mutation=result.mutation)


@router.post(
    "/stacks",
    response_model=BuildStackResponse,
    status_code=201,
    responses=_BUILD_ERRORS,
    summary="Build a stack and commit it to the exposure store",
)
async def create_stack(body: CreateStackRequest, service: StackServiceDep) -> BuildStackResponse:
    result = await service.create_stack(body.seeds, max_per_seed=body.max_per_seed)
    return BuildStackResponse(stack=result.stack, mutation=result.mutation)


# ---------------------------------------------------------------------------
# Stack history
# ---------------------------------------------------------------------------


@router.get("/stacks", response_model=StackListResponse, summary="List stack history")
async def list_stacks(service: StackServiceDep) -> StackListResponse:
    stacks = await service.list_stacks()
    return StackListResponse(stacks=stacks, total=len(stacks))


@router.get(
    "/stacks/{stack_id}",
    response_model=StackResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Get one stack",
)
async def get_stack(stack_id: str, service: StackServiceDep) -> StackResponse:
    stack = await service.get_stack(stack_id)
    if stack is None:
        raise HTTPException(status_code=404, detail=f"Stack not found: {stack_id}")
    return StackResponse(stack=stack)


@router.delete(
    "/stacks/{stack_id}",
    response_model=DeleteStackResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Delete a stack and release its tracks",
)
async def delete_stack(stack_id: str, service: StackServiceDep) -> DeleteStackResponse:
    """Tracks held by no other stack in history become eligible again."""
    deleted = await service.delete_stack(stack_id)
    if not deleted:
        raise HTTPException(status_code=404, detail=f"Stack not found: {stack_id}")
    return DeleteStackResponse(stack_id=stack_id, deleted=True)


# ---------------------------------------------------------------------------
# Exposure state
# ---------------------------------------------------------------------------


@router.get("/exposure/stats", response_model=ExposureStatsResponse, summary="Exposure state sizes")
async def exposure_stats(service: StackServiceDep) -> ExposureStatsResponse:
    stats = await service.get_stats()
    return ExposureStatsResponse(**stats.model_dump())


@router.post("/exposure/seen", response_model=MarkSeenResponse, summary="Mark containers as seen")
async def mark_seen(body: MarkSeenRequest, service: StackServiceDep) -> MarkSeenResponse:
    marked = await service.mark_seen(body.container_ids)
    return MarkSeenResponse(marked=marked)


@router.delete("/exposure", response_model=ExposureStatsResponse, summary="Reset exposure state")
async def clear_exposure(service: StackServiceDep) -> ExposureStatsResponse:
    """Forget every seen container, referenced track and stack."""
    await service.clear()
    _logger.warning("exposure_cleared_via_api")
    stats = await service.get_stats()
    return ExposureStatsResponse(**stats.model_dump())


# ---------------------------------------------------------------------------
# System endpoints
# ---------------------------------------------------------------------------


@router.get("/health", response_model=HealthResponse, summary="Application health check")
async def health_check(request: Request) -> HealthResponse:
    """Return application health, version, and provider availability.

    ``degraded`` means the build still works but tracks will come back
    without canonical ids, or one of the sources is switched off.
    """
    providers: dict[str, Any] = {}
    if hasattr(request.app.state, "provider_registry"):
        providers = dict(request.app.state.provider_registry)

    if not providers.get("nts", False):
        status = "unhealthy"
    elif all(providers.values()):
        status = "healthy"
    else:
        status = "degraded"

    return HealthResponse(status=status, version=_VERSION, providers=providers)


@router.get("/providers", response_model=ProvidersResponse, summary="List configured providers")
async def list_providers(request: Request) -> ProvidersResponse:
    providers: list[dict[str, Any]] = []
    if hasattr(request.app.state, "provider_list"):
        providers = request.app.state.provider_list
    return ProvidersResponse(providers=providers)
