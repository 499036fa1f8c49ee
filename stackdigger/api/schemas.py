"""Pydantic request/response schemas for the stackdigger API.

Defines the public contract for every REST endpoint: building and
committing stacks, browsing and deleting history, exposure maintenance,
health and provider listing.

Convention: request schemas end with "Request", response schemas end with
"Response".  Seeds are accepted in their tagged-union form, e.g.
``{"kind": "track", "artist": "Bonobo"}`` or
``{"kind": "genre", "genre_id": "electronica-downtempo", "name": "Downtempo"}``.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from stackdigger.models.seeds import Seed
from stackdigger.models.stack import ExposureMutation, Stack


class CreateStackRequest(BaseModel):
    """Build a stack against the server's exposure store and commit it."""

    seeds: list[Seed] = Field(default_factory=list)
    max_per_seed: int | None = Field(default=None, ge=1, le=50)


class BuildStackRequest(CreateStackRequest):
    """Build a stack against caller-held exposure state; nothing is stored."""

    seen_containers: list[str] = Field(default_factory=list)
    referenced_tracks: list[str] = Field(default_factory=list)


class BuildStackResponse(BaseModel):
    """A built stack plus the exposure additions the caller should record."""

    stack: Stack
    mutation: ExposureMutation


class StackResponse(BaseModel):
    stack: Stack


class StackListResponse(BaseModel):
    """Stack history, newest first."""

    stacks: list[Stack]
    total: int


class DeleteStackResponse(BaseModel):
    stack_id: str
    deleted: bool


class MarkSeenRequest(BaseModel):
    """Container ids the user has opened outside of a stack."""

    container_ids: list[str] = Field(..., min_length=1)


class MarkSeenResponse(BaseModel):
    marked: int


class ExposureStatsResponse(BaseModel):
    seen_containers: int
    referenced_tracks: int
    stacks_created: int


class HealthResponse(BaseModel):
    """Application health check response."""

    status: str
    version: str
    providers: dict[str, Any]


class ProvidersResponse(BaseModel):
    """List of configured providers and their availability."""

    providers: list[dict[str, Any]]


class ErrorResponse(BaseModel):
    """Standard error response body."""

    error: str
    detail: str | None = None
    reason: str | None = None
