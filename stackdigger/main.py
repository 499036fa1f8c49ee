"""stackdigger FastAPI application entry point.

Wires together all providers, services, and routes via dependency injection.
Loads configuration from ``.env`` and ``config/config.yaml`` and configures
structured logging.

``_build_all`` is also used by the CLI, which runs the same components as a
one-shot script instead of a server.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

import httpx
import structlog
import uvicorn
from fastapi import FastAPI

from stackdigger.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from stackdigger.api.routes import router as api_router
from stackdigger.config.loader import apply_config, load_config
from stackdigger.config.settings import Settings
from stackdigger.interfaces.enricher import IEnricher
from stackdigger.pipeline.stack_builder import StackBuilder
from stackdigger.providers.cache.memory_cache import MemoryCacheProvider
from stackdigger.providers.enrichment.spotify_provider import NullEnricher, SpotifyEnricher
from stackdigger.providers.exposure.sqlite_store import SQLiteExposureStore
from stackdigger.providers.source.nts_provider import NTSProvider
from stackdigger.providers.source.tracklists_provider import TracklistsProvider
from stackdigger.services.aggregator import Aggregator, build_dispatch_table
from stackdigger.services.enrichment import EnrichmentPipeline
from stackdigger.services.reclaim import ReclaimEngine
from stackdigger.services.stack_assembler import StackAssembler
from stackdigger.services.stack_service import StackService
from stackdigger.services.track_collector import TrackCollector
from stackdigger.utils.logging import configure_logging, get_logger

_VERSION = "0.1.0"

# ---------------------------------------------------------------------------
# Module-level settings & logging
# ---------------------------------------------------------------------------

config = load_config()
settings = apply_config(Settings(), config)

configure_logging(
    log_level=settings.log_level,
    json_output=(settings.app_env == "production"),
)
_logger: structlog.BoundLogger = get_logger(__name__)


def _build_enricher(app_settings: Settings, http_client: httpx.AsyncClient) -> IEnricher:
    """Spotify when credentials are configured, otherwise a no-op enricher."""
    if app_settings.spotify_configured():
        return SpotifyEnricher(
            http_client=http_client,
            client_id=app_settings.spotify_client_id,
            client_secret=app_settings.spotify_client_secret,
            min_confidence=app_settings.enrichment_min_confidence,
            api_base=app_settings.spotify_api_base,
            token_url=app_settings.spotify_token_url,
        )
    _logger.warning("spotify_not_configured", message="tracks will have no canonical ids")
    return NullEnricher()


def _build_all(app_settings: Settings) -> dict[str, Any]:
    """Construct every provider and service instance for the application.

    Returns a flat dict of named components to be stored on ``app.state``.
    """
    # -- Shared resources --
    http_client = httpx.AsyncClient(timeout=app_settings.source_timeout)
    cache = MemoryCacheProvider(
        max_size=app_settings.source_cache_size, ttl=app_settings.source_cache_ttl
    )

    # -- Content sources --
    adapters = [
        NTSProvider(http_client=http_client, cache=cache, base_url=app_settings.nts_base_url),
        TracklistsProvider(
            http_client=http_client,
            cache=cache,
            base_url=app_settings.tracklists_base_url,
            request_delay=app_settings.tracklists_request_delay,
            enabled=app_settings.tracklists_enabled,
        ),
    ]
    dispatch = build_dispatch_table(adapters)

    # -- Enrichment --
    enricher = _build_enricher(app_settings, http_client)

    # -- Exposure store --
    exposure_store = SQLiteExposureStore(
        db_path=app_settings.exposure_db_path,
        history_limit=app_settings.stack_history_limit,
    )

    # -- Build stages --
    builder = StackBuilder(
        aggregator=Aggregator(
            dispatch,
            concurrency=app_settings.source_concurrency,
            source_timeout=app_settings.source_timeout,
        ),
        track_collector=TrackCollector(
            dispatch,
            concurrency=app_settings.source_concurrency,
            source_timeout=app_settings.source_timeout,
        ),
        enrichment=EnrichmentPipeline(enricher, concurrency=app_settings.enrichment_concurrency),
        assembler=StackAssembler(),
        build_timeout=app_settings.stack_build_timeout,
        default_max_per_seed=app_settings.max_containers_per_seed,
    )
    stack_service = StackService(builder=builder, store=exposure_store, reclaim=ReclaimEngine())

    # -- Provider registry for /health --
    provider_registry: dict[str, bool] = {a.get_provider_name(): a.is_available() for a in adapters}
    provider_registry["enrichment"] = enricher.is_available()
    provider_registry["exposure_store"] = True

    # -- Provider list for /providers --
    provider_list: list[dict[str, Any]] = [
        {
            "name": a.get_provider_name(),
            "type": "source",
            "seed_kinds": sorted(k.value for k in a.supported_kinds),
            "available": a.is_available(),
        }
        for a in adapters
    ]
    provider_list.append(
        {"name": enricher.get_provider_name(), "type": "enrichment", "available": enricher.is_available()}
    )
    provider_list.append(
        {"name": exposure_store.get_provider_name(), "type": "exposure_store", "available": True}
    )

    return {
        "http_client": http_client,
        "cache": cache,
        "exposure_store": exposure_store,
        "stack_service": stack_service,
        "provider_registry": provider_registry,
        "provider_list": provider_list,
    }


# ---------------------------------------------------------------------------
# Application lifespan (startup / shutdown)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def _lifespan(application: FastAPI):  # noqa: ANN201
    """Initialise all providers and services on startup, clean up on shutdown."""
    components = _build_all(settings)

    for key, value in components.items():
        setattr(application.state, key, value)

    await components["exposure_store"].initialize()

    _logger.info(
        "app_startup",
        version=_VERSION,
        environment=settings.app_env,
        providers=len(components["provider_list"]),
        exposure_db=settings.exposure_db_path,
    )

    yield

    http_client: httpx.AsyncClient = components["http_client"]
    await http_client.aclose()
    _logger.info("app_shutdown", message="HTTP client closed")


# ---------------------------------------------------------------------------
# FastAPI application factory
# ---------------------------------------------------------------------------


def create_app() -> FastAPI:
    """Build and configure the FastAPI application."""
    application = FastAPI(
        title="stackdigger API",
        version=_VERSION,
        description=(
            "Build non-repeating stacks of tracks from NTS Radio episodes and "
            "1001Tracklists DJ sets, seeded by tracks, genres, or DJs."
        ),
        lifespan=_lifespan,
    )

    # -- Middleware (order matters: last added = first executed) --
    application.add_middleware(ErrorHandlingMiddleware)
    application.add_middleware(RequestLoggingMiddleware)
    configure_cors(application)

    application.include_router(api_router)
    return application


app = create_app()


def main() -> None:
    uvicorn.run(
        "stackdigger.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=(settings.app_env == "development"),
    )


if __name__ == "__main__":
    main()
