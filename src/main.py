from __future__ import annotations

from contextlib import asynccontextmanager

import httpx
import structlog
from fastapi import FastAPI, Request

from src.application.dtos.common_dto import HealthResponse, RootResponse
from src.domain.services.image_constraints import ImageConstraintEngine
from src.infrastructure.api.middlewares import add_default_middlewares, add_exception_handlers
from src.infrastructure.api.routes.analysis_routes import router as analysis_router
from src.infrastructure.api.routes.generation_routes import router as generation_router
from src.infrastructure.api.routes.image_routes import router as image_router
from src.infrastructure.config import Settings, get_settings
from src.infrastructure.database.artifact_store import (
    ArtifactStore,
    MemoryArtifactStore,
    RedisArtifactStore,
)
from src.infrastructure.database.redis_client import create_redis_client
from src.infrastructure.logging_config import configure_logging
from src.infrastructure.providers.registry import ProviderRegistry

SERVICE_NAME = "reimagine-backend"

logger = structlog.get_logger(__name__)


def build_store(settings: Settings) -> ArtifactStore:
    if settings.store_backend == "memory":
        return MemoryArtifactStore()
    return RedisArtifactStore(create_redis_client(settings.redis_url))


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    store = build_store(settings)
    client = httpx.AsyncClient(timeout=settings.provider_timeout_seconds)
    constraints = ImageConstraintEngine(settings.max_image_dimension)

    app.state.store = store
    app.state.http_client = client
    app.state.constraints = constraints
    app.state.providers = ProviderRegistry.from_settings(settings, client, constraints)
    logger.info(
        "Service started",
        store=settings.store_backend,
        analysis_providers=app.state.providers.analysis_providers,
        generation_providers=app.state.providers.generation_providers,
    )
    try:
        yield
    finally:
        await client.aclose()
        await store.close()
        logger.info("Service stopped")


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level, settings.log_json)

    app = FastAPI(
        title="Reimagine Backend",
        version="0.1.0",
        description="""
        ## Reimagine Backend API

        Turns uploaded images into structured scene analyses, regenerates new
        images from those analyses and refines the results iteratively.

        ### Pipeline
        - **Upload**: validate and downscale images under a new session
        - **Analyze**: vision model output normalized into regions, global attributes and composition
        - **Regenerate**: new image from an analysis' generation prompt
        - **Improve**: refine a regenerated or improved image with a prompt

        Every artifact expires 24 hours after it was written by default.

        ### Error Responses
        All errors share the body `{"error": <kind>, "detail": <message>}`:
        - **400 Bad Request**: Invalid input, unknown provider or undecodable image
        - **404 Not Found**: Artifact does not exist or has expired
        - **422 Unprocessable Entity**: Validation error in request body
        - **500 Internal Server Error**: Artifact store failure
        - **502 Bad Gateway**: Provider failure or malformed analysis
        """,
        license_info={
            "name": "MIT License",
            "url": "https://opensource.org/licenses/MIT",
        },
        lifespan=lifespan,
    )
    app.state.settings = settings
    add_default_middlewares(app, settings.env)
    add_exception_handlers(app)

    @app.get(
        "/",
        response_model=RootResponse,
        summary="API Root",
        description="Get basic information about the API and its registered providers",
    )
    def root(request: Request):
        providers: ProviderRegistry = request.app.state.providers
        return RootResponse(
            status="ok",
            service=SERVICE_NAME,
            version=app.version,
            analysis_providers=providers.analysis_providers,
            generation_providers=providers.generation_providers,
        )

    @app.get(
        "/health",
        response_model=HealthResponse,
        summary="Health Check",
        description="Check if the API service and its artifact store are reachable",
    )
    async def health(request: Request):
        store_ok = await request.app.state.store.ping()
        return HealthResponse(
            status="healthy" if store_ok else "degraded",
            service=SERVICE_NAME,
            version=app.version,
            store="ok" if store_ok else "unavailable",
        )

    app.include_router(image_router)
    app.include_router(analysis_router)
    app.include_router(generation_router)
    return app


app = create_app()
