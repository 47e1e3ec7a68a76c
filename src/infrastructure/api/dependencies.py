from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from src.application.orchestrator import PipelineOrchestrator
from src.domain.services.analysis_normalizer import AnalysisNormalizer
from src.infrastructure.config import Settings
from src.infrastructure.database.artifact_store import ArtifactStore
from src.infrastructure.database.repositories.analysis_repository import AnalysisRepository
from src.infrastructure.database.repositories.derived_image_repository import (
    DerivedImageRepository,
)
from src.infrastructure.database.repositories.image_repository import ImageRepository
from src.infrastructure.providers.registry import ProviderRegistry


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> ArtifactStore:
    return request.app.state.store


def get_registry(request: Request) -> ProviderRegistry:
    return request.app.state.providers


def get_image_repo(
    store: Annotated[ArtifactStore, Depends(get_store)],
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> ImageRepository:
    return ImageRepository(store, settings.artifact_ttl_seconds)


def get_analysis_repo(
    store: Annotated[ArtifactStore, Depends(get_store)],
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> AnalysisRepository:
    return AnalysisRepository(store, settings.artifact_ttl_seconds)


def get_derived_repo(
    store: Annotated[ArtifactStore, Depends(get_store)],
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> DerivedImageRepository:
    return DerivedImageRepository(store, settings.artifact_ttl_seconds)


def get_orchestrator(
    request: Request,
    images: Annotated[ImageRepository, Depends(get_image_repo)],
    analyses: Annotated[AnalysisRepository, Depends(get_analysis_repo)],
    derived: Annotated[DerivedImageRepository, Depends(get_derived_repo)],
    providers: Annotated[ProviderRegistry, Depends(get_registry)],
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> PipelineOrchestrator:
    return PipelineOrchestrator(
        image_repo=images,
        analysis_repo=analyses,
        derived_repo=derived,
        providers=providers,
        constraints=request.app.state.constraints,
        normalizer=AnalysisNormalizer(),
        max_upload_dimension=settings.max_upload_dimension,
    )


Orchestrator = Annotated[PipelineOrchestrator, Depends(get_orchestrator)]
