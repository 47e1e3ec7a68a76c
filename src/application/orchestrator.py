from __future__ import annotations

from dataclasses import dataclass

from src.application.use_cases.analyze_image import AnalyzeImageUseCase
from src.application.use_cases.improve_image import ImproveImageUseCase
from src.application.use_cases.regenerate_image import RegenerateImageUseCase
from src.application.use_cases.upload_image import IncomingImage, UploadImagesUseCase
from src.domain.entities.analysis import StructuredAnalysis
from src.domain.entities.derived_image import DerivedImage
from src.domain.entities.image import RawAsset
from src.domain.services.analysis_normalizer import AnalysisNormalizer
from src.domain.services.image_constraints import ImageConstraintEngine
from src.infrastructure.database.repositories.analysis_repository import AnalysisRepository
from src.infrastructure.database.repositories.derived_image_repository import (
    DerivedImageRepository,
)
from src.infrastructure.database.repositories.image_repository import ImageRepository
from src.infrastructure.providers.registry import ProviderRegistry


@dataclass
class PipelineOrchestrator:
    """Drives the artifact state machine.

        Uploaded -> Analyzed -> Regenerated -> Improved -> Improved(n)

    Every transition resolves its predecessor in the store before any
    provider is called, and writes its successor only after the provider
    call has fully succeeded. Artifacts are never updated.
    """

    image_repo: ImageRepository
    analysis_repo: AnalysisRepository
    derived_repo: DerivedImageRepository
    providers: ProviderRegistry
    constraints: ImageConstraintEngine
    normalizer: AnalysisNormalizer
    max_upload_dimension: int = 2048

    async def upload(self, files: list[IncomingImage]) -> tuple[str, list[RawAsset]]:
        uc = UploadImagesUseCase(self.image_repo, self.constraints, self.max_upload_dimension)
        return await uc.execute(files)

    async def analyze(self, image_id: str, provider_name: str = "openai") -> StructuredAnalysis:
        uc = AnalyzeImageUseCase(self.image_repo, self.analysis_repo, self.providers, self.normalizer)
        return await uc.execute(image_id, provider_name)

    async def regenerate(
        self,
        analysis_id: str,
        *,
        prompt: str | None = None,
        provider_name: str | None = None,
        format: str | None = None,
        style_preset: str | None = None,
    ) -> DerivedImage:
        uc = RegenerateImageUseCase(
            self.analysis_repo, self.derived_repo, self.providers, self.constraints
        )
        return await uc.execute(
            analysis_id,
            prompt=prompt,
            provider_name=provider_name,
            format=format,
            style_preset=style_preset,
        )

    async def improve(
        self, regenerated_id: str, prompt: str, provider_name: str | None = None
    ) -> DerivedImage:
        uc = ImproveImageUseCase(self.derived_repo, self.providers, self.constraints)
        return await uc.execute(regenerated_id, prompt, provider_name=provider_name)

    async def improve_improved(
        self, improved_id: str, prompt: str, provider_name: str | None = None
    ) -> DerivedImage:
        uc = ImproveImageUseCase(self.derived_repo, self.providers, self.constraints)
        return await uc.execute(
            improved_id, prompt, provider_name=provider_name, from_improved=True
        )

    # Reads

    async def get_image(self, image_id: str) -> RawAsset:
        return await self.image_repo.get(image_id)

    async def list_session_images(self, session_id: str) -> list[RawAsset]:
        return await self.image_repo.list_by_session(session_id)

    async def get_analysis(self, analysis_id: str) -> StructuredAnalysis:
        return await self.analysis_repo.get(analysis_id)

    async def list_image_analyses(self, image_id: str) -> list[StructuredAnalysis]:
        # confirm the image itself is still alive before listing
        await self.image_repo.get(image_id)
        return await self.analysis_repo.list_by_image(image_id)

    async def get_regenerated(self, image_id: str) -> DerivedImage:
        return await self.derived_repo.get_regenerated(image_id)

    async def get_improved(self, image_id: str) -> DerivedImage:
        return await self.derived_repo.get_improved(image_id)
