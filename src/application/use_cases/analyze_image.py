from __future__ import annotations

import time
from dataclasses import dataclass

import structlog

from src.domain.entities.analysis import StructuredAnalysis
from src.domain.services.analysis_normalizer import AnalysisNormalizer
from src.infrastructure.database.repositories.analysis_repository import AnalysisRepository
from src.infrastructure.database.repositories.image_repository import ImageRepository
from src.infrastructure.providers.prompts import ANALYSIS_PROMPT
from src.infrastructure.providers.registry import ProviderRegistry

logger = structlog.get_logger(__name__)


@dataclass
class AnalyzeImageUseCase:
    image_repo: ImageRepository
    analysis_repo: AnalysisRepository
    providers: ProviderRegistry
    normalizer: AnalysisNormalizer
    prompt_template: str = ANALYSIS_PROMPT

    async def execute(self, image_id: str, provider_name: str = "openai") -> StructuredAnalysis:
        """Uploaded -> Analyzed."""
        provider = self.providers.analysis_provider(provider_name)
        image = await self.image_repo.get(image_id)

        start = time.perf_counter()
        raw = await provider.analyze(image.data, self.prompt_template)
        elapsed_ms = int((time.perf_counter() - start) * 1000)

        analysis = self.normalizer.normalize(
            raw,
            image_id=image.id,
            provider=provider.name,
            model=provider.vision_model,
            processing_time_ms=elapsed_ms,
        )
        await self.analysis_repo.save(analysis)
        logger.info(
            "Image analyzed",
            image_id=image.id,
            analysis_id=analysis.id,
            provider=provider.name,
            regions=len(analysis.regions),
            duration_ms=elapsed_ms,
        )
        return analysis
