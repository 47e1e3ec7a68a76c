from __future__ import annotations

from dataclasses import dataclass

import structlog

from src.application.use_cases.regenerate_image import describe_output
from src.domain.entities.derived_image import IMPROVED, DerivedImage, GenerationParams
from src.domain.errors import ValidationError
from src.domain.services.image_constraints import ImageConstraintEngine
from src.infrastructure.database.repositories.derived_image_repository import (
    DerivedImageRepository,
)
from src.infrastructure.providers.registry import ProviderRegistry

logger = structlog.get_logger(__name__)


@dataclass
class ImproveImageUseCase:
    derived_repo: DerivedImageRepository
    providers: ProviderRegistry
    constraints: ImageConstraintEngine

    async def execute(
        self,
        source_id: str,
        prompt: str,
        *,
        provider_name: str | None = None,
        from_improved: bool = False,
    ) -> DerivedImage:
        """
        Regenerated -> Improved, or Improved -> Improved(n+1).

        LINEAGE: every improvement points at the first regenerated image of
        its chain. When refining an improvement, that id is carried forward
        from the predecessor rather than pointing at the predecessor itself,
        so the root is always one hop away.

        Example:
        - regenerate      -> R
        - improve(R)      -> I1 (parent R)
        - improve(I1)     -> I2 (parent R)
        - improve(I2)     -> I3 (parent R)

        Without an explicit provider the predecessor's provider is reused.
        """
        if not prompt or not prompt.strip():
            raise ValidationError("Missing prompt")
        prompt = prompt.strip()

        provider = self.providers.generation_provider(provider_name) if provider_name else None
        if from_improved:
            source = await self.derived_repo.get_improved(source_id)
            root_id = source.parent_id
        else:
            source = await self.derived_repo.get_regenerated(source_id)
            root_id = source.id
        if provider is None:
            provider = self.providers.generation_provider(source.generation_params.provider)

        data = await provider.improve(source.data, prompt)
        image_format = describe_output(self.constraints, provider.name, data)

        improved = self.derived_repo.create(
            kind=IMPROVED,
            parent_id=root_id,
            data=data,
            image_format=image_format,
            prompt_used=prompt,
            generation_params=GenerationParams(
                provider=provider.name,
                model=provider.image_model,
                format_hint=image_format.name,
            ),
        )
        await self.derived_repo.save(improved)
        logger.info(
            "Image improved",
            source_id=source.id,
            improved_id=improved.id,
            root_id=root_id,
            provider=provider.name,
        )
        return improved
