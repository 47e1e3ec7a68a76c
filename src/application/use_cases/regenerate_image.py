from __future__ import annotations

from dataclasses import dataclass

import structlog

from src.domain.entities.derived_image import (
    REGENERATED,
    DerivedImage,
    GenerationParams,
    ImageFormat,
)
from src.domain.errors import ImageError, ProviderError, ValidationError
from src.domain.services.image_constraints import ImageConstraintEngine
from src.infrastructure.database.repositories.analysis_repository import AnalysisRepository
from src.infrastructure.database.repositories.derived_image_repository import (
    DerivedImageRepository,
)
from src.infrastructure.providers.base import FORMAT_HINTS
from src.infrastructure.providers.registry import ProviderRegistry

DEFAULT_PROVIDER = "openai"

logger = structlog.get_logger(__name__)


def resolve_format_hint(value: str | None) -> str:
    """Map the request's ``format`` option onto an encoder name."""
    fmt = (value or "raster").strip().lower()
    if fmt == "raster":
        return "png"
    if fmt == "jpg":
        return "jpeg"
    if fmt not in FORMAT_HINTS:
        raise ValidationError(f"Unsupported format: {value}")
    return fmt


def describe_output(constraints: ImageConstraintEngine, provider: str, data: bytes) -> ImageFormat:
    """Probe provider output; bytes Pillow cannot read are the provider's fault."""
    try:
        info = constraints.describe(data)
    except ImageError as exc:
        raise ProviderError(provider, f"Provider returned an undecodable image: {exc.message}") from exc
    return ImageFormat(name=info.format, width=info.width, height=info.height)


@dataclass
class RegenerateImageUseCase:
    analysis_repo: AnalysisRepository
    derived_repo: DerivedImageRepository
    providers: ProviderRegistry
    constraints: ImageConstraintEngine

    async def execute(
        self,
        analysis_id: str,
        *,
        prompt: str | None = None,
        provider_name: str | None = None,
        format: str | None = None,
        style_preset: str | None = None,
    ) -> DerivedImage:
        """Analyzed -> Regenerated.

        The caller's prompt wins over the one stored with the analysis.
        """
        provider = self.providers.generation_provider(provider_name or DEFAULT_PROVIDER)
        format_hint = resolve_format_hint(format)
        analysis = await self.analysis_repo.get(analysis_id)

        prompt_used = prompt.strip() if prompt and prompt.strip() else analysis.generation_prompt
        if not prompt_used:
            raise ValidationError("Missing prompt")

        data = await provider.generate(prompt_used, format_hint, style_preset)
        image_format = describe_output(self.constraints, provider.name, data)

        regenerated = self.derived_repo.create(
            kind=REGENERATED,
            parent_id=analysis.id,
            data=data,
            image_format=image_format,
            prompt_used=prompt_used,
            generation_params=GenerationParams(
                provider=provider.name,
                model=provider.image_model,
                format_hint=format_hint,
                style_preset=style_preset,
            ),
        )
        await self.derived_repo.save(regenerated)
        logger.info(
            "Image regenerated",
            analysis_id=analysis.id,
            regenerated_id=regenerated.id,
            provider=provider.name,
            size=len(data),
        )
        return regenerated
