from __future__ import annotations

import httpx

from src.domain.errors import ValidationError
from src.domain.services.image_constraints import ImageConstraintEngine
from src.infrastructure.config import Settings
from src.infrastructure.providers.anthropic_provider import AnthropicProvider
from src.infrastructure.providers.base import AnalysisProvider, GenerationProvider
from src.infrastructure.providers.local_provider import LocalProvider
from src.infrastructure.providers.openai_provider import OpenAIProvider
from src.infrastructure.providers.stability_provider import StabilityProvider


class ProviderRegistry:
    """Resolves provider names to backend instances.

    Backends whose credential is missing are still registered: selecting one
    yields a clear "not configured" ProviderError on first use instead of a
    silent fallback to another backend. Unknown names are rejected outright.
    """

    def __init__(
        self,
        analysis: dict[str, AnalysisProvider],
        generation: dict[str, GenerationProvider],
    ) -> None:
        self._analysis = analysis
        self._generation = generation

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        client: httpx.AsyncClient,
        constraints: ImageConstraintEngine,
    ) -> "ProviderRegistry":
        openai = OpenAIProvider(
            settings.openai_api_key,
            client,
            constraints,
            base_url=settings.openai_base_url,
            vision_model=settings.openai_vision_model,
            image_model=settings.openai_image_model,
        )
        anthropic = AnthropicProvider(
            settings.anthropic_api_key,
            client,
            constraints,
            base_url=settings.anthropic_base_url,
            model=settings.anthropic_model,
        )
        stability = StabilityProvider(
            settings.stability_api_key,
            client,
            constraints,
            base_url=settings.stability_base_url,
        )
        analysis: dict[str, AnalysisProvider] = {openai.name: openai, anthropic.name: anthropic}
        generation: dict[str, GenerationProvider] = {openai.name: openai, stability.name: stability}
        if settings.enable_local_providers:
            local = LocalProvider(constraints)
            analysis[local.name] = local
            generation[local.name] = local
        return cls(analysis, generation)

    def analysis_provider(self, name: str) -> AnalysisProvider:
        provider = self._analysis.get((name or "").strip().lower())
        if provider is None:
            raise ValidationError(f"Invalid provider: {name}")
        return provider

    def generation_provider(self, name: str) -> GenerationProvider:
        provider = self._generation.get((name or "").strip().lower())
        if provider is None:
            raise ValidationError(f"Invalid provider: {name}")
        return provider

    @property
    def analysis_providers(self) -> list[str]:
        return sorted(self._analysis)

    @property
    def generation_providers(self) -> list[str]:
        return sorted(self._generation)
