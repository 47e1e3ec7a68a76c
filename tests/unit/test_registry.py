import httpx
import pytest

from src.domain.errors import ValidationError
from src.domain.services.image_constraints import ImageConstraintEngine
from src.infrastructure.config import Settings
from src.infrastructure.providers.registry import ProviderRegistry


def _registry(**overrides) -> ProviderRegistry:
    settings = Settings(openai_api_key="sk-test", **overrides)
    return ProviderRegistry.from_settings(settings, httpx.AsyncClient(), ImageConstraintEngine())


def test_default_backends_are_registered():
    registry = _registry(enable_local_providers=False)
    assert registry.analysis_providers == ["anthropic", "openai"]
    assert registry.generation_providers == ["openai", "stabilityai"]


def test_local_backends_are_opt_in():
    registry = _registry(enable_local_providers=True)
    assert "local" in registry.analysis_providers
    assert registry.generation_provider("local").name == "local"


def test_unknown_provider_is_rejected():
    registry = _registry()
    with pytest.raises(ValidationError) as exc:
        registry.generation_provider("midjourney")
    assert exc.value.message == "Invalid provider: midjourney"


def test_generation_only_backend_is_not_an_analysis_provider():
    with pytest.raises(ValidationError):
        _registry().analysis_provider("stabilityai")
