import pytest

from src.application.orchestrator import PipelineOrchestrator
from src.application.use_cases.regenerate_image import resolve_format_hint
from src.application.use_cases.upload_image import IncomingImage
from src.domain.errors import (
    ImageError,
    MalformedAnalysisError,
    NotFoundError,
    ProviderError,
    ValidationError,
)
from src.domain.services.analysis_normalizer import AnalysisNormalizer
from src.domain.services.image_constraints import ImageConstraintEngine
from src.infrastructure.database.artifact_store import MemoryArtifactStore
from src.infrastructure.database.repositories.analysis_repository import AnalysisRepository
from src.infrastructure.database.repositories.derived_image_repository import (
    DerivedImageRepository,
)
from src.infrastructure.database.repositories.image_repository import ImageRepository
from src.infrastructure.providers.local_provider import LocalProvider
from src.infrastructure.providers.registry import ProviderRegistry


class RecordingProvider:
    """Wraps the local backend and records every call made to it."""

    image_model = "recording-v1"
    vision_model = "recording-v1"

    def __init__(self, name: str, constraints: ImageConstraintEngine, raw=None) -> None:
        self.name = name
        self.local = LocalProvider(constraints)
        self.raw = raw
        self.calls: list[tuple] = []

    async def analyze(self, image_bytes, prompt_template):
        self.calls.append(("analyze",))
        if self.raw is not None:
            return self.raw
        return await self.local.analyze(image_bytes, prompt_template)

    async def generate(self, prompt, format_hint="png", style_preset=None):
        self.calls.append(("generate", prompt, format_hint, style_preset))
        return await self.local.generate(prompt, format_hint, style_preset)

    async def improve(self, base_image_bytes, prompt):
        self.calls.append(("improve", prompt))
        return await self.local.improve(base_image_bytes, prompt)


class BrokenGenerator(RecordingProvider):
    async def generate(self, prompt, format_hint="png", style_preset=None):
        self.calls.append(("generate", prompt))
        return b"<html>not an image</html>"


@pytest.fixture()
def constraints():
    return ImageConstraintEngine()


@pytest.fixture()
def providers(constraints):
    return {
        "primary": RecordingProvider("primary", constraints),
        "secondary": RecordingProvider("secondary", constraints),
        "broken": BrokenGenerator("broken", constraints),
        "vague": RecordingProvider("vague", constraints, raw={"description": "no regions"}),
    }


@pytest.fixture()
def store():
    return MemoryArtifactStore()


@pytest.fixture()
def orchestrator(store, providers, constraints):
    registry = ProviderRegistry(
        analysis={"primary": providers["primary"], "vague": providers["vague"]},
        generation={k: providers[k] for k in ("primary", "secondary", "broken")},
    )
    return PipelineOrchestrator(
        image_repo=ImageRepository(store, 60),
        analysis_repo=AnalysisRepository(store, 60),
        derived_repo=DerivedImageRepository(store, 60),
        providers=registry,
        constraints=constraints,
        normalizer=AnalysisNormalizer(),
    )


async def _regenerated(orchestrator, make_image):
    _, (asset,) = await orchestrator.upload([IncomingImage("a.png", "image/png", make_image(32, 32))])
    analysis = await orchestrator.analyze(asset.id, "primary")
    return await orchestrator.regenerate(analysis.id, provider_name="primary")


async def test_upload_resizes_large_images(orchestrator, make_image):
    session_id, assets = await orchestrator.upload(
        [IncomingImage("big.png", "image/png", make_image(3000, 2000))]
    )
    (asset,) = assets
    assert max(asset.width, asset.height) <= 2048
    assert asset.content_type == "image/png"
    assert [a.id for a in await orchestrator.list_session_images(session_id)] == [asset.id]


async def test_upload_rejects_whole_batch_on_one_bad_file(orchestrator, store, make_image):
    files = [
        IncomingImage("ok.png", "image/png", make_image()),
        IncomingImage("huge.png", "image/png", make_image(5000, 3000)),
    ]
    with pytest.raises(ImageError):
        await orchestrator.upload(files)
    assert store._items == {}


async def test_upload_requires_files(orchestrator):
    with pytest.raises(ValidationError):
        await orchestrator.upload([])


async def test_analyze_unknown_image_fails_before_provider_call(orchestrator, providers):
    with pytest.raises(NotFoundError):
        await orchestrator.analyze("missing", "primary")
    assert providers["primary"].calls == []


async def test_analyze_without_regions_is_not_stored(orchestrator, store, make_image):
    _, (asset,) = await orchestrator.upload([IncomingImage("a.png", "image/png", make_image())])
    with pytest.raises(MalformedAnalysisError):
        await orchestrator.analyze(asset.id, "vague")
    assert await orchestrator.list_image_analyses(asset.id) == []


async def test_analysis_is_listed_under_its_image(orchestrator, make_image):
    _, (asset,) = await orchestrator.upload([IncomingImage("a.png", "image/png", make_image())])
    analysis = await orchestrator.analyze(asset.id, "primary")
    assert analysis.metadata.model_used == "recording-v1"
    assert [a.id for a in await orchestrator.list_image_analyses(asset.id)] == [analysis.id]
    assert await orchestrator.get_analysis(analysis.id) == analysis


async def test_regenerate_uses_analysis_prompt_and_records_params(orchestrator, providers, make_image):
    _, (asset,) = await orchestrator.upload([IncomingImage("a.png", "image/png", make_image())])
    analysis = await orchestrator.analyze(asset.id, "primary")

    image = await orchestrator.regenerate(analysis.id, provider_name="primary", format="raster")

    assert image.parent_id == analysis.id
    assert image.prompt_used == analysis.generation_prompt
    assert image.format.name == "png"
    assert image.generation_params.provider == "primary"
    assert image.generation_params.model == "recording-v1"
    assert providers["primary"].calls[-1] == ("generate", analysis.generation_prompt, "png", None)


async def test_regenerate_prompt_override(orchestrator, make_image):
    _, (asset,) = await orchestrator.upload([IncomingImage("a.png", "image/png", make_image())])
    analysis = await orchestrator.analyze(asset.id, "primary")
    image = await orchestrator.regenerate(
        analysis.id, prompt="a neon skyline", provider_name="primary", format="jpeg"
    )
    assert image.prompt_used == "a neon skyline"
    assert image.format.name == "jpeg"


async def test_regenerate_validates_before_fetching(orchestrator, providers):
    with pytest.raises(ValidationError) as exc:
        await orchestrator.regenerate("missing", provider_name="midjourney")
    assert exc.value.message == "Invalid provider: midjourney"
    with pytest.raises(ValidationError):
        await orchestrator.regenerate("missing", provider_name="primary", format="svg")
    with pytest.raises(NotFoundError):
        await orchestrator.regenerate("missing", provider_name="primary")
    assert providers["primary"].calls == []


async def test_undecodable_provider_output_is_provider_error(orchestrator, store, make_image):
    _, (asset,) = await orchestrator.upload([IncomingImage("a.png", "image/png", make_image())])
    analysis = await orchestrator.analyze(asset.id, "primary")
    with pytest.raises(ProviderError):
        await orchestrator.regenerate(analysis.id, provider_name="broken")
    assert not any(k.startswith("regenerated:") for k in store._items)


async def test_improve_of_improve_points_at_original(orchestrator, make_image):
    regenerated = await _regenerated(orchestrator, make_image)

    first = await orchestrator.improve(regenerated.id, "warmer light")
    second = await orchestrator.improve_improved(first.id, "add fog")
    third = await orchestrator.improve_improved(second.id, "less fog")

    assert first.parent_id == regenerated.id
    assert second.parent_id == regenerated.id
    assert third.parent_id == regenerated.id
    assert (await orchestrator.get_improved(third.id)).parent_id == regenerated.id


async def test_improve_defaults_to_predecessor_provider(orchestrator, providers, make_image):
    regenerated = await _regenerated(orchestrator, make_image)

    default = await orchestrator.improve(regenerated.id, "brighter")
    explicit = await orchestrator.improve_improved(default.id, "sharper", "secondary")

    assert default.generation_params.provider == "primary"
    assert explicit.generation_params.provider == "secondary"
    assert providers["secondary"].calls == [("improve", "sharper")]


async def test_improve_requires_prompt(orchestrator, make_image):
    regenerated = await _regenerated(orchestrator, make_image)
    with pytest.raises(ValidationError):
        await orchestrator.improve(regenerated.id, "   ")


async def test_improve_unknown_ids_are_not_found(orchestrator, make_image):
    regenerated = await _regenerated(orchestrator, make_image)
    with pytest.raises(NotFoundError):
        await orchestrator.improve("missing", "anything")
    # a regenerated id is not an improved id
    with pytest.raises(NotFoundError):
        await orchestrator.improve_improved(regenerated.id, "anything")


@pytest.mark.parametrize(
    "value,expected",
    [(None, "png"), ("raster", "png"), ("PNG", "png"), ("jpg", "jpeg"), ("webp", "webp")],
)
def test_resolve_format_hint(value, expected):
    assert resolve_format_hint(value) == expected


def test_resolve_format_hint_rejects_vectors():
    with pytest.raises(ValidationError):
        resolve_format_hint("svg")
