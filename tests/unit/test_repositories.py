import pytest

from src.domain.entities.derived_image import (
    IMPROVED,
    REGENERATED,
    GenerationParams,
    ImageFormat,
)
from src.domain.errors import NotFoundError, StorageError
from src.domain.services.analysis_normalizer import AnalysisNormalizer
from src.infrastructure.database.artifact_store import MemoryArtifactStore
from src.infrastructure.database.repositories.analysis_repository import AnalysisRepository
from src.infrastructure.database.repositories.derived_image_repository import (
    DerivedImageRepository,
)
from src.infrastructure.database.repositories.image_repository import ImageRepository

TTL = 60


@pytest.fixture()
def store():
    return MemoryArtifactStore()


async def test_image_repository_save_get_and_list(store, make_image):
    repo = ImageRepository(store, TTL)
    data = make_image(6, 4)
    first = repo.create("sess", "a.png", "image/png", data, 6, 4)
    second = repo.create("sess", "b.png", "image/png", data, 6, 4)
    await repo.save(first)
    await repo.save(second)

    loaded = await repo.get(first.id)
    assert loaded == first
    assert loaded.data == data
    listed = await repo.list_by_session("sess")
    assert {i.id for i in listed} == {first.id, second.id}


async def test_image_repository_skips_expired_members(store, make_image):
    repo = ImageRepository(store, TTL)
    await store.index_add("session:sess:images", "gone", TTL)
    asset = repo.create("sess", "a.png", "image/png", make_image(), 4, 4)
    await repo.save(asset)
    assert [i.id for i in await repo.list_by_session("sess")] == [asset.id]


async def test_analysis_repository_roundtrip(store):
    repo = AnalysisRepository(store, TTL)
    analysis = AnalysisNormalizer().normalize(
        {
            "regions": [
                {
                    "coordinates": {"x": 1, "y": 2, "width": 3, "height": 4},
                    "dominant_colors": [{"hex": "#010203", "rgb": [1, 2, 3], "percentage": 12.5}],
                    "object_description": "lamp",
                }
            ],
            "composition": {"focal_points": [[0.5, 0.5]], "depth_layers": ["foreground"]},
        },
        image_id="img",
        provider="anthropic",
        model="claude",
        processing_time_ms=42,
    )
    await repo.save(analysis)

    loaded = await repo.get(analysis.id)
    assert loaded == analysis
    assert [a.id for a in await repo.list_by_image("img")] == [analysis.id]


async def test_analysis_repository_rejects_corrupt_payload(store):
    await store.put("analysis", "bad", b"{not json", TTL)
    with pytest.raises(StorageError):
        await AnalysisRepository(store, TTL).get("bad")


async def test_derived_repository_keeps_kinds_apart(store, make_image):
    repo = DerivedImageRepository(store, TTL)
    image = repo.create(
        kind=REGENERATED,
        parent_id="analysis-1",
        data=make_image(),
        image_format=ImageFormat("png", 4, 4),
        prompt_used="a lighthouse",
        generation_params=GenerationParams(provider="openai", model="gpt-image-1"),
    )
    await repo.save(image)

    assert await repo.get_regenerated(image.id) == image
    with pytest.raises(NotFoundError) as exc:
        await repo.get_improved(image.id)
    assert exc.value.namespace == IMPROVED


def test_derived_repository_rejects_unknown_kind(store):
    with pytest.raises(ValueError):
        DerivedImageRepository(store, TTL).create(
            kind="sketch",
            parent_id="p",
            data=b"",
            image_format=ImageFormat("png", 1, 1),
            prompt_used="",
            generation_params=GenerationParams(provider="openai", model="m"),
        )
