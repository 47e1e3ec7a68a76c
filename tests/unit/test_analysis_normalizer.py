import pytest

from src.application.dtos.analysis_dto import BoundingBoxModel
from src.domain.errors import MalformedAnalysisError
from src.domain.services.analysis_normalizer import AnalysisNormalizer, extract_json_object


def _normalize(raw):
    return AnalysisNormalizer().normalize(raw, image_id="img-1", provider="openai", model="gpt-4o")


def test_empty_regions_gets_defaults():
    analysis = _normalize({"regions": []})
    assert analysis.regions == ()
    attrs = analysis.global_attributes
    assert (attrs.style, attrs.mood, attrs.lighting, attrs.perspective) == (
        "unknown",
        "neutral",
        "natural",
        "eye-level",
    )
    assert analysis.composition.layout == "centered"
    assert analysis.composition.balance == "symmetric"
    assert analysis.composition.focal_points == ()
    assert analysis.metadata.confidence_score == 0.85
    assert analysis.metadata.model_used == "gpt-4o"
    assert analysis.generation_prompt


@pytest.mark.parametrize("raw", [{}, {"regions": None}, {"regions": "sky"}, ["regions"], None])
def test_missing_regions_is_malformed(raw):
    with pytest.raises(MalformedAnalysisError) as exc:
        _normalize(raw)
    assert exc.value.message == "Missing regions in analysis"


def test_region_fields_are_sanitized():
    analysis = _normalize(
        {
            "regions": [
                {
                    "coordinates": {"x": -5, "y": "top", "width": 40, "height": True},
                    "importance_score": 3.2,
                    "object_description": "a red boat",
                },
                "not a region",
            ]
        }
    )
    first, second = analysis.regions
    assert (first.coordinates.x, first.coordinates.y) == (0, 0)
    assert first.coordinates.width == 40
    assert first.coordinates.height == 0
    assert first.importance_score == 1.0
    assert second.importance_score == 0.5
    assert second.object_description == ""
    assert first.id != second.id


def test_incomplete_colors_are_dropped():
    analysis = _normalize(
        {
            "regions": [],
            "global_attributes": {
                "style": "watercolor",
                "dominant_colors": [
                    {"hex": "#ff0000", "rgb": [255, 0, 0], "percentage": 40},
                    {"hex": "#00ff00", "rgb": [0, 255], "percentage": 20},
                    {"hex": "#0000ff", "rgb": [0, 0, 300], "percentage": 20},
                    {"rgb": [1, 2, 3], "percentage": 10},
                    {"hex": "#123456", "rgb": [1, 2, 3]},
                ],
            },
        }
    )
    colors = analysis.global_attributes.dominant_colors
    assert [c.hex for c in colors] == ["#ff0000"]
    assert colors[0].rgb == (255, 0, 0)
    assert analysis.global_attributes.style == "watercolor"


def test_composition_focal_points_accept_pairs_and_objects():
    analysis = _normalize(
        {
            "regions": [],
            "composition": {
                "focal_points": [{"x": 0.3, "y": 0.6}, [10, 20], [1], "center"],
                "depth_layers": ["foreground", 3, "sky"],
            },
        }
    )
    assert analysis.composition.focal_points == ((0.3, 0.6), (10.0, 20.0))
    assert analysis.composition.depth_layers == ("foreground", "sky")


def test_model_prompt_and_confidence_are_kept():
    analysis = _normalize(
        {"regions": [], "generation_prompt": "  a foggy harbour at dawn ", "confidence_score": 0.4}
    )
    assert analysis.generation_prompt == "a foggy harbour at dawn"
    assert analysis.metadata.confidence_score == 0.4


def test_extract_json_object_variants():
    assert extract_json_object('{"regions": []}') == {"regions": []}
    assert extract_json_object('```json\n{"regions": [1]}\n```') == {"regions": [1]}
    assert extract_json_object('Here you go: {"regions": []} hope it helps') == {"regions": []}
    with pytest.raises(ValueError):
        extract_json_object("no json here")


@pytest.mark.parametrize("focal_points", [0.5, 3, True, "center", {"x": 0.5, "y": 0.5}])
def test_non_list_focal_points_fall_back_to_empty(focal_points):
    analysis = _normalize({"regions": [], "composition": {"focal_points": focal_points}})
    assert analysis.composition.focal_points == ()


def test_bounding_box_schema_describes_percentages():
    fields = BoundingBoxModel.model_fields
    assert all("percentage" in fields[name].description for name in ("x", "y", "width", "height"))
