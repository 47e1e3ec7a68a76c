"""Best-effort reconstruction of a strict analysis from loose model output.

Vision models are asked for a JSON document but nothing guarantees its shape.
The only field the pipeline cannot live without is ``regions``; every other
field falls back to a documented default when it is missing or mistyped, and
colour samples that are incomplete are dropped instead of invented.
"""
from __future__ import annotations

import json
import re
import uuid
from datetime import UTC, datetime
from typing import Any

from src.domain.entities.analysis import (
    AnalysisMetadata,
    BoundingBox,
    Color,
    Composition,
    GlobalAttributes,
    Region,
    StructuredAnalysis,
)
from src.domain.errors import MalformedAnalysisError

DEFAULT_IMPORTANCE = 0.5
DEFAULT_CONFIDENCE = 0.85

_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL | re.IGNORECASE)


def extract_json_object(text: str) -> Any:
    """Parse the JSON document embedded in a model reply.

    Accepts a bare document, a fenced ```json block, or prose wrapped around
    a single top-level object. Raises ``ValueError`` when nothing parses.
    """
    candidates = [text.strip()]
    candidates.extend(m.strip() for m in _FENCE_RE.findall(text))
    start, end = text.find("{"), text.rfind("}")
    if start != -1 and end > start:
        candidates.append(text[start : end + 1])

    last_error: Exception | None = None
    for candidate in candidates:
        if not candidate:
            continue
        try:
            return json.loads(candidate)
        except json.JSONDecodeError as exc:
            last_error = exc
    raise ValueError(f"No JSON object found in model output: {last_error}")


def _is_number(value: Any) -> bool:
    # bool is an int subclass but never a meaningful coordinate or score
    return isinstance(value, (int, float)) and not isinstance(value, bool) and value == value


def _str(value: Any, default: str) -> str:
    return value if isinstance(value, str) else default


def _dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def _coordinate(value: Any) -> float:
    if _is_number(value) and value >= 0:
        return value
    return 0


class AnalysisNormalizer:
    def normalize(
        self,
        raw: Any,
        *,
        image_id: str,
        provider: str,
        model: str,
        processing_time_ms: int = 0,
    ) -> StructuredAnalysis:
        if not isinstance(raw, dict) or not isinstance(raw.get("regions"), list):
            raise MalformedAnalysisError("Missing regions in analysis")

        regions = tuple(self.parse_region(r) for r in raw["regions"])
        global_attributes = self.parse_global_attributes(raw.get("global_attributes"))
        composition = self.parse_composition(raw.get("composition"))

        prompt = raw.get("generation_prompt")
        if not isinstance(prompt, str) or not prompt.strip():
            prompt = build_generation_prompt(regions, global_attributes, composition)

        confidence = raw.get("confidence_score")
        if not _is_number(confidence) or not 0 <= confidence <= 1:
            confidence = DEFAULT_CONFIDENCE

        return StructuredAnalysis(
            id=str(uuid.uuid4()),
            image_id=image_id,
            provider=provider,
            regions=regions,
            global_attributes=global_attributes,
            composition=composition,
            generation_prompt=prompt.strip(),
            metadata=AnalysisMetadata(
                processing_time_ms=int(processing_time_ms),
                model_used=model,
                confidence_score=float(confidence),
            ),
            created_at=datetime.now(UTC),
        )

    def parse_region(self, raw: Any) -> Region:
        data = _dict(raw)
        coords = _dict(data.get("coordinates") or data.get("bounding_box"))
        importance = data.get("importance_score")
        if _is_number(importance):
            importance = min(1.0, max(0.0, float(importance)))
        else:
            importance = DEFAULT_IMPORTANCE
        return Region(
            id=str(uuid.uuid4()),
            coordinates=BoundingBox(
                x=_coordinate(coords.get("x")),
                y=_coordinate(coords.get("y")),
                width=_coordinate(coords.get("width")),
                height=_coordinate(coords.get("height")),
            ),
            dominant_colors=self.parse_colors(data.get("dominant_colors")),
            object_description=_str(data.get("object_description"), ""),
            texture_description=_str(data.get("texture_description"), ""),
            importance_score=importance,
        )

    def parse_global_attributes(self, raw: Any) -> GlobalAttributes:
        data = _dict(raw)
        return GlobalAttributes(
            style=_str(data.get("style"), "unknown"),
            mood=_str(data.get("mood"), "neutral"),
            lighting=_str(data.get("lighting"), "natural"),
            perspective=_str(data.get("perspective"), "eye-level"),
            dominant_colors=self.parse_colors(data.get("dominant_colors")),
        )

    def parse_composition(self, raw: Any) -> Composition:
        data = _dict(raw)
        raw_points = data.get("focal_points")
        points = []
        for p in raw_points if isinstance(raw_points, list) else []:
            if isinstance(p, dict):
                x, y = p.get("x"), p.get("y")
            elif isinstance(p, (list, tuple)) and len(p) == 2:
                x, y = p
            else:
                continue
            if _is_number(x) and _is_number(y):
                points.append((float(x), float(y)))

        layers = data.get("depth_layers")
        depth_layers = (
            tuple(s for s in layers if isinstance(s, str)) if isinstance(layers, list) else ()
        )
        return Composition(
            layout=_str(data.get("layout"), "centered"),
            focal_points=tuple(points),
            balance=_str(data.get("balance"), "symmetric"),
            depth_layers=depth_layers,
        )

    @staticmethod
    def parse_colors(raw: Any) -> tuple[Color, ...]:
        if not isinstance(raw, list):
            return ()
        colors = []
        for c in raw:
            if not isinstance(c, dict):
                continue
            hex_value, rgb, percentage = c.get("hex"), c.get("rgb"), c.get("percentage")
            if not isinstance(hex_value, str) or not _is_number(percentage):
                continue
            if not isinstance(rgb, (list, tuple)) or len(rgb) != 3:
                continue
            if not all(_is_number(v) and 0 <= v <= 255 for v in rgb):
                continue
            colors.append(
                Color(
                    hex=hex_value,
                    rgb=(int(rgb[0]), int(rgb[1]), int(rgb[2])),
                    percentage=float(percentage),
                )
            )
        return tuple(colors)


def build_generation_prompt(
    regions: tuple[Region, ...],
    global_attributes: GlobalAttributes,
    composition: Composition,
) -> str:
    """Compose a regeneration prompt when the model did not supply one."""
    parts = [
        f"A {global_attributes.style} image with a {global_attributes.mood} mood",
        f"{global_attributes.lighting} lighting, seen from a {global_attributes.perspective} perspective",
        f"{composition.layout} layout with {composition.balance} balance",
    ]
    ranked = sorted(regions, key=lambda r: r.importance_score, reverse=True)
    subjects = [r.object_description for r in ranked if r.object_description][:5]
    if subjects:
        parts.append("featuring " + "; ".join(subjects))
    palette = [c.hex for c in global_attributes.dominant_colors][:5]
    if palette:
        parts.append("palette " + ", ".join(palette))
    return ", ".join(parts) + "."
