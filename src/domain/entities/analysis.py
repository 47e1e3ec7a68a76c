from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class Color:
    hex: str
    rgb: tuple[int, int, int]
    percentage: float


@dataclass(frozen=True)
class BoundingBox:
    # Values are whatever unit the model reported (usually percentages).
    x: float = 0
    y: float = 0
    width: float = 0
    height: float = 0


@dataclass(frozen=True)
class Region:
    id: str
    coordinates: BoundingBox
    dominant_colors: tuple[Color, ...] = ()
    object_description: str = ""
    texture_description: str = ""
    importance_score: float = 0.5


@dataclass(frozen=True)
class GlobalAttributes:
    style: str = "unknown"
    mood: str = "neutral"
    lighting: str = "natural"
    perspective: str = "eye-level"
    dominant_colors: tuple[Color, ...] = ()


@dataclass(frozen=True)
class Composition:
    layout: str = "centered"
    focal_points: tuple[tuple[float, float], ...] = ()
    balance: str = "symmetric"
    depth_layers: tuple[str, ...] = ()  # ordered foreground to background


@dataclass(frozen=True)
class AnalysisMetadata:
    processing_time_ms: int
    model_used: str
    confidence_score: float = 0.85


@dataclass(frozen=True)
class StructuredAnalysis:
    id: str
    image_id: str  # source RawAsset
    provider: str
    regions: tuple[Region, ...]
    global_attributes: GlobalAttributes = field(default_factory=GlobalAttributes)
    composition: Composition = field(default_factory=Composition)
    generation_prompt: str = ""
    metadata: AnalysisMetadata | None = None
    created_at: datetime | None = None
