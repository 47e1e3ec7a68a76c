from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

REGENERATED = "regenerated"
IMPROVED = "improved"


@dataclass(frozen=True)
class ImageFormat:
    name: str  # png, jpeg, webp
    width: int
    height: int

    @property
    def mime_type(self) -> str:
        return f"image/{self.name}"


@dataclass(frozen=True)
class GenerationParams:
    provider: str
    model: str
    format_hint: str = "png"
    style_preset: str | None = None


@dataclass(frozen=True)
class DerivedImage:
    id: str
    kind: str  # REGENERATED or IMPROVED
    # Regenerated images point at their analysis. Improved images always point
    # at the first regenerated image of their chain, never at another improvement.
    parent_id: str
    format: ImageFormat
    data: bytes
    prompt_used: str
    generation_params: GenerationParams
    created_at: datetime | None = None

    @property
    def is_improvement(self) -> bool:
        return self.kind == IMPROVED
