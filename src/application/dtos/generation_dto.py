from __future__ import annotations

import base64
from datetime import datetime

from pydantic import BaseModel, Field

from src.domain.entities.derived_image import DerivedImage


class RegenerateImageRequest(BaseModel):
    """Options for generating a new image from an analysis. Every field is optional."""
    prompt: str | None = Field(None, description="Overrides the analysis' generation prompt")
    provider: str | None = Field(None, description="Generation provider", example="openai")
    format: str | None = Field(None, description="raster, png, jpeg or webp", example="png")
    style_preset: str | None = Field(None, description="Provider style preset", example="photographic")


class ImproveImageRequest(BaseModel):
    """Refinement instruction for a derived image."""
    prompt: str = Field(..., description="What to change", example="make the sky more dramatic")
    provider: str | None = Field(None, description="Defaults to the provider of the source image")


class GeneratedImageResponse(BaseModel):
    id: str = Field(..., description="Identifier of the new derived image")
    data: str = Field(..., description="Base64-encoded image bytes")

    @classmethod
    def from_entity(cls, image: DerivedImage) -> "GeneratedImageResponse":
        return cls(id=image.id, data=base64.b64encode(image.data).decode("ascii"))


class ImageFormatModel(BaseModel):
    name: str = Field(..., example="png")
    width: int = Field(..., gt=0)
    height: int = Field(..., gt=0)
    mime_type: str = Field(..., example="image/png")


class GenerationParamsModel(BaseModel):
    provider: str = Field(..., example="openai")
    model: str = Field(..., example="gpt-image-1")
    format_hint: str = Field(..., example="png")
    style_preset: str | None = None


class DerivedImageResponse(BaseModel):
    """A regenerated or improved image with its lineage."""
    id: str
    kind: str = Field(..., description="regenerated or improved")
    parent_id: str = Field(
        ...,
        description="Analysis id for regenerated images; original regenerated image id for improvements",
    )
    format: ImageFormatModel
    data: str = Field(..., description="Base64-encoded image bytes")
    prompt_used: str
    generation_params: GenerationParamsModel
    created_at: datetime | None = None

    @classmethod
    def from_entity(cls, image: DerivedImage) -> "DerivedImageResponse":
        params = image.generation_params
        return cls(
            id=image.id,
            kind=image.kind,
            parent_id=image.parent_id,
            format=ImageFormatModel(
                name=image.format.name,
                width=image.format.width,
                height=image.format.height,
                mime_type=image.format.mime_type,
            ),
            data=base64.b64encode(image.data).decode("ascii"),
            prompt_used=image.prompt_used,
            generation_params=GenerationParamsModel(
                provider=params.provider,
                model=params.model,
                format_hint=params.format_hint,
                style_preset=params.style_preset,
            ),
            created_at=image.created_at,
        )
