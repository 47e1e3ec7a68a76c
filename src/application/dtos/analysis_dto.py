from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from src.domain.entities.analysis import Color, Region, StructuredAnalysis


class ColorModel(BaseModel):
    hex: str = Field(..., description="Hex colour code", example="#3A5F8C")
    rgb: list[int] = Field(..., description="Red, green and blue components (0-255)", example=[58, 95, 140])
    percentage: float = Field(..., description="Share of the area covered by the colour", example=35.5)

    @classmethod
    def from_entity(cls, color: Color) -> "ColorModel":
        return cls(hex=color.hex, rgb=list(color.rgb), percentage=color.percentage)


class BoundingBoxModel(BaseModel):
    x: float = Field(0, description="Left edge as a percentage of the image width", ge=0)
    y: float = Field(0, description="Top edge as a percentage of the image height", ge=0)
    width: float = Field(0, description="Width as a percentage of the image width", ge=0)
    height: float = Field(0, description="Height as a percentage of the image height", ge=0)


class RegionModel(BaseModel):
    id: str = Field(..., description="Region identifier, unique within the analysis")
    coordinates: BoundingBoxModel
    dominant_colors: list[ColorModel] = Field(default_factory=list)
    object_description: str = Field("", description="What the region depicts")
    texture_description: str = Field("", description="Surface and material description")
    importance_score: float = Field(0.5, description="Visual importance", ge=0.0, le=1.0)

    @classmethod
    def from_entity(cls, region: Region) -> "RegionModel":
        box = region.coordinates
        return cls(
            id=region.id,
            coordinates=BoundingBoxModel(x=box.x, y=box.y, width=box.width, height=box.height),
            dominant_colors=[ColorModel.from_entity(c) for c in region.dominant_colors],
            object_description=region.object_description,
            texture_description=region.texture_description,
            importance_score=region.importance_score,
        )


class GlobalAttributesModel(BaseModel):
    style: str = Field(..., example="photorealistic")
    mood: str = Field(..., example="serene")
    lighting: str = Field(..., example="golden hour")
    perspective: str = Field(..., example="eye-level")
    dominant_colors: list[ColorModel] = Field(default_factory=list)


class CompositionModel(BaseModel):
    layout: str = Field(..., example="rule-of-thirds")
    focal_points: list[list[float]] = Field(default_factory=list, description="Focal points as [x, y] pairs")
    balance: str = Field(..., example="asymmetric")
    depth_layers: list[str] = Field(default_factory=list, example=["foreground", "background"])


class AnalysisMetadataModel(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    processing_time_ms: int = Field(..., description="Provider round-trip time", ge=0)
    model_used: str = Field(..., description="Model that produced the analysis", example="gpt-4o")
    confidence_score: float = Field(..., ge=0.0, le=1.0, example=0.85)


class StructuredAnalysisResponse(BaseModel):
    """Normalized analysis of an uploaded image."""
    id: str = Field(..., description="Analysis identifier")
    image_id: str = Field(..., description="Identifier of the analyzed image")
    provider: str = Field(..., description="Analysis provider name", example="openai")
    regions: list[RegionModel]
    global_attributes: GlobalAttributesModel
    composition: CompositionModel
    generation_prompt: str = Field(..., description="Prompt used by default when regenerating")
    metadata: AnalysisMetadataModel | None = None
    created_at: datetime | None = None

    @classmethod
    def from_entity(cls, analysis: StructuredAnalysis) -> "StructuredAnalysisResponse":
        attrs = analysis.global_attributes
        comp = analysis.composition
        meta = analysis.metadata
        return cls(
            id=analysis.id,
            image_id=analysis.image_id,
            provider=analysis.provider,
            regions=[RegionModel.from_entity(r) for r in analysis.regions],
            global_attributes=GlobalAttributesModel(
                style=attrs.style,
                mood=attrs.mood,
                lighting=attrs.lighting,
                perspective=attrs.perspective,
                dominant_colors=[ColorModel.from_entity(c) for c in attrs.dominant_colors],
            ),
            composition=CompositionModel(
                layout=comp.layout,
                focal_points=[list(p) for p in comp.focal_points],
                balance=comp.balance,
                depth_layers=list(comp.depth_layers),
            ),
            generation_prompt=analysis.generation_prompt,
            metadata=(
                AnalysisMetadataModel(
                    processing_time_ms=meta.processing_time_ms,
                    model_used=meta.model_used,
                    confidence_score=meta.confidence_score,
                )
                if meta
                else None
            ),
            created_at=analysis.created_at,
        )


class ImageAnalysesResponse(BaseModel):
    image_id: str = Field(..., description="Identifier of the analyzed image")
    analyses: list[StructuredAnalysisResponse] = Field(..., description="Analyses that have not expired yet")
