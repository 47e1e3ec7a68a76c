from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from src.domain.entities.image import RawAsset


class ImageMetadata(BaseModel):
    """Metadata of an uploaded image. The bytes themselves are never returned."""
    id: str = Field(..., description="Unique identifier of the image", example="9b2f0c1e-5d7a-4c61-9a55-3f0e4f1d2c8b")
    session_id: str = Field(..., description="Upload session the image belongs to")
    filename: str = Field(..., description="Original filename when uploaded", example="photo.jpg")
    content_type: str = Field(..., description="MIME type of the stored image", example="image/png")
    size: int = Field(..., description="Size of the stored image in bytes", example=2048576, ge=0)
    width: int = Field(..., description="Width of the stored image in pixels", example=1920, gt=0)
    height: int = Field(..., description="Height of the stored image in pixels", example=1080, gt=0)
    uploaded_at: datetime | None = Field(None, description="ISO timestamp when the image was uploaded")

    @classmethod
    def from_entity(cls, asset: RawAsset) -> "ImageMetadata":
        return cls(
            id=asset.id,
            session_id=asset.session_id,
            filename=asset.filename,
            content_type=asset.content_type,
            size=asset.size,
            width=asset.width,
            height=asset.height,
            uploaded_at=asset.uploaded_at,
        )


class UploadImagesResponse(BaseModel):
    """Response model for a successful upload."""
    session_id: str = Field(..., description="Identifier grouping every image of this upload")
    uploaded_images: list[str] = Field(..., description="Ids of the stored images, in upload order")
    count: int = Field(..., description="Number of images stored", example=2, ge=1)


class SessionImagesResponse(BaseModel):
    """Images of one upload session that have not expired yet."""
    session_id: str = Field(..., description="Upload session identifier")
    images: list[ImageMetadata] = Field(..., description="Live images of the session, oldest first")
