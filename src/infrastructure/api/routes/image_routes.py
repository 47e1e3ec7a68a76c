from __future__ import annotations

from fastapi import APIRouter, File, UploadFile, status

from src.application.dtos.analysis_dto import ImageAnalysesResponse, StructuredAnalysisResponse
from src.application.dtos.common_dto import ERROR_RESPONSES
from src.application.dtos.image_dto import (
    ImageMetadata,
    SessionImagesResponse,
    UploadImagesResponse,
)
from src.application.use_cases.upload_image import IncomingImage
from src.infrastructure.api.dependencies import Orchestrator

router = APIRouter(tags=["Images"], responses=ERROR_RESPONSES)


@router.post(
    "/upload",
    response_model=UploadImagesResponse,
    status_code=status.HTTP_200_OK,
    summary="Upload Images",
    description="""
    Upload one or more images under a new session.

    **Supported formats**: anything Pillow decodes (PNG, JPEG, WEBP, GIF, BMP, TIFF)
    **Maximum dimensions**: 4096x4096

    Every file is validated before any of them is stored. Images larger than
    the configured upload bound are downscaled and stored as PNG. Stored
    images expire after the artifact TTL.
    """,
    response_description="Session id and the ids of every stored image",
)
async def upload_images(
    orchestrator: Orchestrator,
    files: list[UploadFile] | None = File(None, description="Image files to upload"),
):
    """Upload images and open a new session."""
    incoming = [
        IncomingImage(filename=f.filename or "", content_type=f.content_type, data=await f.read())
        for f in files or []
    ]
    session_id, assets = await orchestrator.upload(incoming)
    return UploadImagesResponse(
        session_id=session_id,
        uploaded_images=[a.id for a in assets],
        count=len(assets),
    )


@router.get(
    "/sessions/{session_id}/images",
    response_model=SessionImagesResponse,
    summary="List Session Images",
    description="List the images of an upload session that have not expired yet.",
)
async def list_session_images(session_id: str, orchestrator: Orchestrator):
    images = await orchestrator.list_session_images(session_id)
    return SessionImagesResponse(
        session_id=session_id,
        images=[ImageMetadata.from_entity(i) for i in images],
    )


@router.get(
    "/images/{image_id}",
    response_model=ImageMetadata,
    summary="Get Image Metadata",
)
async def get_image(image_id: str, orchestrator: Orchestrator):
    return ImageMetadata.from_entity(await orchestrator.get_image(image_id))


@router.get(
    "/images/{image_id}/analyses",
    response_model=ImageAnalysesResponse,
    summary="List Image Analyses",
    description="List every analysis of an image that has not expired yet.",
)
async def list_image_analyses(image_id: str, orchestrator: Orchestrator):
    analyses = await orchestrator.list_image_analyses(image_id)
    return ImageAnalysesResponse(
        image_id=image_id,
        analyses=[StructuredAnalysisResponse.from_entity(a) for a in analyses],
    )
