from __future__ import annotations

from fastapi import APIRouter, Body

from src.application.dtos.common_dto import ERROR_RESPONSES
from src.application.dtos.generation_dto import (
    DerivedImageResponse,
    GeneratedImageResponse,
    ImproveImageRequest,
    RegenerateImageRequest,
)
from src.infrastructure.api.dependencies import Orchestrator

router = APIRouter(tags=["Generation"], responses=ERROR_RESPONSES)


@router.post(
    "/regenerate/{analysis_id}",
    response_model=GeneratedImageResponse,
    summary="Regenerate Image",
    description="""
    Generate a new image from a stored analysis.

    Without a prompt the analysis' own generation prompt is used.
    **Formats**: raster (PNG), png, jpeg, webp
    """,
)
async def regenerate_image(
    analysis_id: str,
    orchestrator: Orchestrator,
    body: RegenerateImageRequest | None = Body(None),
):
    body = body or RegenerateImageRequest()
    image = await orchestrator.regenerate(
        analysis_id,
        prompt=body.prompt,
        provider_name=body.provider,
        format=body.format,
        style_preset=body.style_preset,
    )
    return GeneratedImageResponse.from_entity(image)


@router.post(
    "/improve/{regenerated_id}",
    response_model=GeneratedImageResponse,
    summary="Improve Regenerated Image",
)
async def improve_image(regenerated_id: str, body: ImproveImageRequest, orchestrator: Orchestrator):
    image = await orchestrator.improve(regenerated_id, body.prompt, body.provider)
    return GeneratedImageResponse.from_entity(image)


@router.post(
    "/improve-improved/{improved_id}",
    response_model=GeneratedImageResponse,
    summary="Improve Improved Image",
    description="Refine an improvement. The result keeps pointing at the original regenerated image.",
)
async def improve_improved_image(improved_id: str, body: ImproveImageRequest, orchestrator: Orchestrator):
    image = await orchestrator.improve_improved(improved_id, body.prompt, body.provider)
    return GeneratedImageResponse.from_entity(image)


@router.get("/regenerated/{image_id}", response_model=DerivedImageResponse, summary="Get Regenerated Image")
async def get_regenerated(image_id: str, orchestrator: Orchestrator):
    return DerivedImageResponse.from_entity(await orchestrator.get_regenerated(image_id))


@router.get("/improved/{image_id}", response_model=DerivedImageResponse, summary="Get Improved Image")
async def get_improved(image_id: str, orchestrator: Orchestrator):
    return DerivedImageResponse.from_entity(await orchestrator.get_improved(image_id))
