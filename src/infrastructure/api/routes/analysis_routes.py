from __future__ import annotations

from fastapi import APIRouter, Query

from src.application.dtos.analysis_dto import StructuredAnalysisResponse
from src.application.dtos.common_dto import ERROR_RESPONSES
from src.infrastructure.api.dependencies import Orchestrator

router = APIRouter(tags=["Analysis"], responses=ERROR_RESPONSES)


@router.post(
    "/analyze/{image_id}",
    response_model=StructuredAnalysisResponse,
    summary="Analyze Image",
    description="""
    Run a vision model over an uploaded image and store the normalized result.

    Missing optional fields in the model output are filled with defaults; an
    answer without a regions list is rejected with 502.
    """,
)
async def analyze_image(
    image_id: str,
    orchestrator: Orchestrator,
    provider: str = Query("openai", description="Analysis provider", example="anthropic"),
):
    analysis = await orchestrator.analyze(image_id, provider)
    return StructuredAnalysisResponse.from_entity(analysis)


@router.get(
    "/analysis/{analysis_id}",
    response_model=StructuredAnalysisResponse,
    summary="Get Analysis",
)
async def get_analysis(analysis_id: str, orchestrator: Orchestrator):
    return StructuredAnalysisResponse.from_entity(await orchestrator.get_analysis(analysis_id))
