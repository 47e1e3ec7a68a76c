"""Common DTOs for API responses and error handling."""
from __future__ import annotations

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Standard error response model."""
    error: str = Field(..., description="Machine-readable error kind", example="not_found")
    detail: str = Field(..., description="Error message describing what went wrong")


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(..., description="Health status", example="healthy")
    service: str = Field(..., description="Service name", example="reimagine-backend")
    version: str = Field(..., description="API version", example="0.1.0")
    store: str = Field(..., description="Artifact store connectivity", example="ok")


class RootResponse(BaseModel):
    """Root endpoint response model."""
    status: str = Field(..., description="API status", example="ok")
    service: str = Field(..., description="Service name", example="reimagine-backend")
    version: str = Field(..., description="API version", example="0.1.0")
    analysis_providers: list[str] = Field(
        default_factory=list, description="Registered analysis providers", example=["openai", "anthropic"]
    )
    generation_providers: list[str] = Field(
        default_factory=list, description="Registered generation providers", example=["openai", "stabilityai"]
    )


ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Bad Request - Invalid input, provider or image"},
    404: {"model": ErrorResponse, "description": "Not Found - Artifact does not exist or has expired"},
    500: {"model": ErrorResponse, "description": "Storage Error - Artifact store unavailable"},
    502: {"model": ErrorResponse, "description": "Provider Error - Upstream model call failed"},
}
