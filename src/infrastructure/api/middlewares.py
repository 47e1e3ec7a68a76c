from __future__ import annotations

import time

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.cors import CORSMiddleware

from src.domain.errors import (
    ImageError,
    MalformedAnalysisError,
    NotFoundError,
    PipelineError,
    ProviderError,
    StorageError,
    ValidationError,
)

logger = structlog.get_logger(__name__)

STATUS_BY_ERROR: dict[type[PipelineError], int] = {
    ValidationError: 400,
    ImageError: 400,
    NotFoundError: 404,
    ProviderError: 502,
    MalformedAnalysisError: 502,
    StorageError: 500,
}


def add_default_middlewares(app: FastAPI, env: str = "development") -> None:
    # CORS configuration
    # In development/demo mode, allow common frontend origins
    if env in ("development", "staging"):
        allowed_origins = [
            "http://localhost:3000",
            "http://localhost:5173",  # Vite default
            "http://127.0.0.1:3000",
            "http://127.0.0.1:5173",
        ]
    else:
        allowed_origins = ["*"]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=allowed_origins != ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        logger.info(
            "Request handled",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            duration_ms=round((time.perf_counter() - start) * 1000, 1),
        )
        return response


def status_for(exc: PipelineError) -> int:
    for cls in type(exc).__mro__:
        if cls in STATUS_BY_ERROR:
            return STATUS_BY_ERROR[cls]
    return 500


def add_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(PipelineError)
    async def handle_pipeline_error(request: Request, exc: PipelineError) -> JSONResponse:
        status = status_for(exc)
        if status >= 500:
            logger.error(
                "Request failed",
                path=request.url.path,
                error=exc.kind,
                detail=exc.message,
                provider=getattr(exc, "provider", None),
                upstream_status=getattr(exc, "status_code", None),
            )
        else:
            logger.info("Request rejected", path=request.url.path, error=exc.kind, detail=exc.message)
        return JSONResponse(status_code=status, content={"error": exc.kind, "detail": exc.message})
