from __future__ import annotations

from dataclasses import asdict
from datetime import UTC, datetime

import structlog

from src.domain.entities.analysis import (
    AnalysisMetadata,
    BoundingBox,
    Color,
    Composition,
    GlobalAttributes,
    Region,
    StructuredAnalysis,
)
from src.domain.errors import NotFoundError, StorageError
from src.infrastructure.database.artifact_store import ArtifactStore
from src.infrastructure.database.repositories.codec import (
    dump_row,
    format_timestamp,
    load_row,
    parse_timestamp,
)

NAMESPACE = "analysis"

logger = structlog.get_logger(__name__)


def image_analyses_key(image_id: str) -> str:
    return f"image:{image_id}:analyses"


def _colors(rows: list[dict]) -> tuple[Color, ...]:
    return tuple(Color(hex=c["hex"], rgb=tuple(c["rgb"]), percentage=c["percentage"]) for c in rows)


class AnalysisRepository:
    def __init__(self, store: ArtifactStore, ttl: int) -> None:
        self.store = store
        self.ttl = ttl

    def _row_to_entity(self, row: dict) -> StructuredAnalysis:
        try:
            ga = row.get("global_attributes") or {}
            comp = row.get("composition") or {}
            meta = row.get("metadata")
            return StructuredAnalysis(
                id=row["id"],
                image_id=row["image_id"],
                provider=row["provider"],
                regions=tuple(
                    Region(
                        id=r["id"],
                        coordinates=BoundingBox(**r["coordinates"]),
                        dominant_colors=_colors(r.get("dominant_colors", [])),
                        object_description=r.get("object_description", ""),
                        texture_description=r.get("texture_description", ""),
                        importance_score=r.get("importance_score", 0.5),
                    )
                    for r in row["regions"]
                ),
                global_attributes=GlobalAttributes(
                    style=ga.get("style", "unknown"),
                    mood=ga.get("mood", "neutral"),
                    lighting=ga.get("lighting", "natural"),
                    perspective=ga.get("perspective", "eye-level"),
                    dominant_colors=_colors(ga.get("dominant_colors", [])),
                ),
                composition=Composition(
                    layout=comp.get("layout", "centered"),
                    focal_points=tuple(tuple(p) for p in comp.get("focal_points", [])),
                    balance=comp.get("balance", "symmetric"),
                    depth_layers=tuple(comp.get("depth_layers", [])),
                ),
                generation_prompt=row.get("generation_prompt", ""),
                metadata=AnalysisMetadata(**meta) if meta else None,
                created_at=parse_timestamp(row.get("created_at")),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise StorageError(f"Stored analysis is incomplete: {exc}") from exc

    async def save(self, analysis: StructuredAnalysis) -> StructuredAnalysis:
        row = asdict(analysis)
        row["created_at"] = format_timestamp(analysis.created_at)
        await self.store.put(NAMESPACE, analysis.id, dump_row(row), self.ttl)
        await self.store.index_add(image_analyses_key(analysis.image_id), analysis.id, self.ttl)
        return analysis

    async def get(self, analysis_id: str) -> StructuredAnalysis:
        payload = await self.store.get(NAMESPACE, analysis_id)
        return self._row_to_entity(load_row(payload, "analysis"))

    async def list_by_image(self, image_id: str) -> list[StructuredAnalysis]:
        analyses = []
        for analysis_id in await self.store.index_members(image_analyses_key(image_id)):
            try:
                analyses.append(await self.get(analysis_id))
            except NotFoundError:
                logger.debug("Skipping expired analysis", image_id=image_id, analysis_id=analysis_id)
        analyses.sort(key=lambda a: a.created_at or datetime.min.replace(tzinfo=UTC))
        return analyses
