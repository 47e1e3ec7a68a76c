from __future__ import annotations

import uuid
from datetime import UTC, datetime

from src.domain.entities.derived_image import (
    IMPROVED,
    REGENERATED,
    DerivedImage,
    GenerationParams,
    ImageFormat,
)
from src.domain.errors import StorageError
from src.infrastructure.database.artifact_store import ArtifactStore
from src.infrastructure.database.repositories.codec import (
    decode_bytes,
    dump_row,
    encode_bytes,
    format_timestamp,
    load_row,
    parse_timestamp,
)


class DerivedImageRepository:
    """Regenerated and improved images.

    Both kinds share one record shape; the kind doubles as the store
    namespace (``regenerated:{id}`` / ``improved:{id}``).
    """

    def __init__(self, store: ArtifactStore, ttl: int) -> None:
        self.store = store
        self.ttl = ttl

    def _row_to_entity(self, row: dict) -> DerivedImage:
        try:
            fmt = row["format"]
            params = row["generation_params"]
            return DerivedImage(
                id=row["id"],
                kind=row["kind"],
                parent_id=row["parent_id"],
                format=ImageFormat(name=fmt["name"], width=fmt["width"], height=fmt["height"]),
                data=decode_bytes(row["data"]),
                prompt_used=row.get("prompt_used", ""),
                generation_params=GenerationParams(
                    provider=params["provider"],
                    model=params.get("model", ""),
                    format_hint=params.get("format_hint", "png"),
                    style_preset=params.get("style_preset"),
                ),
                created_at=parse_timestamp(row.get("created_at")),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise StorageError(f"Stored image is incomplete: {exc}") from exc

    def create(
        self,
        kind: str,
        parent_id: str,
        data: bytes,
        image_format: ImageFormat,
        prompt_used: str,
        generation_params: GenerationParams,
    ) -> DerivedImage:
        if kind not in (REGENERATED, IMPROVED):
            raise ValueError(f"Unknown derived image kind: {kind}")
        return DerivedImage(
            id=str(uuid.uuid4()),
            kind=kind,
            parent_id=parent_id,
            format=image_format,
            data=data,
            prompt_used=prompt_used,
            generation_params=generation_params,
            created_at=datetime.now(UTC),
        )

    async def save(self, image: DerivedImage) -> DerivedImage:
        row = {
            "id": image.id,
            "kind": image.kind,
            "parent_id": image.parent_id,
            "format": {
                "name": image.format.name,
                "width": image.format.width,
                "height": image.format.height,
            },
            "data": encode_bytes(image.data),
            "prompt_used": image.prompt_used,
            "generation_params": {
                "provider": image.generation_params.provider,
                "model": image.generation_params.model,
                "format_hint": image.generation_params.format_hint,
                "style_preset": image.generation_params.style_preset,
            },
            "created_at": format_timestamp(image.created_at),
        }
        await self.store.put(image.kind, image.id, dump_row(row), self.ttl)
        return image

    async def get(self, kind: str, image_id: str) -> DerivedImage:
        payload = await self.store.get(kind, image_id)
        return self._row_to_entity(load_row(payload, f"{kind} image"))

    async def get_regenerated(self, image_id: str) -> DerivedImage:
        return await self.get(REGENERATED, image_id)

    async def get_improved(self, image_id: str) -> DerivedImage:
        return await self.get(IMPROVED, image_id)
