from __future__ import annotations

import uuid
from datetime import UTC, datetime

import structlog

from src.domain.entities.image import RawAsset
from src.domain.errors import NotFoundError, StorageError
from src.infrastructure.database.artifact_store import ArtifactStore
from src.infrastructure.database.repositories.codec import (
    decode_bytes,
    dump_row,
    encode_bytes,
    format_timestamp,
    load_row,
    parse_timestamp,
)

NAMESPACE = "image"

logger = structlog.get_logger(__name__)


def session_index_key(session_id: str) -> str:
    return f"session:{session_id}:images"


class ImageRepository:
    def __init__(self, store: ArtifactStore, ttl: int) -> None:
        self.store = store
        self.ttl = ttl

    def _row_to_entity(self, row: dict) -> RawAsset:
        try:
            return RawAsset(
                id=row["id"],
                session_id=row["session_id"],
                filename=row.get("filename", ""),
                content_type=row["content_type"],
                size=row["size"],
                width=row.get("width", 0),
                height=row.get("height", 0),
                data=decode_bytes(row["data"]),
                uploaded_at=parse_timestamp(row.get("uploaded_at")),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise StorageError(f"Stored image is incomplete: {exc}") from exc

    def create(
        self,
        session_id: str,
        filename: str,
        content_type: str,
        data: bytes,
        width: int,
        height: int,
    ) -> RawAsset:
        """Build a new upload record; nothing is written until ``save``."""
        return RawAsset(
            id=str(uuid.uuid4()),
            session_id=session_id,
            filename=filename,
            content_type=content_type,
            size=len(data),
            width=width,
            height=height,
            data=data,
            uploaded_at=datetime.now(UTC),
        )

    async def save(self, asset: RawAsset) -> RawAsset:
        row = {
            "id": asset.id,
            "session_id": asset.session_id,
            "filename": asset.filename,
            "content_type": asset.content_type,
            "size": asset.size,
            "width": asset.width,
            "height": asset.height,
            "data": encode_bytes(asset.data),
            "uploaded_at": format_timestamp(asset.uploaded_at),
        }
        await self.store.put(NAMESPACE, asset.id, dump_row(row), self.ttl)
        # artifact first, then index: a failure here leaves a stale-but-safe index
        await self.store.index_add(session_index_key(asset.session_id), asset.id, self.ttl)
        return asset

    async def get(self, image_id: str) -> RawAsset:
        payload = await self.store.get(NAMESPACE, image_id)
        return self._row_to_entity(load_row(payload, "image"))

    async def list_by_session(self, session_id: str) -> list[RawAsset]:
        images = []
        for image_id in await self.store.index_members(session_index_key(session_id)):
            try:
                images.append(await self.get(image_id))
            except NotFoundError:
                logger.debug("Skipping expired session member", session_id=session_id, image_id=image_id)
        images.sort(key=lambda i: i.uploaded_at or datetime.min.replace(tzinfo=UTC))
        return images
