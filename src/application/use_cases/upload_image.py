from __future__ import annotations

import uuid
from dataclasses import dataclass

import structlog

from src.domain.entities.image import RawAsset
from src.domain.errors import ValidationError
from src.domain.services.image_constraints import ImageConstraintEngine
from src.infrastructure.database.repositories.image_repository import ImageRepository

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class IncomingImage:
    filename: str
    content_type: str | None
    data: bytes


@dataclass
class UploadImagesUseCase:
    image_repo: ImageRepository
    constraints: ImageConstraintEngine
    max_dimension: int = 2048

    async def execute(self, files: list[IncomingImage]) -> tuple[str, list[RawAsset]]:
        """
        Store a batch of uploads under a fresh session id.

        Every file is validated and resized before anything is written, so a
        single bad file rejects the whole batch without leaving partial
        uploads behind.
        """
        if not files:
            raise ValidationError("No files provided")

        session_id = str(uuid.uuid4())
        prepared: list[RawAsset] = []
        for f in files:
            if not f.filename:
                raise ValidationError("No filename provided")
            self.constraints.validate(f.data)
            data = self.constraints.resize_if_needed(f.data, self.max_dimension)
            info = self.constraints.describe(data)
            prepared.append(
                self.image_repo.create(
                    session_id=session_id,
                    filename=f.filename,
                    content_type=info.mime_type,
                    data=data,
                    width=info.width,
                    height=info.height,
                )
            )

        stored = [await self.image_repo.save(asset) for asset in prepared]
        logger.info("Images uploaded", session_id=session_id, count=len(stored))
        return session_id, stored
