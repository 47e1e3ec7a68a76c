from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class RawAsset:
    id: str
    session_id: str  # upload batch this image arrived in
    filename: str
    content_type: str  # mime type of the stored bytes, not of the original upload
    size: int  # bytes
    width: int
    height: int
    data: bytes = b""
    uploaded_at: datetime | None = None
