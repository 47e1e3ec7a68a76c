"""JSON row encoding shared by the artifact repositories."""
from __future__ import annotations

import base64
import binascii
import json
from datetime import datetime
from typing import Any

from src.domain.errors import StorageError


def dump_row(row: dict[str, Any]) -> bytes:
    try:
        return json.dumps(row, separators=(",", ":")).encode("utf-8")
    except (TypeError, ValueError) as exc:
        raise StorageError(f"Serialization error: {exc}") from exc


def load_row(payload: bytes, what: str) -> dict[str, Any]:
    try:
        row = json.loads(payload)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise StorageError(f"Stored {what} is not valid JSON: {exc}") from exc
    if not isinstance(row, dict):
        raise StorageError(f"Stored {what} has unexpected shape")
    return row


def encode_bytes(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def decode_bytes(value: str) -> bytes:
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise StorageError(f"Stored image data is not valid base64: {exc}") from exc


def format_timestamp(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def parse_timestamp(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None
