from __future__ import annotations

import base64
from typing import Any

import httpx

from src.domain.errors import ProviderError
from src.domain.services.analysis_normalizer import extract_json_object
from src.domain.services.image_constraints import ImageConstraintEngine
from src.infrastructure.providers.http import json_body, send

NAME = "anthropic"
API_VERSION = "2023-06-01"

# The API caps base64 images at 5 MB; base64 inflates by ~33%, so keep the
# raw bytes under ~3.75 MB.
MAX_IMAGE_BYTES = 3_750_000
SUPPORTED_FORMATS = ("png", "jpeg", "gif", "webp")


class AnthropicProvider:
    """Vision analysis through the Messages API. Analysis only."""

    name = NAME

    def __init__(
        self,
        api_key: str | None,
        client: httpx.AsyncClient,
        constraints: ImageConstraintEngine,
        base_url: str = "https://api.anthropic.com/v1",
        model: str = "claude-3-5-sonnet-latest",
    ) -> None:
        self.api_key = api_key
        self.client = client
        self.constraints = constraints
        self.base_url = base_url.rstrip("/")
        self.vision_model = model

    async def analyze(self, image_bytes: bytes, prompt_template: str) -> Any:
        if not self.api_key:
            raise ProviderError(NAME, "Anthropic API key not configured")

        data = self.constraints.ensure_format(image_bytes, SUPPORTED_FORMATS)
        data = self.constraints.resize_for_budget(data, MAX_IMAGE_BYTES)
        media_type = self.constraints.describe(data).mime_type
        payload = {
            "model": self.vision_model,
            "max_tokens": 4096,
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": prompt_template},
                        {
                            "type": "image",
                            "source": {
                                "type": "base64",
                                "media_type": media_type,
                                "data": base64.b64encode(data).decode("ascii"),
                            },
                        },
                    ],
                }
            ],
        }
        headers = {
            "x-api-key": self.api_key,
            "anthropic-version": API_VERSION,
            "content-type": "application/json",
        }
        response = await send(self.client, NAME, f"{self.base_url}/messages", headers=headers, json=payload)
        result = json_body(NAME, response)

        blocks = result.get("content") if isinstance(result, dict) else None
        text = "".join(
            b.get("text", "")
            for b in blocks or []
            if isinstance(b, dict) and b.get("type") == "text"
        )
        if not text.strip():
            raise ProviderError(NAME, "No content in Anthropic response")
        try:
            return extract_json_object(text)
        except ValueError as exc:
            raise ProviderError(NAME, f"Failed to parse analysis JSON: {exc}") from exc
