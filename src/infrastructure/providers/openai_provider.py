from __future__ import annotations

import base64
from typing import Any

import httpx
import structlog

from src.domain.errors import ProviderError
from src.domain.services.analysis_normalizer import extract_json_object
from src.domain.services.image_constraints import ImageConstraintEngine
from src.infrastructure.providers.http import decode_b64_image, json_body, send
from src.infrastructure.providers.prompts import with_style_preset

NAME = "openai"

# Vision input limit per image, and the stricter limit of the edits endpoint.
MAX_ANALYSIS_BYTES = 20_000_000
MAX_EDIT_BYTES = 4_000_000
MAX_EDIT_DIMENSION = 2048

# Encodings each endpoint accepts; anything else is converted to PNG first.
VISION_FORMATS = ("png", "jpeg", "gif", "webp")
EDIT_FORMATS = ("png", "jpeg", "webp")

logger = structlog.get_logger(__name__)


class OpenAIProvider:
    """Vision analysis (chat completions) and image generation/editing."""

    name = NAME

    def __init__(
        self,
        api_key: str | None,
        client: httpx.AsyncClient,
        constraints: ImageConstraintEngine,
        base_url: str = "https://api.openai.com/v1",
        vision_model: str = "gpt-4o",
        image_model: str = "gpt-image-1",
    ) -> None:
        self.api_key = api_key
        self.client = client
        self.constraints = constraints
        self.base_url = base_url.rstrip("/")
        self.vision_model = vision_model
        self.image_model = image_model

    def _headers(self) -> dict[str, str]:
        if not self.api_key:
            raise ProviderError(NAME, "OpenAI API key not configured")
        return {"Authorization": f"Bearer {self.api_key}"}

    async def analyze(self, image_bytes: bytes, prompt_template: str) -> Any:
        headers = self._headers()
        data = self.constraints.ensure_format(image_bytes, VISION_FORMATS)
        data = self.constraints.resize_for_budget(data, MAX_ANALYSIS_BYTES)
        mime = self.constraints.describe(data).mime_type
        encoded = base64.b64encode(data).decode("ascii")
        payload = {
            "model": self.vision_model,
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": prompt_template},
                        {"type": "image_url", "image_url": {"url": f"data:{mime};base64,{encoded}"}},
                    ],
                }
            ],
            "max_tokens": 4096,
            "response_format": {"type": "json_object"},
        }
        response = await send(
            self.client, NAME, f"{self.base_url}/chat/completions", headers=headers, json=payload
        )
        result = json_body(NAME, response)
        try:
            content = result["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            content = None
        if not isinstance(content, str) or not content.strip():
            raise ProviderError(NAME, "No content in OpenAI response")
        try:
            return extract_json_object(content)
        except ValueError as exc:
            raise ProviderError(NAME, f"Failed to parse analysis JSON: {exc}") from exc

    async def generate(
        self, prompt: str, format_hint: str = "png", style_preset: str | None = None
    ) -> bytes:
        headers = self._headers()
        payload: dict[str, Any] = {
            "model": self.image_model,
            "prompt": with_style_preset(prompt, style_preset),
            "n": 1,
            "size": "1024x1024",
        }
        if self.image_model.startswith("dall-e"):
            payload["response_format"] = "b64_json"
        else:
            payload["output_format"] = format_hint
        response = await send(
            self.client, NAME, f"{self.base_url}/images/generations", headers=headers, json=payload
        )
        return self._first_image(json_body(NAME, response))

    async def improve(self, base_image_bytes: bytes, prompt: str) -> bytes:
        headers = self._headers()
        data = self.constraints.ensure_format(base_image_bytes, EDIT_FORMATS)
        data = self.constraints.resize_if_needed(data, MAX_EDIT_DIMENSION)
        data = self.constraints.resize_for_budget(data, MAX_EDIT_BYTES)
        info = self.constraints.describe(data)
        files = {"image": (f"image.{info.format}", data, info.mime_type)}
        form = {"model": self.image_model, "prompt": prompt, "n": "1", "size": "1024x1024"}
        if self.image_model.startswith("dall-e"):
            form["response_format"] = "b64_json"
        logger.debug("Sending image edit", provider=NAME, size=len(data))
        response = await send(
            self.client,
            NAME,
            f"{self.base_url}/images/edits",
            headers=headers,
            data=form,
            files=files,
        )
        return self._first_image(json_body(NAME, response))

    @staticmethod
    def _first_image(result: Any) -> bytes:
        try:
            b64 = result["data"][0]["b64_json"]
        except (KeyError, IndexError, TypeError):
            b64 = None
        return decode_b64_image(NAME, b64)
