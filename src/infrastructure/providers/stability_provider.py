from __future__ import annotations

import httpx

from src.domain.errors import ProviderError, ValidationError
from src.domain.services.image_constraints import ImageConstraintEngine
from src.infrastructure.providers.http import send

NAME = "stabilityai"

MAX_IMAGE_BYTES = 10_000_000
MAX_IMAGE_DIMENSION = 2048
IMPROVE_STRENGTH = "0.6"
SUPPORTED_FORMATS = ("png", "jpeg", "webp")

STYLE_PRESETS = {
    "3d-model", "analog-film", "anime", "cinematic", "comic-book", "digital-art",
    "enhance", "fantasy-art", "isometric", "line-art", "low-poly", "modeling-compound",
    "neon-punk", "origami", "photographic", "pixel-art", "tile-texture",
}


class StabilityProvider:
    """Image synthesis (Stable Image Core) and image-to-image refinement (SD3)."""

    name = NAME

    def __init__(
        self,
        api_key: str | None,
        client: httpx.AsyncClient,
        constraints: ImageConstraintEngine,
        base_url: str = "https://api.stability.ai",
        model: str = "sd3.5-large",
    ) -> None:
        self.api_key = api_key
        self.client = client
        self.constraints = constraints
        self.base_url = base_url.rstrip("/")
        self.image_model = model

    def _headers(self) -> dict[str, str]:
        if not self.api_key:
            raise ProviderError(NAME, "Stability AI API key not configured")
        return {"Authorization": f"Bearer {self.api_key}", "Accept": "image/*"}

    async def generate(
        self, prompt: str, format_hint: str = "png", style_preset: str | None = None
    ) -> bytes:
        headers = self._headers()
        form = {"prompt": prompt, "output_format": format_hint}
        if style_preset:
            if style_preset not in STYLE_PRESETS:
                raise ValidationError(f"Unsupported style preset: {style_preset}")
            form["style_preset"] = style_preset
        # the endpoint only accepts multipart bodies, even without a file
        response = await send(
            self.client,
            NAME,
            f"{self.base_url}/v2beta/stable-image/generate/core",
            headers=headers,
            data=form,
            files={"none": ("", b"")},
        )
        return response.content

    async def improve(self, base_image_bytes: bytes, prompt: str) -> bytes:
        headers = self._headers()
        data = self.constraints.ensure_format(base_image_bytes, SUPPORTED_FORMATS)
        data = self.constraints.resize_if_needed(data, MAX_IMAGE_DIMENSION)
        data = self.constraints.resize_for_budget(data, MAX_IMAGE_BYTES)
        info = self.constraints.describe(data)
        form = {
            "prompt": prompt,
            "mode": "image-to-image",
            "strength": IMPROVE_STRENGTH,
            "model": self.image_model,
            "output_format": "png",
        }
        response = await send(
            self.client,
            NAME,
            f"{self.base_url}/v2beta/stable-image/generate/sd3",
            headers=headers,
            data=form,
            files={"image": (f"image.{info.format}", data, info.mime_type)},
        )
        return response.content
