"""Offline analysis and generation backend.

Mirrors the remote providers closely enough to drive the whole pipeline
without network access: analysis emits the same loose JSON shape a vision
model would (and goes through the same normalizer), generation renders
deterministic images from the prompt text.

Images are handled as float32 arrays normalized to [0, 1], shape (H, W, 3).
"""
from __future__ import annotations

import hashlib
from io import BytesIO
from typing import Any

import numpy as np
from PIL import Image

from src.domain.errors import ImageError, ProviderError
from src.domain.services.image_constraints import ImageConstraintEngine

NAME = "local"
MODEL = "local-numpy"

MAX_IMAGE_DIMENSION = 1024
OUTPUT_SIZE = 512
GRID = 2  # regions per axis
PALETTE_SIZE = 4
IMPROVE_BLEND = 0.35


def _to_array(data: bytes) -> np.ndarray:
    img = Image.open(BytesIO(data)).convert("RGB")
    return np.asarray(img).astype(np.float32) / 255.0


def _encode(array: np.ndarray, fmt: str) -> bytes:
    pil_arr = (np.clip(array, 0.0, 1.0) * 255.0).astype("uint8")
    img = Image.fromarray(pil_arr)
    buf = BytesIO()
    pil_fmt = {"jpeg": "JPEG", "webp": "WEBP"}.get(fmt, "PNG")
    img.save(buf, format=pil_fmt, quality=95)
    return buf.getvalue()


def _hex(rgb: np.ndarray) -> str:
    r, g, b = (int(v) for v in rgb)
    return f"#{r:02x}{g:02x}{b:02x}"


def _prompt_seed(prompt: str) -> int:
    return int.from_bytes(hashlib.sha256(prompt.encode("utf-8")).digest()[:8], "big")


class LocalProvider:
    name = NAME
    vision_model = MODEL
    image_model = MODEL

    def __init__(self, constraints: ImageConstraintEngine) -> None:
        self.constraints = constraints

    # Dominant colors: quantize each channel to 4 levels, count the buckets
    @staticmethod
    def dominant_colors(pixels: np.ndarray, limit: int = PALETTE_SIZE) -> list[dict[str, Any]]:
        flat = pixels.reshape(-1, 3)
        if flat.size == 0:
            return []
        levels = np.clip((flat * 4).astype(np.int32), 0, 3)
        codes = levels[:, 0] * 16 + levels[:, 1] * 4 + levels[:, 2]
        counts = np.bincount(codes, minlength=64)
        colors = []
        for code in np.argsort(counts)[::-1][:limit]:
            if counts[code] == 0:
                break
            mean = flat[codes == code].mean(axis=0)
            rgb = np.round(mean * 255.0).astype(np.int32)
            colors.append(
                {
                    "hex": _hex(rgb),
                    "rgb": [int(v) for v in rgb],
                    "percentage": round(float(counts[code]) * 100.0 / len(codes), 2),
                }
            )
        return colors

    async def analyze(self, image_bytes: bytes, prompt_template: str) -> Any:
        try:
            data = self.constraints.resize_if_needed(image_bytes, MAX_IMAGE_DIMENSION)
            arr = _to_array(data)
        except (ImageError, OSError) as exc:
            raise ProviderError(NAME, f"Local analysis failed: {exc}") from exc

        h, w = arr.shape[:2]
        luma = np.dot(arr[..., :3], np.array([0.299, 0.587, 0.114], dtype=np.float32))
        contrast = float(luma.std()) or 1.0

        regions = []
        for gy in range(GRID):
            for gx in range(GRID):
                y0, y1 = gy * h // GRID, (gy + 1) * h // GRID
                x0, x1 = gx * w // GRID, (gx + 1) * w // GRID
                cell = arr[y0:y1, x0:x1]
                cell_luma = luma[y0:y1, x0:x1]
                importance = min(1.0, float(cell_luma.std()) / contrast / 2.0 + 0.25)
                tone = "bright" if cell_luma.mean() > 0.6 else "dark" if cell_luma.mean() < 0.3 else "mid-tone"
                regions.append(
                    {
                        "coordinates": {
                            "x": round(100.0 * gx / GRID, 2),
                            "y": round(100.0 * gy / GRID, 2),
                            "width": round(100.0 / GRID, 2),
                            "height": round(100.0 / GRID, 2),
                        },
                        "dominant_colors": self.dominant_colors(cell, limit=2),
                        "object_description": f"{tone} area",
                        "texture_description": "smooth" if cell_luma.std() < 0.05 else "textured",
                        "importance_score": round(importance, 3),
                    }
                )

        # Focal point: centroid of the pixels furthest from mean brightness
        deviation = np.abs(luma - luma.mean())
        total = float(deviation.sum())
        if total > 0:
            ys, xs = np.mgrid[0:h, 0:w]
            focal = [{"x": round(float((xs * deviation).sum() / total / w), 3),
                      "y": round(float((ys * deviation).sum() / total / h), 3)}]
        else:
            focal = [{"x": 0.5, "y": 0.5}]

        mean_luma = float(luma.mean())
        mood = "bright" if mean_luma > 0.65 else "dark" if mean_luma < 0.35 else "neutral"
        left, right = luma[:, : w // 2].mean(), luma[:, w - w // 2 :].mean()
        balance = "symmetric" if abs(float(left - right)) < 0.05 else "asymmetric"
        palette = self.dominant_colors(arr)
        return {
            "regions": regions,
            "global_attributes": {
                "style": "photographic",
                "mood": mood,
                "lighting": "natural",
                "perspective": "eye-level",
                "dominant_colors": palette,
            },
            "composition": {
                "layout": "grid",
                "focal_points": focal,
                "balance": balance,
                "depth_layers": ["foreground", "background"],
            },
            "confidence_score": 0.5,
        }

    # Synthesis: diagonal gradient between two prompt-derived colors
    async def generate(
        self, prompt: str, format_hint: str = "png", style_preset: str | None = None
    ) -> bytes:
        rng = np.random.default_rng(_prompt_seed(f"{prompt}|{style_preset or ''}"))
        start, end = rng.random(3, dtype=np.float32), rng.random(3, dtype=np.float32)
        ramp = np.linspace(0.0, 1.0, OUTPUT_SIZE, dtype=np.float32)
        t = (ramp[:, None] + ramp[None, :]) / 2.0
        out = start[None, None, :] * (1.0 - t[..., None]) + end[None, None, :] * t[..., None]
        return _encode(out, format_hint)

    # Refinement: blend the base image toward a prompt-derived tint
    async def improve(self, base_image_bytes: bytes, prompt: str) -> bytes:
        try:
            data = self.constraints.resize_if_needed(base_image_bytes, MAX_IMAGE_DIMENSION)
            base = _to_array(data)
        except (ImageError, OSError) as exc:
            raise ProviderError(NAME, f"Local improvement failed: {exc}") from exc
        tint = np.random.default_rng(_prompt_seed(prompt)).random(3, dtype=np.float32)
        out = base * (1.0 - IMPROVE_BLEND) + tint[None, None, :] * IMPROVE_BLEND
        return _encode(out, "png")
