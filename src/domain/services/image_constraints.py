from __future__ import annotations

import math
from dataclasses import dataclass
from io import BytesIO

from PIL import Image, UnidentifiedImageError

from src.domain.errors import ImageError

MAX_IMAGE_DIMENSION = 4096
MIN_BUDGET_DIMENSION = 256
BUDGET_SAFETY_MARGIN = 0.9

# Modes PNG can store as-is; anything else is converted before encoding.
_PNG_MODES = {"1", "L", "LA", "I", "I;16", "P", "RGB", "RGBA"}


@dataclass(frozen=True)
class ImageInfo:
    width: int
    height: int
    format: str  # lower-case Pillow format name, e.g. "png"
    mime_type: str


class ImageConstraintEngine:
    """Decode, validate and transcode images so they fit size budgets.

    Every method takes and returns encoded bytes. When no work is needed the
    input object itself is returned, so callers can rely on identity/equality
    to know that nothing was re-encoded.
    """

    def __init__(self, max_dimension: int = MAX_IMAGE_DIMENSION) -> None:
        self.max_dimension = max_dimension

    @staticmethod
    def _open(data: bytes, action: str = "load") -> Image.Image:
        try:
            img = Image.open(BytesIO(data))
        except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as exc:
            verb = "Invalid image format" if action == "validate" else f"Failed to {action} image"
            raise ImageError(f"{verb}: {exc}") from exc
        return img

    @staticmethod
    def describe(data: bytes) -> ImageInfo:
        img = ImageConstraintEngine._open(data, "read")
        fmt = (img.format or "png").lower()
        mime = Image.MIME.get(img.format or "", f"image/{fmt}")
        return ImageInfo(width=img.width, height=img.height, format=fmt, mime_type=mime)

    def validate(self, data: bytes) -> tuple[int, int]:
        """Return (width, height) or raise ImageError.

        Dimensions are checked from the header before the pixel data is
        decoded, so an oversized image is rejected without allocating it.
        """
        img = self._open(data, "validate")
        width, height = img.size
        if width > self.max_dimension or height > self.max_dimension:
            raise ImageError(
                f"Image dimensions exceed {self.max_dimension}x{self.max_dimension}"
            )
        try:
            img.load()
        except (OSError, ValueError, Image.DecompressionBombError) as exc:
            raise ImageError(f"Invalid image format: {exc}") from exc
        return width, height

    # Uniform downscale: ratio = min(1, max_dimension / max(w, h)), lossless output
    def resize_if_needed(self, data: bytes, max_dimension: int) -> bytes:
        img = self._open(data)
        width, height = img.size
        if width <= max_dimension and height <= max_dimension:
            return data

        ratio = min(1.0, max_dimension / max(width, height))
        new_size = (max(1, int(width * ratio)), max(1, int(height * ratio)))
        resized = self._resample(img, new_size)
        if resized.mode not in _PNG_MODES:
            resized = resized.convert("RGBA" if "A" in resized.mode else "RGB")
        return self._encode(resized, "PNG")

    def ensure_format(self, data: bytes, accepted: tuple[str, ...]) -> bytes:
        """Re-encode to PNG unless the image is already in one of ``accepted``."""
        img = self._open(data)
        if (img.format or "").lower() in accepted:
            return data
        if img.mode not in _PNG_MODES:
            img = img.convert("RGBA" if "A" in img.mode else "RGB")
        return self._encode(img, "PNG")

    # Byte budget: scale = sqrt(max_bytes / size) * margin, lossy output
    def resize_for_budget(self, data: bytes, max_bytes: int) -> bytes:
        """Shrink an image so its encoding is roughly under ``max_bytes``.

        This is a single-pass estimate. Byte size does not scale linearly with
        pixel count for lossy formats, so the result can still land above the
        budget for very noisy images. Neither dimension drops below 256 px.
        """
        if len(data) <= max_bytes:
            return data

        img = self._open(data)
        width, height = img.size
        scale = math.sqrt(max_bytes / len(data)) * BUDGET_SAFETY_MARGIN
        new_size = (
            max(MIN_BUDGET_DIMENSION, int(width * scale)),
            max(MIN_BUDGET_DIMENSION, int(height * scale)),
        )
        resized = self._resample(img, new_size)
        if resized.mode != "RGB":
            resized = resized.convert("RGB")
        return self._encode(resized, "JPEG", quality=85)

    @staticmethod
    def _resample(img: Image.Image, size: tuple[int, int]) -> Image.Image:
        try:
            if img.mode in ("P", "1"):
                img = img.convert("RGBA")
            return img.resize(size, Image.Resampling.LANCZOS)
        except (OSError, ValueError) as exc:
            raise ImageError(f"Failed to resize image: {exc}") from exc

    @staticmethod
    def _encode(img: Image.Image, fmt: str, **params) -> bytes:
        buf = BytesIO()
        try:
            img.save(buf, format=fmt, **params)
        except (OSError, ValueError) as exc:
            raise ImageError(f"Failed to encode resized image: {exc}") from exc
        return buf.getvalue()
