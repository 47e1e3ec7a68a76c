"""Capability interfaces for analysis and generation backends.

Backends are flat classes that satisfy these protocols structurally; they
share no base class. Each holds its own credential, endpoint and model name
and shrinks images to its own payload ceiling before sending them.
"""
from __future__ import annotations

from typing import Any, Protocol

# Output formats a generation backend can be asked for.
FORMAT_HINTS = ("png", "jpeg", "webp")


class AnalysisProvider(Protocol):
    name: str
    vision_model: str

    async def analyze(self, image_bytes: bytes, prompt_template: str) -> Any:
        """Return the model's JSON answer as a generic (unvalidated) tree."""
        ...


class GenerationProvider(Protocol):
    name: str
    image_model: str

    async def generate(
        self, prompt: str, format_hint: str = "png", style_preset: str | None = None
    ) -> bytes:
        """Synthesize a new image from text."""
        ...

    async def improve(self, base_image_bytes: bytes, prompt: str) -> bytes:
        """Edit an existing image according to ``prompt``."""
        ...
