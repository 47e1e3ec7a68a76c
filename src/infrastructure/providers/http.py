"""Shared request helper for provider backends.

Every failure mode of an outbound call (timeout, transport error, non-2xx
status, unparseable body) is reported as ``ProviderError`` with the upstream
message kept for diagnostics. Nothing is retried.
"""
from __future__ import annotations

import base64
import binascii
import time
from typing import Any

import httpx
import structlog

from src.domain.errors import ProviderError

logger = structlog.get_logger(__name__)

LABELS = {"openai": "OpenAI", "anthropic": "Anthropic", "stabilityai": "Stability AI"}


def label(provider: str) -> str:
    return LABELS.get(provider, provider.capitalize())


def _upstream_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:2000]
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str):
            return error
        errors = body.get("errors")
        if isinstance(errors, list) and errors:
            return "; ".join(str(e) for e in errors)
        if body.get("message"):
            return str(body["message"])
    return response.text[:2000]


async def send(
    client: httpx.AsyncClient,
    provider: str,
    url: str,
    **kwargs: Any,
) -> httpx.Response:
    name = label(provider)
    start = time.perf_counter()
    try:
        response = await client.post(url, **kwargs)
    except httpx.TimeoutException as exc:
        logger.warning("Provider request timed out", provider=provider, url=url)
        raise ProviderError(provider, f"{name} request timed out") from exc
    except httpx.HTTPError as exc:
        logger.warning("Provider request failed", provider=provider, url=url, error=str(exc))
        raise ProviderError(provider, f"{name} request failed: {exc}") from exc

    duration_ms = int((time.perf_counter() - start) * 1000)
    if not response.is_success:
        message = _upstream_message(response)
        logger.warning(
            "Provider returned an error",
            provider=provider,
            status_code=response.status_code,
            duration_ms=duration_ms,
            error=message,
        )
        raise ProviderError(
            provider, f"{name} error ({response.status_code}): {message}", response.status_code
        )
    logger.info("Provider request completed", provider=provider, duration_ms=duration_ms)
    return response


def json_body(provider: str, response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError as exc:
        raise ProviderError(
            provider, f"Failed to parse {label(provider)} response: {exc}"
        ) from exc


def decode_b64_image(provider: str, value: Any) -> bytes:
    if not isinstance(value, str) or not value:
        raise ProviderError(provider, "No image data in response")
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ProviderError(provider, f"Failed to decode image: {exc}") from exc
