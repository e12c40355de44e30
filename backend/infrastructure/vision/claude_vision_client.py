from __future__ import annotations

import asyncio
import base64
import json
import logging
import re
from pathlib import Path
from typing import Any

import aiohttp

from domain.collection import VisionNotConfiguredError, VisionServiceError
from infrastructure.config.settings import (
    ANTHROPIC_API_KEY,
    ANTHROPIC_BASE_URL,
    ANTHROPIC_VERSION,
    VISION_MAX_TOKENS,
    VISION_MODEL,
    VISION_TIMEOUT_S,
)

logger = logging.getLogger(__name__)

NOT_CONFIGURED_MESSAGE = "ANTHROPIC_API_KEY not configured. Add it to your .env file."

_MEDIA_TYPES = {
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
}

_JSON_ARRAY_RE = re.compile(r"\[[\s\S]*\]")
_JSON_OBJECT_RE = re.compile(r"\{[\s\S]*\}")


def media_type_for(path: Path) -> str:
    return _MEDIA_TYPES.get(path.suffix.lower(), "image/jpeg")


def extract_json_array(text: str) -> list[Any] | None:
    """First `[...]` span of a model reply, parsed; None when absent or malformed."""
    m = _JSON_ARRAY_RE.search(text or "")
    if not m:
        return None
    try:
        data = json.loads(m.group(0))
    except json.JSONDecodeError:
        return None
    return data if isinstance(data, list) else None


def extract_json_object(text: str) -> dict[str, Any] | None:
    m = _JSON_OBJECT_RE.search(text or "")
    if not m:
        return None
    try:
        data = json.loads(m.group(0))
    except json.JSONDecodeError:
        return None
    return data if isinstance(data, dict) else None


class ClaudeVisionClient:
    """Minimal Anthropic Messages API client: one image + one text prompt in, reply text out."""

    def __init__(
        self,
        *,
        api_key: str | None = None,
        base_url: str | None = None,
        model: str | None = None,
        api_version: str | None = None,
        timeout_s: float | None = None,
    ) -> None:
        self._api_key = (api_key if api_key is not None else ANTHROPIC_API_KEY or "").strip()
        self._base_url = (base_url or ANTHROPIC_BASE_URL or "").rstrip("/")
        self._model = model or VISION_MODEL
        self._api_version = api_version or ANTHROPIC_VERSION
        self._timeout_s = float(timeout_s or VISION_TIMEOUT_S or 120.0)
        self._session: aiohttp.ClientSession | None = None
        self._lock = asyncio.Lock()

    def is_configured(self) -> bool:
        return bool(self._api_key)

    def _headers(self) -> dict[str, str]:
        return {
            "x-api-key": self._api_key,
            "anthropic-version": self._api_version,
            "content-type": "application/json",
        }

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is not None and not self._session.closed:
            return self._session

        async with self._lock:
            if self._session is not None and not self._session.closed:
                return self._session

            timeout = aiohttp.ClientTimeout(total=self._timeout_s)
            self._session = aiohttp.ClientSession(timeout=timeout)
            return self._session

    async def ask_about_image(self, image_path: Path | str, prompt: str, *, max_tokens: int | None = None) -> str:
        if not self.is_configured():
            raise VisionNotConfiguredError(NOT_CONFIGURED_MESSAGE)

        path = Path(image_path)
        if not path.is_file():
            raise FileNotFoundError(f"Image file not found: {path.name}")

        image_bytes = await asyncio.to_thread(path.read_bytes)
        image_b64 = base64.b64encode(image_bytes).decode("ascii")
        payload = {
            "model": self._model,
            "max_tokens": int(max_tokens or VISION_MAX_TOKENS),
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {
                            "type": "image",
                            "source": {"type": "base64", "media_type": media_type_for(path), "data": image_b64},
                        },
                        {"type": "text", "text": prompt},
                    ],
                }
            ],
        }

        session = await self._get_session()
        try:
            async with session.post(f"{self._base_url}/v1/messages", json=payload, headers=self._headers()) as resp:
                if resp.status >= 400:
                    text = await resp.text()
                    raise VisionServiceError(f"vision request failed ({resp.status}): {text[:200]}")
                data = await resp.json(content_type=None)
        except asyncio.TimeoutError as exc:
            raise VisionServiceError(f"vision request timed out after {self._timeout_s}s") from exc
        except aiohttp.ClientError as exc:
            raise VisionServiceError(f"vision request failed: {exc}") from exc

        blocks = (data or {}).get("content") or []
        text = "".join(str(b.get("text") or "") for b in blocks if isinstance(b, dict) and b.get("type") == "text")
        logger.debug("vision reply (%d chars) for %s", len(text), path.name)
        return text

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None
