from __future__ import annotations

import asyncio
import logging
import re
from pathlib import Path
from typing import Any

import aiohttp

from application.ports.barcode_port import BarcodeLookupResult, BarcodePort
from domain.imports import MovieCandidate
from infrastructure.config.settings import HTTP_USER_AGENT, UPCITEMDB_LOOKUP_URL, UPCITEMDB_TIMEOUT_S
from infrastructure.enrichment.tmdb_client import TMDBClient
from infrastructure.vision.claude_vision_client import ClaudeVisionClient, extract_json_object

logger = logging.getLogger(__name__)

BARCODE_PROMPT = """Look at this image and find any barcodes (UPC, EAN, ISBN).

Please extract the barcode number(s) you can see. Return ONLY a JSON object with the barcode number, no other text:

{"barcode": "123456789012", "type": "UPC-A"}

If you cannot find a clear barcode, return: {"barcode": null, "error": "No barcode detected"}

Common barcode formats:
- UPC-A: 12 digits
- EAN-13: 13 digits
- ISBN: 10 or 13 digits"""

BARCODE_MAX_TOKENS = 1024

_BARCODE_RE = re.compile(r"^\d{8,14}$")

EDITIONS = (
    "Special Edition",
    "Collector's Edition",
    "Director's Cut",
    "Extended Edition",
    "Limited Edition",
    "Anniversary Edition",
    "Criterion Collection",
)

# Applied in order to a product title before the TMDB search.
_TITLE_CLEANUP: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"\([^)]*\)"), ""),
    (re.compile(r"\[[^\]]*\]"), ""),
    (re.compile(r"\b(DVD|Blu-ray|BluRay|4K|Ultra HD|UHD|Digital Copy|Digital HD|HDX)\b", re.I), ""),
    (re.compile(r"\b(" + "|".join(re.escape(e) for e in EDITIONS) + r")\b", re.I), ""),
    (re.compile(r"\b(Sony Pictures|Warner Bros|Universal|Paramount|Disney|Fox|MGM|Lionsgate)\b", re.I), ""),
    (re.compile(r"[+\-:]"), " "),
    (re.compile(r"\s+"), " "),
)


def is_valid_barcode(value: Any) -> bool:
    return isinstance(value, str) and bool(_BARCODE_RE.match(value))


def clean_product_title(title: str) -> str:
    out = title or ""
    for pattern, repl in _TITLE_CLEANUP:
        out = pattern.sub(repl, out)
    return out.strip()


def detect_format(product_title: str) -> str:
    t = (product_title or "").lower()
    if "4k" in t or "ultra hd" in t:
        return "4k"
    if "blu-ray" in t or "bluray" in t:
        return "bluray"
    return "dvd"


def extract_edition(product_title: str) -> str:
    for edition in EDITIONS:
        if edition in (product_title or ""):
            return edition
    return ""


class BarcodeLookupService(BarcodePort):
    """Barcode photo -> barcode digits (vision) -> product (UPCitemdb) -> movie metadata (TMDB)."""

    def __init__(
        self,
        *,
        vision: ClaudeVisionClient,
        tmdb: TMDBClient | None = None,
        lookup_url: str | None = None,
        timeout_s: float | None = None,
    ) -> None:
        self._vision = vision
        self._tmdb = tmdb
        self._lookup_url = lookup_url or UPCITEMDB_LOOKUP_URL
        self._timeout_s = float(timeout_s or UPCITEMDB_TIMEOUT_S or 10.0)
        self._session: aiohttp.ClientSession | None = None
        self._lock = asyncio.Lock()

    def is_configured(self) -> bool:
        return self._vision.is_configured()

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is not None and not self._session.closed:
            return self._session

        async with self._lock:
            if self._session is not None and not self._session.closed:
                return self._session

            timeout = aiohttp.ClientTimeout(total=self._timeout_s)
            self._session = aiohttp.ClientSession(timeout=timeout)
            return self._session

    async def extract_barcode(self, image_path: Path) -> dict[str, Any]:
        reply = await self._vision.ask_about_image(image_path, BARCODE_PROMPT, max_tokens=BARCODE_MAX_TOKENS)
        data = extract_json_object(reply)
        if data is None:
            return {"barcode": None, "error": "Failed to parse barcode response"}
        return data

    async def lookup_upc(self, barcode: str) -> dict[str, Any] | None:
        if not is_valid_barcode(barcode):
            logger.warning("Invalid barcode format: %r", barcode)
            return None

        session = await self._get_session()
        try:
            async with session.get(
                self._lookup_url, params={"upc": barcode}, headers={"User-Agent": HTTP_USER_AGENT}
            ) as resp:
                if resp.status >= 400:
                    logger.warning("UPC lookup failed (%s) for %s", resp.status, barcode)
                    return None
                data = await resp.json(content_type=None)
        except (asyncio.TimeoutError, aiohttp.ClientError) as exc:
            logger.error("UPC lookup error for %s: %s", barcode, exc)
            return None

        items = (data or {}).get("items") if isinstance(data, dict) else None
        if not items or not isinstance(items[0], dict):
            return None
        item = items[0]
        return {
            "title": str(item.get("title") or ""),
            "brand": item.get("brand"),
            "description": item.get("description"),
            "category": item.get("category"),
            "upc": barcode,
        }

    async def lookup_movie_by_barcode(self, image_path: Path) -> BarcodeLookupResult:
        scanned = await self.extract_barcode(Path(image_path))
        raw_barcode = scanned.get("barcode")
        if not raw_barcode:
            return BarcodeLookupResult(success=False, error=str(scanned.get("error") or "No barcode detected in image"))

        barcode = str(raw_barcode).strip()
        barcode_type = scanned.get("type")
        product = await self.lookup_upc(barcode)
        if not product or not product["title"]:
            return BarcodeLookupResult(
                success=False,
                barcode=barcode,
                barcode_type=barcode_type,
                error="Barcode found but product not in UPC database",
            )

        product_title = product["title"]
        title = clean_product_title(product_title)
        tmdb_data: dict[str, str] = {}
        if self._tmdb is not None and self._tmdb.is_configured():
            tmdb_data = await self._tmdb.lookup_movie(title) or {}
        else:
            logger.info("TMDB not configured, skipping metadata lookup for %r", title)

        movie = MovieCandidate(
            title=tmdb_data.get("title") or title,
            format=detect_format(product_title),
            notes=extract_edition(product_title),
            genre=tmdb_data.get("genre", ""),
            release_date=tmdb_data.get("releaseDate", ""),
            actors=tmdb_data.get("actors", ""),
            confidence=1.0,
        )
        return BarcodeLookupResult(
            success=True,
            barcode=barcode,
            barcode_type=barcode_type,
            product_info=product,
            movie=movie,
        )

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None
