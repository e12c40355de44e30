"""
TMDB API HTTP client used to enrich barcode lookups.

Product databases only know a packaging title ("Alien (Blu-ray + Digital)");
TMDB turns the cleaned title into genre, release year and top-billed cast.
"""

from __future__ import annotations

import asyncio
import difflib
import logging
import re
from typing import Any

import aiohttp

from infrastructure.config.settings import (
    HTTP_USER_AGENT,
    TMDB_API_KEY,
    TMDB_API_TOKEN,
    TMDB_BASE_URL,
    TMDB_TIMEOUT_S,
)

logger = logging.getLogger(__name__)

TOP_CAST = 3


def _normalize_title(s: str) -> str:
    s = (s or "").strip().lower()
    # Remove punctuation/whitespace to make fuzzy matching less brittle.
    return re.sub(r"[\s\-_:'\"()\[\]{}.,!?;/\\]+", "", s)


def _score_movie_candidate(*, query_title: str, candidate: dict[str, Any], target_year: int | None) -> float:
    """Score a TMDB search result to pick the best match for a title."""
    qt = _normalize_title(query_title)
    ct = _normalize_title(str(candidate.get("title") or ""))
    cot = _normalize_title(str(candidate.get("original_title") or ""))

    score = 0.0

    if qt and qt == ct:
        score += 5.0
    elif qt and qt == cot:
        score += 4.0

    if qt and ct and (qt in ct or ct in qt):
        score += 2.0

    if qt and (ct or cot):
        best = max(
            difflib.SequenceMatcher(a=qt, b=ct).ratio() if ct else 0.0,
            difflib.SequenceMatcher(a=qt, b=cot).ratio() if cot else 0.0,
        )
        if best >= 0.85:
            score += 2.0
        elif best >= 0.75:
            score += 1.0

    if target_year is not None:
        release_date = str(candidate.get("release_date") or "")
        if release_date[:4].isdigit():
            diff = abs(int(release_date[:4]) - target_year)
            if diff == 0:
                score += 3.0
            elif diff <= 1:
                score += 1.0

    # Popularity only breaks ties.
    try:
        score += min(float(candidate.get("popularity") or 0.0) / 1000.0, 0.5)
    except (TypeError, ValueError):
        pass

    return score


def _pick_best_candidate(
    *, query_title: str, candidates: list[dict[str, Any]], target_year: int | None
) -> dict[str, Any] | None:
    """Highest score wins; ties keep TMDB's own ranking order."""
    best: dict[str, Any] | None = None
    best_score = float("-inf")
    for c in candidates:
        s = _score_movie_candidate(query_title=query_title, candidate=c, target_year=target_year)
        if s > best_score:
            best, best_score = c, s
    return best


def summarize_details(details: dict[str, Any]) -> dict[str, str]:
    """Flatten a `/movie/{id}?append_to_response=credits` payload into record fields."""
    cast = (details.get("credits") or {}).get("cast") or []
    genres = details.get("genres") or []
    return {
        "title": str(details.get("title") or ""),
        "genre": ", ".join(str(g.get("name")) for g in genres if isinstance(g, dict) and g.get("name")),
        "releaseDate": str(details.get("release_date") or "")[:4],
        "actors": ", ".join(
            str(a.get("name")) for a in cast[:TOP_CAST] if isinstance(a, dict) and a.get("name")
        ),
        "overview": str(details.get("overview") or ""),
    }


class TMDBClient:
    """Async HTTP client for the TMDB API.

    Attributes:
        _base_url: TMDB API base URL
        _api_token: TMDB API bearer token (v4)
        _api_key: TMDB v3 api key, used when no bearer token is set
        _session: aiohttp ClientSession (lazily initialized)
        _lock: Async lock for session creation
    """

    def __init__(
        self,
        *,
        base_url: str | None = None,
        api_token: str | None = None,
        api_key: str | None = None,
        timeout_s: float | None = None,
    ) -> None:
        self._base_url = (base_url or TMDB_BASE_URL or "").rstrip("/")
        self._api_token = (api_token if api_token is not None else TMDB_API_TOKEN or "").strip()
        self._api_key = (api_key if api_key is not None else TMDB_API_KEY or "").strip()
        self._timeout_s = float(timeout_s or TMDB_TIMEOUT_S or 5.0)
        self._session: aiohttp.ClientSession | None = None
        self._lock = asyncio.Lock()

    def is_configured(self) -> bool:
        return bool(self._base_url and (self._api_token or self._api_key))

    def _headers(self) -> dict[str, str]:
        headers = {"accept": "application/json", "User-Agent": HTTP_USER_AGENT}
        # Prefer v4 bearer token auth when available.
        if self._api_token:
            headers["Authorization"] = f"Bearer {self._api_token}"
        return headers

    def _auth_params(self) -> dict[str, str]:
        """v3 auth via api_key query param (used when bearer token is absent)."""
        if self._api_token:
            return {}
        if self._api_key:
            return {"api_key": self._api_key}
        return {}

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create the aiohttp session (double-checked under the lock)."""
        if self._session is not None and not self._session.closed:
            return self._session

        async with self._lock:
            if self._session is not None and not self._session.closed:
                return self._session

            timeout = aiohttp.ClientTimeout(total=self._timeout_s)
            self._session = aiohttp.ClientSession(timeout=timeout)
            return self._session

    async def _get_json(self, path: str, params: dict[str, Any]) -> dict[str, Any] | None:
        session = await self._get_session()
        url = f"{self._base_url}{path}"
        params = {**params, **self._auth_params()}
        async with session.get(url, params=params, headers=self._headers()) as resp:
            if resp.status >= 400:
                error_text = await resp.text()
                logger.error("TMDB %s failed (%s): %s", path, resp.status, error_text[:200])
                return None
            data = await resp.json(content_type=None)
        return data if isinstance(data, dict) else None

    async def search_movies(
        self, *, title: str, language: str = "en-US", year: int | None = None
    ) -> list[dict[str, Any]]:
        """Search for movies by title (returns the raw search results list)."""
        if not self.is_configured():
            logger.warning("TMDB client not configured (missing base_url or auth)")
            return []
        if not (title or "").strip():
            return []

        params: dict[str, Any] = {"query": title, "language": language, "page": 1, "include_adult": "false"}
        if year is not None:
            params["year"] = int(year)

        try:
            data = await self._get_json("/search/movie", params)
        except asyncio.TimeoutError:
            logger.error("TMDB search timeout after %ss for %r", self._timeout_s, title)
            return []
        except aiohttp.ClientError as e:
            logger.error("TMDB search failed for %r: %s", title, e)
            return []

        results = (data or {}).get("results") or []
        if not isinstance(results, list):
            return []
        return [r for r in results if isinstance(r, dict)]

    async def get_movie_details(self, movie_id: int, *, language: str = "en-US") -> dict[str, Any] | None:
        """Fetch movie details with credits in a single call."""
        if not self.is_configured():
            return None
        try:
            return await self._get_json(
                f"/movie/{int(movie_id)}",
                {"language": language, "append_to_response": "credits"},
            )
        except asyncio.TimeoutError:
            logger.error("TMDB details timeout after %ss for id=%s", self._timeout_s, movie_id)
            return None
        except aiohttp.ClientError as e:
            logger.error("TMDB details failed for id=%s: %s", movie_id, e)
            return None

    async def lookup_movie(self, title: str, *, year: int | None = None) -> dict[str, str] | None:
        """Best match for a cleaned title as `{title, genre, releaseDate, actors, overview}`."""
        candidates = await self.search_movies(title=title, year=year)
        best = _pick_best_candidate(query_title=title, candidates=candidates[:10], target_year=year)
        if not best or not best.get("id"):
            return None
        details = await self.get_movie_details(int(best["id"]))
        if details is None:
            return None
        return summarize_details(details)

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None
