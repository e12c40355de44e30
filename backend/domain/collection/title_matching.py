from __future__ import annotations

import re
from typing import Any, Iterable, Optional, TypeVar

T = TypeVar("T")

_LEADING_THE_RE = re.compile(r"^the\s+", re.IGNORECASE)
_NON_WORD_RE = re.compile(r"[^\w\s]")
_SPACES_RE = re.compile(r"\s+")

# Substring matching only applies when both normalized titles are longer than this.
MIN_SUBSTRING_MATCH_LENGTH = 3


def normalize_title(title: str) -> str:
    """Reduce a title to a comparable form.

    "The Lion King: Special Edition!" -> "lion king special edition"

    Comparison only; never persisted or displayed.
    """
    t = (title or "").lower()
    t = _LEADING_THE_RE.sub("", t, count=1)
    t = _NON_WORD_RE.sub("", t)
    t = _SPACES_RE.sub(" ", t)
    return t.strip()


def _title_of(item: Any) -> str:
    if isinstance(item, dict):
        return str(item.get("title") or "")
    return str(getattr(item, "title", "") or "")


def titles_match(a: str, b: str) -> bool:
    na = normalize_title(a)
    nb = normalize_title(b)
    if na == nb:
        return True
    if len(na) > MIN_SUBSTRING_MATCH_LENGTH and len(nb) > MIN_SUBSTRING_MATCH_LENGTH:
        return na in nb or nb in na
    return False


def find_duplicate(candidate_title: str, existing: Iterable[T]) -> Optional[T]:
    """Return the first existing record whose title matches the candidate.

    Matches on exact normalized equality, or containment in either direction
    when both normalized titles are long enough. Short generic titles can
    produce false positives ("Heat" inside "In the Heat of the Night"); there is no
    ranking across multiple matches.
    """
    normalized_new = normalize_title(candidate_title)
    for item in existing:
        normalized_existing = normalize_title(_title_of(item))
        if normalized_new == normalized_existing:
            return item
        if (
            len(normalized_new) > MIN_SUBSTRING_MATCH_LENGTH
            and len(normalized_existing) > MIN_SUBSTRING_MATCH_LENGTH
            and (normalized_existing in normalized_new or normalized_new in normalized_existing)
        ):
            return item
    return None
