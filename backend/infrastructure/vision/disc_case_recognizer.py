from __future__ import annotations

import logging
from pathlib import Path
from typing import List

from application.ports.vision_port import VisionPort
from domain.imports import MovieCandidate
from infrastructure.vision.claude_vision_client import ClaudeVisionClient, extract_json_array

logger = logging.getLogger(__name__)

DISC_CASE_PROMPT = """Analyze this photo of DVD/Blu-ray movie cases (likely on a shelf or in a collection).

For each visible movie, identify:
1. Title - exact title as printed on the case spine or front
2. Format - Look for these indicators:
   - "DVD" logo (usually red/orange)
   - "Blu-ray" or "Blu-ray Disc" logo (blue)
   - "4K Ultra HD" logo (black/gold)
3. Notes - Any edition info visible (Special Edition, Collector's Edition, season numbers, etc.)
4. Genre - The genre of the movie (Action, Comedy, Drama, Horror, Sci-Fi, etc.) based on your knowledge
5. Release Date - The theatrical release year (e.g., "1994", "2010") based on your knowledge
6. Actors - Top billed actors (e.g., "Tom Hanks, Robin Wright") based on your knowledge

Return ONLY a valid JSON array, no other text or explanation:
[
  {
    "title": "Movie Title",
    "format": "DVD",
    "notes": "edition info or empty string",
    "genre": "Genre",
    "releaseDate": "Year",
    "actors": "Actor 1, Actor 2",
    "confidence": 0.95
  }
]

Format values must be exactly one of: "DVD", "Blu-ray", "4K Ultra HD"

Set confidence (0.0-1.0) based on how clearly you can read the title:
- 0.9-1.0: Perfectly clear and readable
- 0.7-0.9: Readable but partially obscured or at angle
- 0.5-0.7: Partially visible, making educated guess
- <0.5: Very uncertain

If no movies are visible or the image doesn't show movie cases, return: []"""


def parse_disc_case_reply(text: str) -> List[MovieCandidate]:
    items = extract_json_array(text)
    if items is None:
        logger.warning("No JSON array found in vision response")
        return []
    candidates = [MovieCandidate.from_payload(item) for item in items if isinstance(item, dict)]
    return [c for c in candidates if c.title]


class DiscCaseRecognizer(VisionPort):
    """Reads titles off a shelf photo of disc cases."""

    def __init__(self, client: ClaudeVisionClient) -> None:
        self._client = client

    def is_configured(self) -> bool:
        return self._client.is_configured()

    async def identify_movies_from_photo(self, image_path: Path) -> List[MovieCandidate]:
        reply = await self._client.ask_about_image(image_path, DISC_CASE_PROMPT)
        return parse_disc_case_reply(reply)
