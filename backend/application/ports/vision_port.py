from __future__ import annotations

from pathlib import Path
from typing import List, Protocol

from domain.imports import MovieCandidate


class VisionPort(Protocol):
    def is_configured(self) -> bool:
        ...

    async def identify_movies_from_photo(self, image_path: Path) -> List[MovieCandidate]:
        """Raise VisionNotConfiguredError / FileNotFoundError / VisionServiceError on failure."""
        ...
