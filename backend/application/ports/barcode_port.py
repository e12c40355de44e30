from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Protocol

from domain.imports import MovieCandidate


@dataclass(frozen=True)
class BarcodeLookupResult:
    success: bool
    barcode: Optional[str] = None
    barcode_type: Optional[str] = None
    product_info: Dict[str, Any] = field(default_factory=dict)
    # Confidence is always 1.0 for a resolved barcode.
    movie: Optional[MovieCandidate] = None
    error: Optional[str] = None


class BarcodePort(Protocol):
    def is_configured(self) -> bool:
        ...

    async def lookup_movie_by_barcode(self, image_path: Path) -> BarcodeLookupResult:
        ...
