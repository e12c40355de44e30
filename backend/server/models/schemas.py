from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict


class MovieCreateRequest(BaseModel):
    """Manual entry. Enum-like fields stay loose: the store coerces them."""

    model_config = ConfigDict(extra="ignore")

    title: Optional[str] = None
    format: Optional[Any] = None
    notes: Optional[str] = None
    wantToUpgrade: Optional[Any] = None
    upgradeTarget: Optional[Any] = None
    genre: Optional[str] = None
    releaseDate: Optional[Any] = None
    actors: Optional[str] = None


class MovieUpdateRequest(MovieCreateRequest):
    """Partial update; only fields present in the request body are applied."""


class ImportConfirmRequest(BaseModel):
    movies: Optional[List[Dict[str, Any]]] = None
    fileName: Optional[str] = None


class CsvImportRequest(BaseModel):
    path: Optional[str] = None


class PhotoProcessRequest(BaseModel):
    filename: Optional[str] = None
