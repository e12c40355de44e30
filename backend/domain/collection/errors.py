from __future__ import annotations


class MovieValidationError(ValueError):
    """Raised when movie input violates a hard limit (title/notes length, missing title)."""


class ImportValidationError(MovieValidationError):
    """A confirm batch contained an invalid item; nothing was committed."""

    def __init__(self, message: str, *, index: int | None = None) -> None:
        super().__init__(message)
        self.index = index


class CollectionCorruptedError(RuntimeError):
    """The persisted collection document could not be parsed."""


class VisionNotConfiguredError(RuntimeError):
    """The vision collaborator has no credentials; the caller should prompt for setup."""


class VisionServiceError(RuntimeError):
    """A vision/barcode/product-lookup call failed."""
