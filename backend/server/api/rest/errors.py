from __future__ import annotations

import logging
from typing import Any

from fastapi import HTTPException

from config.settings import IS_PRODUCTION

logger = logging.getLogger(__name__)

INTERNAL_ERROR_MESSAGE = "Internal server error"


def api_error(status_code: int, message: str, **extra: Any) -> HTTPException:
    return HTTPException(status_code=status_code, detail={"error": message, **extra})


def internal_error(exc: BaseException, *, context: str) -> HTTPException:
    """Log an unexpected failure and hide its message in production."""
    logger.error("Error %s: %s", context, exc, exc_info=exc)
    return api_error(500, INTERNAL_ERROR_MESSAGE if IS_PRODUCTION else str(exc) or INTERNAL_ERROR_MESSAGE)
