from __future__ import annotations

from fastapi import APIRouter

import server.api.rest.v1.imports as imports_v1
import server.api.rest.v1.movies as movies_v1

# Canonical API router aggregator.
api_router = APIRouter()
api_router.include_router(movies_v1.router)
api_router.include_router(imports_v1.router)

__all__ = ["api_router"]
