import logging

import uvicorn
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from config.settings import PHOTO_WATCHER_ENABLE, UVICORN_CONFIG
from server.api.rest.dependencies import get_movie_store, get_photo_watcher, shutdown_dependencies
from server.api_router import api_router

logger = logging.getLogger(__name__)

app = FastAPI(title="Disc Shelf", description="Personal movie disc collection API")

app.include_router(api_router)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Flatten `detail={"error": ...}` into the response body."""
    body = exc.detail if isinstance(exc.detail, dict) else {"error": str(exc.detail)}
    return JSONResponse(status_code=exc.status_code, content=body, headers=getattr(exc, "headers", None))


@app.on_event("startup")
async def startup_event():
    """Load the collection eagerly so a corrupted document fails the boot."""
    store = get_movie_store()
    count = len(store.load()["movies"])
    logger.info("Collection ready: %d movies in %s", count, store.path)

    if PHOTO_WATCHER_ENABLE:
        get_photo_watcher().start()


@app.on_event("shutdown")
async def shutdown_event():
    await shutdown_dependencies()


if __name__ == "__main__":
    uvicorn.run("server.main:app", **UVICORN_CONFIG)
