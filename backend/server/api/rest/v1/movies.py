from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse, Response

from application.collection.export import export_csv, export_json
from application.ports.movie_store_port import MovieStorePort
from domain.collection import MovieFilters, MovieValidationError
from server.api.rest.dependencies import get_movie_store
from server.api.rest.errors import api_error, internal_error
from server.models.schemas import MovieCreateRequest, MovieUpdateRequest

router = APIRouter(prefix="/api/movies", tags=["movies"])

NOT_FOUND = "Movie not found"


@router.get("")
async def list_movies(
    search: Optional[str] = Query(default=None),
    format: Optional[List[str]] = Query(default=None),
    wantToUpgrade: Optional[str] = Query(default=None),
    sortBy: Optional[str] = Query(default=None),
    sortOrder: Optional[str] = Query(default=None),
    store: MovieStorePort = Depends(get_movie_store),
) -> Dict[str, Any]:
    filters = MovieFilters(
        search=search,
        format=format[0] if format and len(format) == 1 else format,
        want_to_upgrade=wantToUpgrade,
        sort_by=sortBy,
        sort_order=sortOrder,
    )
    try:
        movies = store.get_all(filters)
    except Exception as e:
        raise internal_error(e, context="listing movies")
    return {"movies": [m.to_dict() for m in movies], "count": len(movies)}


@router.get("/stats")
async def get_stats(store: MovieStorePort = Depends(get_movie_store)) -> Dict[str, Any]:
    try:
        return store.get_stats()
    except Exception as e:
        raise internal_error(e, context="getting stats")


@router.get("/export")
async def export_collection(
    format: str = Query(default="json"),
    store: MovieStorePort = Depends(get_movie_store),
) -> Response:
    stamp = date.today().isoformat()
    try:
        if format == "csv":
            return Response(
                content=export_csv(store),
                media_type="text/csv; charset=utf-8",
                headers={"Content-Disposition": f'attachment; filename="movie-collection-{stamp}.csv"'},
            )
        if format != "json":
            raise api_error(400, "Unsupported export format")
        return JSONResponse(
            content=export_json(store),
            headers={"Content-Disposition": f'attachment; filename="movie-collection-{stamp}.json"'},
        )
    except HTTPException:
        raise
    except Exception as e:
        raise internal_error(e, context="exporting collection")


@router.get("/{movie_id}")
async def get_movie(movie_id: str, store: MovieStorePort = Depends(get_movie_store)) -> Dict[str, Any]:
    try:
        movie = store.get_by_id(movie_id)
    except Exception as e:
        raise internal_error(e, context="getting movie")
    if movie is None:
        raise api_error(404, NOT_FOUND)
    return movie.to_dict()


@router.post("", status_code=201)
async def create_movie(
    req: MovieCreateRequest,
    store: MovieStorePort = Depends(get_movie_store),
) -> Dict[str, Any]:
    data = req.model_dump(exclude_none=True)
    data["source"] = "manual"
    try:
        movie = store.create(data)
    except MovieValidationError as e:
        raise api_error(400, str(e))
    except Exception as e:
        raise internal_error(e, context="creating movie")
    return movie.to_dict()


@router.put("/{movie_id}")
async def update_movie(
    movie_id: str,
    req: MovieUpdateRequest,
    store: MovieStorePort = Depends(get_movie_store),
) -> Dict[str, Any]:
    try:
        movie = store.update(movie_id, req.model_dump(exclude_unset=True))
    except MovieValidationError as e:
        raise api_error(400, str(e))
    except Exception as e:
        raise internal_error(e, context="updating movie")
    if movie is None:
        raise api_error(404, NOT_FOUND)
    return movie.to_dict()


@router.delete("/{movie_id}")
async def delete_movie(movie_id: str, store: MovieStorePort = Depends(get_movie_store)) -> Dict[str, Any]:
    try:
        deleted = store.remove(movie_id)
    except Exception as e:
        raise internal_error(e, context="deleting movie")
    if not deleted:
        raise api_error(404, NOT_FOUND)
    return {"success": True}
