from infrastructure.enrichment.tmdb_client import TMDBClient

__all__ = ["TMDBClient"]
