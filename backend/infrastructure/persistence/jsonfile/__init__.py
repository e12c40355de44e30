from infrastructure.persistence.jsonfile.movie_store import JsonMovieStore

__all__ = ["JsonMovieStore"]
