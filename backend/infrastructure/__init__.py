"""
Infrastructure layer: adapters behind the application ports (JSON store, vision,
barcode/TMDB lookups, source-file archive, sources-dir watcher).
"""
