from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional, Sequence, Set

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from application.imports.photo_import_pipeline import PhotoImportPipeline
from domain.imports import PhotoImportEvent
from infrastructure.files.source_files import UPLOAD_PREFIX

logger = logging.getLogger(__name__)


class _PhotoDropHandler(FileSystemEventHandler):
    """Runs on the observer thread; only forwards paths to the event loop."""

    def __init__(self, watcher: "PhotoWatcher") -> None:
        super().__init__()
        self._watcher = watcher

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._watcher.notify_threadsafe(Path(str(event.src_path)))

    def on_moved(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._watcher.notify_threadsafe(Path(str(event.dest_path)))


class PhotoWatcher:
    """Watches the sources dir (non-recursive) and enqueues new images into the pipeline.

    Interactive uploads (`upload-*`) are stored in the same directory but belong
    to the preview/confirm flow, so they are ignored here.
    """

    def __init__(
        self,
        *,
        pipeline: PhotoImportPipeline,
        sources_dir: Path,
        image_extensions: Sequence[str],
    ) -> None:
        self._pipeline = pipeline
        self._sources_dir = Path(sources_dir)
        self._extensions = tuple(e.lower() for e in image_extensions)
        self._observer: Optional[Observer] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        # Files queued or in processing; watchdog may report one drop several times.
        self._in_flight: Set[str] = set()

    @property
    def running(self) -> bool:
        return self._observer is not None

    def accepts(self, path: Path) -> bool:
        name = path.name
        if name.startswith(".") or name.startswith(UPLOAD_PREFIX):
            return False
        if path.parent.resolve() != self._sources_dir.resolve():
            return False
        return path.suffix.lower() in self._extensions

    def notify_threadsafe(self, path: Path) -> None:
        loop = self._loop
        if loop is None or loop.is_closed() or not self.accepts(path):
            return
        loop.call_soon_threadsafe(self._on_new_file, path)

    def _on_new_file(self, path: Path) -> None:
        if path.name in self._in_flight:
            return
        logger.info("New photo detected: %s", path.name)
        if self._pipeline.enqueue(path):
            self._in_flight.add(path.name)

    def _on_pipeline_event(self, event: PhotoImportEvent) -> None:
        if event.state.is_terminal:
            self._in_flight.discard(event.file)

    def start(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        if self._observer is not None:
            logger.info("Photo watcher already running")
            return

        self._loop = loop or asyncio.get_running_loop()
        self._sources_dir.mkdir(parents=True, exist_ok=True)
        self._pipeline.subscribe(self._on_pipeline_event)

        observer = Observer()
        observer.schedule(_PhotoDropHandler(self), str(self._sources_dir), recursive=False)
        observer.daemon = True
        observer.start()
        self._observer = observer
        self._pipeline.set_running(True)
        logger.info("Watching for photos in: %s", self._sources_dir)

    def stop(self) -> None:
        observer = self._observer
        if observer is None:
            return
        self._observer = None
        observer.stop()
        observer.join(timeout=5)
        self._pipeline.unsubscribe(self._on_pipeline_event)
        self._pipeline.set_running(False)
        logger.info("Photo watcher stopped")
