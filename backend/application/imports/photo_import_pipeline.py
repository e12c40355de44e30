from __future__ import annotations

import asyncio
import logging
from collections import deque
from pathlib import Path
from typing import Any, Callable, Deque, Dict, List, Optional

from application.imports.reconciler import ImportReconciler
from application.ports.barcode_port import BarcodePort
from application.ports.source_archive_port import SourceArchivePort
from application.ports.vision_port import VisionPort
from domain.collection import VisionNotConfiguredError
from domain.imports import MovieCandidate, PhotoImportEvent, PhotoImportResult, PhotoImportState

logger = logging.getLogger(__name__)

PhotoImportListener = Callable[[PhotoImportEvent], Any]

NOT_CONFIGURED_MESSAGE = "Vision API not configured. Set ANTHROPIC_API_KEY in .env file."


class PhotoImportStatusTracker:
    """Listener keeping the most recent pipeline events for the status endpoint."""

    def __init__(self, *, history: int = 50) -> None:
        self._events: Deque[PhotoImportEvent] = deque(maxlen=max(int(history), 1))

    def __call__(self, event: PhotoImportEvent) -> None:
        self._events.append(event)

    def recent(self) -> List[Dict[str, Any]]:
        return [e.to_dict() for e in reversed(self._events)]

    def last_state(self, file: str) -> Optional[PhotoImportState]:
        for e in reversed(self._events):
            if e.file == file:
                return e.state
        return None


class PhotoImportPipeline:
    """Serialized photo import: queued -> processing -> success | no_movies_found | error.

    One image is analyzed at a time. Two images processed concurrently would
    both dedup against the same stale snapshot of the collection and could
    insert the same title twice.

    Detection tries the barcode lookup first and falls back to disc-case
    recognition. Neither failure aborts the image; a vision failure ends in
    no_movies_found. The image is archived only on success.
    """

    def __init__(
        self,
        *,
        vision: VisionPort,
        reconciler: ImportReconciler,
        archive: SourceArchivePort,
        barcode: Optional[BarcodePort] = None,
        queue_max: int = 100,
        stability_s: float = 2.0,
        stability_poll_s: float = 0.1,
    ) -> None:
        self._vision = vision
        self._barcode = barcode
        self._reconciler = reconciler
        self._archive = archive
        self._queue: asyncio.Queue[Path] = asyncio.Queue(maxsize=max(int(queue_max), 1))
        self._lock = asyncio.Lock()
        self._stability_s = float(stability_s or 0.0)
        self._poll_s = max(float(stability_poll_s or 0.1), 0.01)
        self._drain_task: Optional[asyncio.Task[None]] = None
        self._listeners: List[PhotoImportListener] = []
        self._processing = False
        self._running = False

    # --------------------------------------------------------------- observers

    def subscribe(self, listener: PhotoImportListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unsubscribe(self, listener: PhotoImportListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _emit(self, event: PhotoImportEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("photo import listener failed for %s", event.file)

    # ------------------------------------------------------------------ status

    def set_running(self, running: bool) -> None:
        """Flag toggled by the filesystem watcher."""
        self._running = bool(running)

    def status(self) -> Dict[str, Any]:
        return {
            "running": self._running,
            "configured": self._vision.is_configured(),
            "queueLength": self._queue.qsize(),
            "processing": self._processing,
        }

    # ------------------------------------------------------------------- queue

    def enqueue(self, image_path: Path | str) -> bool:
        """Queue a dropped image. Must be called on the event loop thread."""
        path = Path(image_path)
        try:
            self._queue.put_nowait(path)
        except asyncio.QueueFull:
            logger.warning("Photo import queue full; dropping %s", path.name)
            self._emit(PhotoImportEvent(file=path.name, state=PhotoImportState.ERROR, error="import queue is full"))
            return False

        self._emit(PhotoImportEvent(file=path.name, state=PhotoImportState.QUEUED))
        if self._drain_task is None or self._drain_task.done():
            self._drain_task = asyncio.get_running_loop().create_task(self._drain())
        return True

    async def _drain(self) -> None:
        while not self._queue.empty():
            path = self._queue.get_nowait()
            try:
                await self._wait_until_stable(path)
                await self._process_serialized(path)
            except Exception:
                logger.exception("Failed to process %s", path)
            finally:
                self._queue.task_done()

    async def wait_idle(self) -> None:
        """Block until every queued image reached a terminal state."""
        await self._queue.join()

    async def close(self) -> None:
        task = self._drain_task
        self._drain_task = None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def _wait_until_stable(self, path: Path) -> None:
        """Wait until the file size stops changing (the dropping program finished writing)."""
        if self._stability_s <= 0:
            return
        loop = asyncio.get_running_loop()
        last_size = -1
        stable_since = loop.time()
        while True:
            try:
                size = path.stat().st_size
            except FileNotFoundError:
                return
            now = loop.time()
            if size != last_size:
                last_size = size
                stable_since = now
            elif now - stable_since >= self._stability_s:
                return
            await asyncio.sleep(self._poll_s)

    # -------------------------------------------------------------- processing

    async def process_now(self, image_path: Path | str) -> PhotoImportResult:
        """Process one image immediately (still serialized with the queue)."""
        return await self._process_serialized(Path(image_path))

    async def _process_serialized(self, path: Path) -> PhotoImportResult:
        async with self._lock:
            self._processing = True
            try:
                return await self._process(path)
            finally:
                self._processing = False

    async def _detect(self, path: Path) -> tuple[List[MovieCandidate], str]:
        if self._barcode is not None and self._barcode.is_configured():
            try:
                result = await self._barcode.lookup_movie_by_barcode(path)
            except Exception as exc:
                logger.info("Barcode detection failed for %s, falling back to vision: %s", path.name, exc)
            else:
                if result.success and result.movie is not None and result.movie.title.strip():
                    return [result.movie], "barcode"
                logger.debug("No usable barcode in %s: %s", path.name, result.error)

        try:
            return list(await self._vision.identify_movies_from_photo(path)), "vision"
        except VisionNotConfiguredError:
            raise
        except Exception as exc:
            logger.warning("Vision detection failed for %s: %s", path.name, exc)
            return [], "vision"

    async def _process(self, path: Path) -> PhotoImportResult:
        file = path.name
        self._emit(PhotoImportEvent(file=file, state=PhotoImportState.PROCESSING))

        def _fail(message: str, *, needs_setup: bool = False, detector: Optional[str] = None) -> PhotoImportResult:
            self._emit(
                PhotoImportEvent(
                    file=file,
                    state=PhotoImportState.ERROR,
                    error=message,
                    needs_setup=needs_setup,
                    detector=detector,
                )
            )
            return PhotoImportResult(file=file, state=PhotoImportState.ERROR, error=message, detector=detector)

        if not self._vision.is_configured():
            return _fail(NOT_CONFIGURED_MESSAGE, needs_setup=True)
        if not path.exists():
            return _fail("Image file not found")

        try:
            candidates, detector = await self._detect(path)
        except VisionNotConfiguredError as exc:
            return _fail(str(exc) or NOT_CONFIGURED_MESSAGE, needs_setup=True)

        if not candidates:
            self._emit(PhotoImportEvent(file=file, state=PhotoImportState.NO_MOVIES_FOUND, detector=detector))
            return PhotoImportResult(file=file, state=PhotoImportState.NO_MOVIES_FOUND, detector=detector)

        try:
            committed = self._reconciler.auto_commit(candidates, source_file_name=file)
            self._archive.archive(path)
        except Exception as exc:
            logger.exception("Photo import commit failed for %s", file)
            return _fail(str(exc), detector=detector)

        logger.info(
            "Imported %s via %s: detected=%d added=%d skipped=%d",
            file,
            detector,
            len(candidates),
            len(committed.added),
            len(committed.skipped),
        )
        self._emit(
            PhotoImportEvent(
                file=file,
                state=PhotoImportState.SUCCESS,
                detector=detector,
                detected=len(candidates),
                added=len(committed.added),
                skipped=len(committed.skipped),
            )
        )
        return PhotoImportResult(
            file=file,
            state=PhotoImportState.SUCCESS,
            movies=list(candidates),
            added=committed.added,
            skipped=committed.skipped,
            detector=detector,
        )
