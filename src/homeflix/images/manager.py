"""Poster generation for media items.

Posters are captured from the video itself with ffmpeg and written to
``<cache_dir>/images/<item-id>/poster.jpg``. At most one poster row exists
per item; generation is skipped when one is already recorded.
"""

from __future__ import annotations

import logging
import subprocess  # nosec B404 - subprocess is required for FFmpeg invocation
import threading
from collections import Counter
from collections.abc import Iterator
from concurrent.futures import Future, ThreadPoolExecutor
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING

from homeflix.core import run_command, stderr_tail, utc_now_iso
from homeflix.db.queries import get_image, insert_image
from homeflix.db.types import ImageKind, ImageRecord
from homeflix.executor import POSTER_WIDTH, FFmpegComponentBase, build_poster_command

if TYPE_CHECKING:
    from homeflix.db.connection import DaemonConnectionPool

logger = logging.getLogger(__name__)

MIN_POSTER_OFFSET_SECONDS = 10.0
POSTER_OFFSET_FRACTION = 0.1
POSTER_SIZE_CLASS = "medium"
POSTER_FILENAME = "poster.jpg"


class PosterGenerationError(Exception):
    """Raised when ffmpeg could not produce a poster image."""

    def __init__(self, media_item_id: int, message: str) -> None:
        self.media_item_id = media_item_id
        super().__init__(
            f"Poster generation failed for item {media_item_id}: {message}"
        )


def compute_poster_timestamp(duration_seconds: float) -> float:
    """Pick the capture offset for a poster frame.

    10% into the video, but never earlier than 10 seconds. Clips shorter
    than that offset are captured at their midpoint.

    Args:
        duration_seconds: Duration of the video in seconds.

    Returns:
        Offset in seconds.
    """
    timestamp = max(
        MIN_POSTER_OFFSET_SECONDS, duration_seconds * POSTER_OFFSET_FRACTION
    )
    if timestamp > duration_seconds:
        timestamp = max(duration_seconds, 0.0) / 2
    return timestamp


class ImageManager(FFmpegComponentBase):
    """Generates and records poster images.

    generate_poster() is blocking. request_poster() schedules it on a small
    thread pool and returns immediately; failures are logged by the
    completion callback and never reach the caller.
    """

    def __init__(
        self,
        pool: DaemonConnectionPool,
        cache_dir: Path,
        ffmpeg_path: Path | None = None,
        width: int = POSTER_WIDTH,
        timeout: int = 120,
        max_workers: int = 2,
    ) -> None:
        """Initialize the image manager.

        Args:
            pool: Catalog connection pool.
            cache_dir: Root of the cache directory.
            ffmpeg_path: Explicit ffmpeg path (resolved lazily otherwise).
            width: Poster width in pixels; height keeps the aspect ratio.
            timeout: Seconds before a capture is abandoned.
            max_workers: Concurrent background captures.
        """
        super().__init__(ffmpeg_path)
        self.pool = pool
        self.cache_dir = cache_dir
        self.width = width
        self.timeout = timeout
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="poster"
        )
        self._pending: set[Future] = set()
        self._pending_lock = threading.Lock()
        self._item_locks: dict[int, threading.Lock] = {}
        self._item_lock_users: Counter[int] = Counter()
        self._item_locks_guard = threading.Lock()

    def poster_path(self, media_item_id: int) -> Path:
        """Where the poster for an item is written."""
        return self.cache_dir / "images" / str(media_item_id) / POSTER_FILENAME

    def get_poster(self, media_item_id: int) -> ImageRecord | None:
        """Return the recorded poster for an item, if any."""
        with self.pool.read_connection() as conn:
            return get_image(conn, media_item_id, ImageKind.POSTER)

    @contextmanager
    def _item_lock(self, media_item_id: int) -> Iterator[None]:
        """Serialise work on one item; the entry is dropped by its last user."""
        with self._item_locks_guard:
            lock = self._item_locks.setdefault(media_item_id, threading.Lock())
            self._item_lock_users[media_item_id] += 1
        try:
            with lock:
                yield
        finally:
            with self._item_locks_guard:
                self._item_lock_users[media_item_id] -= 1
                if not self._item_lock_users[media_item_id]:
                    del self._item_lock_users[media_item_id]
                    del self._item_locks[media_item_id]

    def generate_poster(
        self, media_item_id: int, file_path: Path, duration_seconds: float
    ) -> ImageRecord:
        """Generate the poster for a media item unless it already has one.

        Args:
            media_item_id: Catalog id of the item.
            file_path: Source video file.
            duration_seconds: Source duration, used to pick the frame.

        Returns:
            The poster ImageRecord (existing or newly created).

        Raises:
            PosterGenerationError: If ffmpeg fails or produces no file. No
                image row is written in that case.
        """
        with self._item_lock(media_item_id):
            existing = self.get_poster(media_item_id)
            if existing is not None:
                logger.debug("Poster already exists for item %d", media_item_id)
                return existing

            output = self.poster_path(media_item_id)
            output.parent.mkdir(parents=True, exist_ok=True)
            timestamp = compute_poster_timestamp(duration_seconds)
            self._capture(media_item_id, file_path, output, timestamp)

            record = ImageRecord(
                id=None,
                media_item_id=media_item_id,
                kind=ImageKind.POSTER,
                path=str(output),
                size_class=POSTER_SIZE_CLASS,
                created_at=utc_now_iso(),
            )
            with self.pool.transaction() as conn:
                inserted = insert_image(conn, record)
                stored = get_image(conn, media_item_id, ImageKind.POSTER)

            if inserted:
                logger.info(
                    "Generated poster for item %d at %.1fs", media_item_id, timestamp
                )
            return stored if stored is not None else record

    def _capture(
        self, media_item_id: int, source: Path, output: Path, timestamp: float
    ) -> None:
        args = build_poster_command(
            self.tool_path, source, output, timestamp, width=self.width
        )
        try:
            _, stderr, returncode = run_command(args, timeout=self.timeout)
        except subprocess.TimeoutExpired as e:
            output.unlink(missing_ok=True)
            logger.error("Poster capture timed out for item %d", media_item_id)
            raise PosterGenerationError(
                media_item_id, f"timed out after {e.timeout}s"
            ) from e
        except OSError as e:
            logger.error("Could not run ffmpeg for item %d: %s", media_item_id, e)
            raise PosterGenerationError(media_item_id, str(e)) from e

        if returncode != 0 or not output.is_file() or output.stat().st_size == 0:
            output.unlink(missing_ok=True)
            detail = stderr_tail(stderr) or f"exit code {returncode}"
            logger.error(
                "Poster capture failed for item %d (%s): %s",
                media_item_id,
                source,
                detail,
            )
            raise PosterGenerationError(media_item_id, detail)

    def request_poster(
        self, media_item_id: int, file_path: Path, duration_seconds: float
    ) -> Future:
        """Schedule poster generation in the background.

        Returns:
            Future resolving to the ImageRecord. Callers are not required to
            wait on it.
        """
        future = self._executor.submit(
            self.generate_poster, media_item_id, file_path, duration_seconds
        )
        with self._pending_lock:
            self._pending.add(future)
        future.add_done_callback(
            lambda f, item_id=media_item_id: self._on_poster_done(item_id, f)
        )
        return future

    def _on_poster_done(self, media_item_id: int, future: Future) -> None:
        with self._pending_lock:
            self._pending.discard(future)
        if future.cancelled():
            logger.debug("Poster request for item %d was cancelled", media_item_id)
            return
        exc = future.exception()
        if exc is not None and not isinstance(exc, PosterGenerationError):
            logger.error(
                "Unexpected error generating poster for item %d: %s",
                media_item_id,
                exc,
                exc_info=exc,
            )

    @property
    def pending_count(self) -> int:
        """Number of poster requests queued or running."""
        with self._pending_lock:
            return len(self._pending)

    def wait_for_pending(self, timeout: float | None = None) -> None:
        """Block until all currently queued poster requests finish."""
        from concurrent.futures import wait

        with self._pending_lock:
            pending = list(self._pending)
        if pending:
            wait(pending, timeout=timeout)

    def close(self, wait: bool = True) -> None:
        """Stop accepting requests; optionally wait for queued ones."""
        self._executor.shutdown(wait=wait, cancel_futures=not wait)
