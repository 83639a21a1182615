"""Segmented (HLS) transcode jobs.

A job moves PENDING -> PROCESSING -> COMPLETED | FAILED. Each job writes to
its own directory, ``<cache_dir>/hls/<job-id>/``. Starting a job for an item
that already has a completed job returns that job instead of re-encoding,
and an item never has more than one pending or processing job: start_job
holds a per-item lock in-process, and a partial unique index enforces the
same rule in the catalog. Failed jobs are not reused; the next start_job
creates a fresh job.
"""

from __future__ import annotations

import asyncio
import logging
import re
import shutil
import sqlite3
import uuid
from collections import Counter, deque
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import TYPE_CHECKING

from homeflix.core import utc_now_iso
from homeflix.db.queries import (
    fail_interrupted_jobs,
    get_media_item,
    get_reusable_job_for_item,
    get_transcode_job,
    insert_transcode_job,
    mark_job_completed,
    mark_job_failed,
    mark_job_processing,
    update_job_progress,
)
from homeflix.db.types import MediaItemRecord, TranscodeJobRecord, TranscodeStatus
from homeflix.errors import MediaNotFoundError
from homeflix.executor import (
    HLS_PLAYLIST_NAME,
    HLS_SEGMENT_SECONDS,
    FFmpegComponentBase,
    build_hls_command,
)
from homeflix.jobs.exceptions import EncodeError, InvalidJobTransitionError
from homeflix.logging import job_context
from homeflix.tools import ProgressThrottle, parse_stderr_progress

if TYPE_CHECKING:
    from homeflix.db.connection import DaemonConnectionPool

logger = logging.getLogger(__name__)

STDERR_TAIL_LINES = 20
_LINE_SPLIT = re.compile(rb"[\r\n]+")


async def iter_stderr_lines(stream: asyncio.StreamReader) -> AsyncIterator[str]:
    """Yield lines from an ffmpeg stderr pipe.

    ffmpeg terminates progress lines with carriage returns, so both \\r and
    \\n end a line.
    """
    buffer = b""
    while True:
        chunk = await stream.read(4096)
        if not chunk:
            break
        buffer += chunk
        *lines, buffer = _LINE_SPLIT.split(buffer)
        for line in lines:
            if line:
                yield line.decode("utf-8", errors="replace")
    if buffer:
        yield buffer.decode("utf-8", errors="replace")


class TranscodeJobManager(FFmpegComponentBase):
    """Creates and runs segmented transcode jobs.

    start_job() returns as soon as the job row exists; encoding runs in a
    background task owned by the manager. close() waits for running jobs and
    cancels them after a timeout.
    """

    def __init__(
        self,
        pool: DaemonConnectionPool,
        cache_dir: Path,
        ffmpeg_path: Path | None = None,
        segment_seconds: int = HLS_SEGMENT_SECONDS,
        progress_step: float = 5.0,
    ) -> None:
        """Initialize the job manager.

        Args:
            pool: Catalog connection pool.
            cache_dir: Root of the cache directory; jobs write under hls/.
            ffmpeg_path: Explicit ffmpeg path (resolved lazily otherwise).
            segment_seconds: Target segment duration.
            progress_step: Minimum progress increase (percentage points)
                between persisted progress updates.
        """
        super().__init__(ffmpeg_path)
        self.pool = pool
        self.cache_dir = cache_dir
        self.segment_seconds = segment_seconds
        self.progress_step = progress_step
        self._item_locks: dict[int, asyncio.Lock] = {}
        self._item_lock_users: Counter[int] = Counter()
        self._tasks: dict[str, asyncio.Task] = {}
        self._processes: dict[str, asyncio.subprocess.Process] = {}

    @property
    def hls_root(self) -> Path:
        return self.cache_dir / "hls"

    def output_dir_for(self, job_id: str) -> Path:
        """Directory owned exclusively by one job."""
        return self.hls_root / job_id

    @property
    def active_job_count(self) -> int:
        """Number of encodes currently running in this process."""
        return len(self._tasks)

    def get_job(self, job_id: str) -> TranscodeJobRecord | None:
        """Look up a job by id (blocking)."""
        with self.pool.read_connection() as conn:
            return get_transcode_job(conn, job_id)

    def recover_interrupted_jobs(self, media_item_id: int | None = None) -> int:
        """Fail jobs that a previous process left pending or processing.

        Must not be called while this manager runs a job for the same item.

        Args:
            media_item_id: Limit recovery to one item; every item when None.

        Returns:
            Number of jobs marked failed.
        """
        if media_item_id is None:
            reason = "Interrupted by server restart"
        else:
            reason = "Abandoned by another process"
        with self.pool.transaction() as conn:
            count = fail_interrupted_jobs(
                conn, utc_now_iso(), media_item_id, error_message=reason
            )
        if count:
            logger.warning("Marked %d interrupted transcode job(s) as failed", count)
        return count

    async def start_job(self, media_item_id: int) -> str:
        """Start (or reuse) a segmented transcode for a media item.

        Args:
            media_item_id: Catalog id of the item.

        Returns:
            Id of the completed, running or newly created job.

        Raises:
            MediaNotFoundError: If the item does not exist.
        """
        async with self._item_lock(media_item_id):
            item, existing = await asyncio.to_thread(self._load_item, media_item_id)
            if item is None:
                raise MediaNotFoundError(media_item_id)
            if existing is not None:
                logger.info(
                    "Reusing %s transcode job %s for item %d",
                    existing.status.value,
                    existing.id,
                    media_item_id,
                )
                return existing.id

            job_id = str(uuid.uuid4())
            job = TranscodeJobRecord(
                id=job_id,
                media_item_id=media_item_id,
                status=TranscodeStatus.PENDING,
                progress_percent=0.0,
                output_dir=str(self.output_dir_for(job_id)),
                created_at=utc_now_iso(),
            )
            try:
                await asyncio.to_thread(self._insert_job, job)
            except sqlite3.IntegrityError:
                # Another process created a job for this item first
                _, existing = await asyncio.to_thread(self._load_item, media_item_id)
                if existing is None:
                    raise
                return existing.id

            logger.info("Created transcode job %s for item %d", job_id, media_item_id)
            task = asyncio.create_task(
                self._run_transcode(job, item), name=f"transcode-{job_id}"
            )
            self._tasks[job_id] = task
            task.add_done_callback(lambda _t, jid=job_id: self._tasks.pop(jid, None))
            return job_id

    @asynccontextmanager
    async def _item_lock(self, media_item_id: int) -> AsyncIterator[None]:
        """Hold the item's lock; the entry is dropped by its last user."""
        lock = self._item_locks.setdefault(media_item_id, asyncio.Lock())
        self._item_lock_users[media_item_id] += 1
        try:
            async with lock:
                yield
        finally:
            self._item_lock_users[media_item_id] -= 1
            if not self._item_lock_users[media_item_id]:
                del self._item_lock_users[media_item_id]
                del self._item_locks[media_item_id]

    def _load_item(
        self, media_item_id: int
    ) -> tuple[MediaItemRecord | None, TranscodeJobRecord | None]:
        with self.pool.read_connection() as conn:
            item = get_media_item(conn, media_item_id)
            if item is None:
                return None, None
            return item, get_reusable_job_for_item(conn, media_item_id)

    def _insert_job(self, job: TranscodeJobRecord) -> None:
        with self.pool.transaction() as conn:
            insert_transcode_job(conn, job)

    def _transition(self, job_id: str, target: TranscodeStatus, **kwargs) -> None:
        now = utc_now_iso()
        with self.pool.transaction() as conn:
            if target is TranscodeStatus.PROCESSING:
                ok = mark_job_processing(conn, job_id, now)
            elif target is TranscodeStatus.COMPLETED:
                ok = mark_job_completed(conn, job_id, kwargs["playlist_filename"], now)
            elif target is TranscodeStatus.FAILED:
                ok = mark_job_failed(conn, job_id, kwargs["error_message"], now)
            else:
                ok = False
        if not ok:
            raise InvalidJobTransitionError(job_id, target.value)

    def _save_progress(self, job_id: str, percent: float) -> None:
        with self.pool.transaction() as conn:
            update_job_progress(conn, job_id, percent)

    async def _run_transcode(
        self, job: TranscodeJobRecord, item: MediaItemRecord
    ) -> None:
        with job_context(job.id, item.id):
            output_dir = Path(job.output_dir)
            try:
                await asyncio.to_thread(
                    self._transition, job.id, TranscodeStatus.PROCESSING
                )
                await self._encode(job, item, output_dir)
                await asyncio.to_thread(
                    self._transition,
                    job.id,
                    TranscodeStatus.COMPLETED,
                    playlist_filename=HLS_PLAYLIST_NAME,
                )
                logger.info("Transcode job %s completed", job.id)
            except asyncio.CancelledError:
                await self._fail(job.id, output_dir, "Cancelled during shutdown")
                raise
            except EncodeError as e:
                logger.error("Transcode job %s failed: %s", job.id, e)
                await self._fail(job.id, output_dir, str(e))
            except Exception as e:
                logger.exception("Transcode job %s failed unexpectedly", job.id)
                await self._fail(job.id, output_dir, str(e) or type(e).__name__)

    async def _fail(self, job_id: str, output_dir: Path, message: str) -> None:
        try:
            await asyncio.to_thread(
                self._transition, job_id, TranscodeStatus.FAILED, error_message=message
            )
        except InvalidJobTransitionError:
            logger.debug("Job %s was already terminal", job_id)
        await asyncio.to_thread(shutil.rmtree, output_dir, ignore_errors=True)

    async def _encode(
        self, job: TranscodeJobRecord, item: MediaItemRecord, output_dir: Path
    ) -> None:
        source = Path(item.path)
        if not source.is_file():
            raise EncodeError(f"Source file missing: {source}")
        output_dir.mkdir(parents=True, exist_ok=True)

        args = build_hls_command(
            self.tool_path, source, output_dir, segment_seconds=self.segment_seconds
        )
        logger.debug("Executing command: %s", " ".join(args))
        try:
            process = await asyncio.create_subprocess_exec(  # nosec B603
                *args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise EncodeError(f"Could not start ffmpeg: {e}") from e

        self._processes[job.id] = process
        tail: deque[str] = deque(maxlen=STDERR_TAIL_LINES)
        throttle = ProgressThrottle(self.progress_step)
        try:
            async for line in iter_stderr_lines(process.stderr):
                progress = parse_stderr_progress(line)
                if progress is None:
                    tail.append(line)
                    continue
                percent = progress.get_percent(item.duration_seconds)
                # 100 is reserved for the completed transition
                if percent < 100 and throttle.should_report(percent):
                    await asyncio.to_thread(self._save_progress, job.id, percent)
            returncode = await process.wait()
        except asyncio.CancelledError:
            if process.returncode is None:
                process.kill()
                await process.wait()
            raise
        finally:
            self._processes.pop(job.id, None)

        if returncode != 0:
            raise EncodeError("ffmpeg failed", returncode, "\n".join(list(tail)[-5:]))
        if not (output_dir / HLS_PLAYLIST_NAME).is_file():
            raise EncodeError("ffmpeg exited cleanly but wrote no playlist", returncode)

    async def wait_for_job(
        self, job_id: str, timeout: float | None = None
    ) -> TranscodeJobRecord | None:
        """Wait for a job started by this manager to finish, then return it."""
        task = self._tasks.get(job_id)
        if task is not None:
            await asyncio.wait_for(asyncio.shield(task), timeout=timeout)
        return await asyncio.to_thread(self.get_job, job_id)

    async def close(self, timeout: float = 30.0) -> None:
        """Wait for running jobs, cancelling any still running after timeout."""
        tasks = list(self._tasks.values())
        if not tasks:
            return
        logger.info("Waiting up to %.0fs for %d transcode job(s)", timeout, len(tasks))
        _, still_running = await asyncio.wait(tasks, timeout=timeout)
        for task in still_running:
            task.cancel()
        if still_running:
            logger.warning("Cancelled %d running transcode job(s)", len(still_running))
            await asyncio.gather(*still_running, return_exceptions=True)
