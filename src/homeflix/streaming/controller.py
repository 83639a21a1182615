"""Per-request playback: Direct Play with byte ranges, or live transcode.

Direct Play serves the original file when the client can decode it as is.
Everything else is re-encoded on the fly to fragmented MP4 and piped into
the response. The live encoder is killed as soon as the client goes away.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

from aiohttp import web

from homeflix.db.queries import get_media_item
from homeflix.domain import PlaybackMode
from homeflix.errors import MediaNotFoundError
from homeflix.executor import FFmpegComponentBase, build_live_transcode_command
from homeflix.jobs import iter_stderr_lines
from homeflix.streaming.ranges import parse_range_header

if TYPE_CHECKING:
    from homeflix.db.connection import DaemonConnectionPool
    from homeflix.db.types import MediaItemRecord

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 64 * 1024
TRANSCODING_HEADER = "X-Transcoding"

CONTAINER_MIME_TYPES: dict[str, str] = {
    "mp4": "video/mp4",
    "m4v": "video/mp4",
    "mkv": "video/x-matroska",
    "webm": "video/webm",
    "avi": "video/x-msvideo",
    "mov": "video/quicktime",
}


class StreamOutcome(Enum):
    """How a live transcode response ended."""

    COMPLETED = "completed"
    ABORTED = "aborted"  # client disconnected; encoder killed
    FAILED = "failed"  # encoder exited non-zero


def mime_type_for(path: Path) -> str:
    """MIME type of a media file by extension."""
    return CONTAINER_MIME_TYPES.get(
        path.suffix.lower().lstrip("."), "application/octet-stream"
    )


def _client_gone(request: web.Request) -> bool:
    transport = request.transport
    return transport is None or transport.is_closing()


class StreamController(FFmpegComponentBase):
    """Serves media items over HTTP.

    One instance is shared by all requests; the only state it holds is the
    set of live encoder processes, so they can be killed on shutdown.
    """

    def __init__(
        self,
        pool: DaemonConnectionPool,
        ffmpeg_path: Path | None = None,
        target_container: str = "mp4",
        target_video_codec: str = "h264",
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        disconnect_poll_interval: float = 1.0,
    ) -> None:
        """Initialize the controller.

        Args:
            pool: Catalog connection pool.
            ffmpeg_path: Explicit ffmpeg path (resolved lazily otherwise).
            target_container: Container extension clients play natively.
            target_video_codec: Video codec clients play natively.
            chunk_size: Bytes per write when streaming.
            disconnect_poll_interval: Longest time a live stream waits on the
                encoder before checking whether the client is still there.
        """
        super().__init__(ffmpeg_path)
        self.pool = pool
        self.target_container = target_container.lower()
        self.target_video_codec = target_video_codec.lower()
        self.chunk_size = chunk_size
        self.disconnect_poll_interval = disconnect_poll_interval
        self._processes: set[asyncio.subprocess.Process] = set()

    @property
    def active_processes(self) -> list[asyncio.subprocess.Process]:
        """Live encoder processes currently attached to responses."""
        return list(self._processes)

    def decide_playback(
        self, item: MediaItemRecord, requested_height: int | None = None
    ) -> PlaybackMode:
        """Choose Direct Play or transcode for an item.

        Direct Play requires the target container, the target video codec,
        and no height override.
        """
        if requested_height is not None:
            return PlaybackMode.TRANSCODE
        codec = (item.video_codec or "").lower()
        if item.extension == self.target_container and codec == self.target_video_codec:
            return PlaybackMode.DIRECT_PLAY
        return PlaybackMode.TRANSCODE

    def _load_item(self, media_item_id: int) -> MediaItemRecord | None:
        with self.pool.read_connection() as conn:
            return get_media_item(conn, media_item_id)

    async def stream_media(
        self,
        request: web.Request,
        media_item_id: int,
        requested_height: int | None = None,
    ) -> web.StreamResponse:
        """Serve a media item on the given request.

        Args:
            request: The incoming request (Range header is honored).
            media_item_id: Catalog id of the item.
            requested_height: Output height; forces the transcode path.

        Returns:
            The prepared and written response.

        Raises:
            MediaNotFoundError: If the item or its file is missing.
            RangeNotSatisfiableError: If the Range header lies outside the
                file (Direct Play only). Raised before anything is written.
        """
        item = await asyncio.to_thread(self._load_item, media_item_id)
        if item is None:
            raise MediaNotFoundError(media_item_id)
        path = Path(item.path)
        if not await asyncio.to_thread(path.is_file):
            raise MediaNotFoundError(path, kind="file")

        mode = self.decide_playback(item, requested_height)
        logger.info(
            "Streaming item %d via %s%s",
            media_item_id,
            mode.value,
            f" at {requested_height}p" if requested_height else "",
        )
        if mode is PlaybackMode.DIRECT_PLAY:
            return await self.direct_play(request, path)
        return await self.live_transcode(request, path, requested_height)

    async def direct_play(self, request: web.Request, path: Path) -> web.StreamResponse:
        """Serve file bytes, honoring a single byte range."""
        file_size = (await asyncio.to_thread(path.stat)).st_size
        byte_range = parse_range_header(request.headers.get("Range"), file_size)

        headers = {
            "Content-Type": mime_type_for(path),
            "Accept-Ranges": "bytes",
        }
        if byte_range is None:
            status = 200
            start, length = 0, file_size
        else:
            status = 206
            start, length = byte_range.start, byte_range.length
            headers["Content-Range"] = byte_range.content_range(file_size)
        headers["Content-Length"] = str(length)

        response = web.StreamResponse(status=status, headers=headers)
        await response.prepare(request)
        if request.method == "HEAD" or length == 0:
            await response.write_eof()
            return response

        handle = await asyncio.to_thread(path.open, "rb")
        try:
            await asyncio.to_thread(handle.seek, start)
            remaining = length
            while remaining > 0:
                chunk = await asyncio.to_thread(
                    handle.read, min(self.chunk_size, remaining)
                )
                if not chunk:
                    logger.warning("File %s shrank while streaming", path)
                    break
                await response.write(chunk)
                remaining -= len(chunk)
        except ConnectionError:
            logger.debug("Client disconnected during direct play of %s", path)
            return response
        finally:
            await asyncio.to_thread(handle.close)

        await response.write_eof()
        return response

    async def live_transcode(
        self, request: web.Request, path: Path, requested_height: int | None = None
    ) -> web.StreamResponse:
        """Pipe a live fragmented-MP4 encode of ``path`` into the response."""
        args = build_live_transcode_command(self.tool_path, path, requested_height)
        logger.debug("Executing command: %s", " ".join(args))
        process = await asyncio.create_subprocess_exec(  # nosec B603
            *args,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        self._processes.add(process)

        stderr_tail: deque[str] = deque(maxlen=10)
        stderr_task = asyncio.create_task(self._collect_stderr(process, stderr_tail))

        response = web.StreamResponse(
            status=200,
            headers={
                "Content-Type": CONTAINER_MIME_TYPES[self.target_container],
                TRANSCODING_HEADER: "active",
                "Cache-Control": "no-store",
            },
        )
        response.enable_chunked_encoding()

        # Stays None when prepare or the pipe loop raises something unexpected
        outcome: StreamOutcome | None = None
        try:
            await response.prepare(request)
            outcome = await self._pipe(request, response, process)
        except ConnectionError:
            outcome = StreamOutcome.ABORTED
        except asyncio.CancelledError:
            outcome = StreamOutcome.ABORTED
            raise
        finally:
            if outcome is not StreamOutcome.COMPLETED and process.returncode is None:
                process.kill()
                if outcome is StreamOutcome.ABORTED:
                    logger.info(
                        "Client disconnected, killed live encoder pid %d for %s",
                        process.pid,
                        path,
                    )
                else:
                    logger.warning(
                        "Killed live encoder pid %d for %s after a streaming error",
                        process.pid,
                        path,
                    )
            await process.wait()
            await stderr_task
            self._processes.discard(process)

        if process.returncode != 0 and outcome is StreamOutcome.COMPLETED:
            outcome = StreamOutcome.FAILED
            logger.error(
                "Live transcode of %s failed (exit code %d): %s",
                path,
                process.returncode,
                "\n".join(stderr_tail) or "no output",
            )
            # End the response without a terminating chunk
            if request.transport is not None:
                request.transport.close()
            return response

        if outcome is StreamOutcome.COMPLETED:
            await response.write_eof()
        return response

    async def _pipe(
        self,
        request: web.Request,
        response: web.StreamResponse,
        process: asyncio.subprocess.Process,
    ) -> StreamOutcome:
        assert process.stdout is not None
        while True:
            if _client_gone(request):
                return StreamOutcome.ABORTED
            try:
                chunk = await asyncio.wait_for(
                    process.stdout.read(self.chunk_size),
                    timeout=self.disconnect_poll_interval,
                )
            except asyncio.TimeoutError:
                continue
            if not chunk:
                return StreamOutcome.COMPLETED
            await response.write(chunk)

    @staticmethod
    async def _collect_stderr(
        process: asyncio.subprocess.Process, tail: deque[str]
    ) -> None:
        if process.stderr is None:
            return
        async for line in iter_stderr_lines(process.stderr):
            tail.append(line)

    def close(self) -> None:
        """Kill every live encoder (used on shutdown)."""
        for process in list(self._processes):
            if process.returncode is None:
                process.kill()
        if self._processes:
            logger.info("Killed %d live encoder(s)", len(self._processes))
