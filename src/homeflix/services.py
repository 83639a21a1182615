"""Process-wide service container.

MediaServices is built once at process start and handed to the HTTP app and
the CLI commands by reference.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path

from homeflix.config.loader import resolve_cache_dir, resolve_database_path
from homeflix.config.models import HomeflixConfig
from homeflix.core.datetime_utils import utc_now_iso
from homeflix.db.connection import DaemonConnectionPool
from homeflix.db.queries import get_library, insert_library, list_libraries
from homeflix.db.types import LibraryRecord
from homeflix.domain.enums import LibraryType
from homeflix.errors import LibraryNotFoundError
from homeflix.images.manager import ImageManager
from homeflix.introspector.ffprobe import FFprobeProbe
from homeflix.introspector.interface import MetadataProbe
from homeflix.jobs.transcode import TranscodeJobManager
from homeflix.scanner.orchestrator import LibraryScanner, ScanResult
from homeflix.streaming.controller import StreamController

logger = logging.getLogger(__name__)


@dataclass
class MediaServices:
    """Holds the long-lived components that share one catalog pool."""

    config: HomeflixConfig
    pool: DaemonConnectionPool
    cache_dir: Path
    probe: MetadataProbe
    image_manager: ImageManager
    scanner: LibraryScanner
    transcode_manager: TranscodeJobManager
    stream_controller: StreamController

    @classmethod
    def build(
        cls,
        config: HomeflixConfig,
        pool: DaemonConnectionPool | None = None,
        probe: MetadataProbe | None = None,
    ) -> MediaServices:
        """Wire every component from configuration.

        Args:
            config: Merged configuration.
            pool: Existing pool to use. When None, one is opened on the
                configured database path and the schema is initialized.
            probe: Metadata probe override (tests pass a stub).

        Returns:
            Ready-to-use services.
        """
        if pool is None:
            pool = DaemonConnectionPool(
                resolve_database_path(config), timeout=config.db_timeout
            )
            pool.initialize()
        cache_dir = resolve_cache_dir(config)
        ffmpeg_path = config.tools.ffmpeg

        if probe is None:
            probe = FFprobeProbe(config.tools.ffprobe)

        image_manager = ImageManager(
            pool,
            cache_dir,
            ffmpeg_path=ffmpeg_path,
            width=config.images.poster_width,
            timeout=config.images.timeout,
            max_workers=config.images.workers,
        )
        scanner = LibraryScanner(pool, probe, image_manager=image_manager)
        transcode_manager = TranscodeJobManager(
            pool,
            cache_dir,
            ffmpeg_path=ffmpeg_path,
            segment_seconds=config.transcode.segment_seconds,
            progress_step=config.transcode.progress_step,
        )
        stream_controller = StreamController(
            pool,
            ffmpeg_path=ffmpeg_path,
            target_container=config.streaming.target_container,
            target_video_codec=config.streaming.target_video_codec,
            chunk_size=config.streaming.chunk_size,
            disconnect_poll_interval=config.streaming.disconnect_poll_interval,
        )
        logger.debug("Media services ready (cache at %s)", cache_dir)
        return cls(
            config=config,
            pool=pool,
            cache_dir=cache_dir,
            probe=probe,
            image_manager=image_manager,
            scanner=scanner,
            transcode_manager=transcode_manager,
            stream_controller=stream_controller,
        )

    # Library management

    def create_library(
        self, name: str, library_type: LibraryType | str, root_path: Path | str
    ) -> LibraryRecord:
        """Register a new library.

        Raises:
            ValueError: If the name is blank or the type is unknown.
        """
        name = name.strip()
        if not name:
            raise ValueError("Library name must not be empty")
        library_type = LibraryType(library_type)
        record = LibraryRecord(
            id=None,
            name=name,
            type=library_type,
            root_path=str(Path(root_path).expanduser()),
            created_at=utc_now_iso(),
        )
        with self.pool.transaction() as conn:
            record.id = insert_library(conn, record)
        logger.info(
            "Created %s library %d (%s) at %s",
            library_type.value,
            record.id,
            record.name,
            record.root_path,
        )
        return record

    def list_libraries(self) -> list[LibraryRecord]:
        with self.pool.read_connection() as conn:
            return list_libraries(conn)

    def get_library(self, library_id: int) -> LibraryRecord:
        """Return a library by id.

        Raises:
            LibraryNotFoundError: If the id is unknown.
        """
        with self.pool.read_connection() as conn:
            library = get_library(conn, library_id)
        if library is None:
            raise LibraryNotFoundError(library_id)
        return library

    async def scan_library(self, library_id: int) -> ScanResult:
        """Run a library scan on a worker thread."""
        return await asyncio.to_thread(self.scanner.scan_library, library_id)

    async def close(self, timeout: float | None = None) -> None:
        """Stop background work.

        Live streams are killed, in-flight transcode jobs get ``timeout``
        seconds to finish before being cancelled, and pending poster
        captures are drained. The pool itself is left open; its owner
        closes it.
        """
        if timeout is None:
            timeout = self.config.server.shutdown_timeout
        self.stream_controller.close()
        await self.transcode_manager.close(timeout=timeout)
        await asyncio.to_thread(self.image_manager.close, True)
