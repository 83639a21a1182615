"""Library scanning: directory walk, probe, catalog insert, poster request."""

from __future__ import annotations

import logging
import os
import sqlite3
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

from homeflix.core import current_year, utc_now_iso
from homeflix.db.queries import (
    get_library,
    insert_media_item,
    insert_media_streams,
    media_item_exists,
)
from homeflix.db.types import MediaItemRecord, MediaStreamRecord
from homeflix.introspector import MediaProbeError

if TYPE_CHECKING:
    from homeflix.db.connection import DaemonConnectionPool
    from homeflix.domain import MediaMetadata
    from homeflix.images import ImageManager
    from homeflix.introspector import MetadataProbe

logger = logging.getLogger(__name__)

DEFAULT_EXTENSIONS = frozenset({"mp4", "mkv", "avi", "mov", "webm"})


class ScanOutcome(Enum):
    """What happened to a single file."""

    NEW = "new"
    SKIPPED = "skipped"  # already indexed
    FAILED = "failed"  # probe or insert failed; file stays unindexed


@dataclass
class ScanResult:
    """Result of a scan operation."""

    library_id: int | None = None
    files_found: int = 0
    files_new: int = 0
    files_skipped: int = 0
    files_errored: int = 0
    errors: list[tuple[str, str]] = field(default_factory=list)
    unreadable_directories: list[str] = field(default_factory=list)
    elapsed_seconds: float = 0.0
    library_found: bool = True
    already_running: bool = False

    def record(self, outcome: ScanOutcome) -> None:
        if outcome is ScanOutcome.NEW:
            self.files_new += 1
        elif outcome is ScanOutcome.SKIPPED:
            self.files_skipped += 1
        else:
            self.files_errored += 1

    def to_dict(self) -> dict:
        return {
            "library_id": self.library_id,
            "files_found": self.files_found,
            "files_new": self.files_new,
            "files_skipped": self.files_skipped,
            "files_errored": self.files_errored,
            "errors": [{"path": p, "error": e} for p, e in self.errors],
            "unreadable_directories": list(self.unreadable_directories),
            "elapsed_seconds": round(self.elapsed_seconds, 3),
        }


def derive_title(path: Path) -> str:
    """Title of a media file: its name without the extension."""
    return path.stem


def is_video_file(name: str, extensions: frozenset[str] = DEFAULT_EXTENSIONS) -> bool:
    """Case-insensitive extension check against the video allowlist."""
    suffix = os.path.splitext(name)[1]
    return suffix[1:].lower() in extensions if suffix else False


class LibraryScanner:
    """Walks library roots and indexes new video files.

    Scanning is idempotent by path: files already in the catalog are never
    probed again or modified. Per-file and per-directory failures are logged
    and counted; they never abort the scan.
    """

    def __init__(
        self,
        pool: DaemonConnectionPool,
        probe: MetadataProbe,
        image_manager: ImageManager | None = None,
        extensions: frozenset[str] = DEFAULT_EXTENSIONS,
    ) -> None:
        self.pool = pool
        self.probe = probe
        self.image_manager = image_manager
        self.extensions = frozenset(ext.lower().lstrip(".") for ext in extensions)
        self._active_libraries: set[int] = set()
        self._active_lock = threading.Lock()

    def is_scanning(self, library_id: int) -> bool:
        with self._active_lock:
            return library_id in self._active_libraries

    def scan_library(self, library_id: int) -> ScanResult:
        """Scan every video file under a library's root path.

        A missing library is logged and reported through
        ``ScanResult.library_found``; it is not raised. A second scan of a
        library that is already being scanned returns immediately with
        ``already_running`` set.

        Args:
            library_id: Catalog id of the library.

        Returns:
            ScanResult with per-outcome counters.
        """
        result = ScanResult(library_id=library_id)

        with self.pool.read_connection() as conn:
            library = get_library(conn, library_id)
        if library is None:
            logger.warning("Library %d not found, nothing to scan", library_id)
            result.library_found = False
            return result

        with self._active_lock:
            if library_id in self._active_libraries:
                logger.info("Library %d is already being scanned", library_id)
                result.already_running = True
                return result
            self._active_libraries.add(library_id)

        start = time.monotonic()
        try:
            logger.info(
                "Scanning library %d (%s) at %s",
                library_id,
                library.name,
                library.root_path,
            )
            self.scan_directory(
                Path(library.root_path), library_id, library.type.value, result
            )
        finally:
            with self._active_lock:
                self._active_libraries.discard(library_id)
            result.elapsed_seconds = time.monotonic() - start

        logger.info(
            "Scan of library %d finished: %d found, %d new, %d skipped, "
            "%d errors in %.1fs",
            library_id,
            result.files_found,
            result.files_new,
            result.files_skipped,
            result.files_errored,
            result.elapsed_seconds,
        )
        return result

    def scan_directory(
        self,
        root: Path,
        library_id: int,
        media_type: str,
        result: ScanResult | None = None,
    ) -> ScanResult:
        """Recursively scan a directory tree.

        Symlinked directories are not followed. A directory that cannot be
        listed is logged and its subtree skipped.

        Args:
            root: Directory to walk.
            library_id: Library the discovered items belong to.
            media_type: Item type recorded on new rows.
            result: Accumulator to update; a new one is created if None.

        Returns:
            The updated ScanResult.
        """
        if result is None:
            result = ScanResult(library_id=library_id)

        for file_path in self._iter_video_files(root, result):
            result.files_found += 1
            try:
                outcome = self.scan_file(file_path, library_id, media_type, result)
            except Exception as e:
                logger.exception("Unexpected error scanning %s", file_path)
                result.errors.append((str(file_path), str(e)))
                outcome = ScanOutcome.FAILED
            result.record(outcome)

        return result

    def _iter_video_files(self, root: Path, result: ScanResult):
        stack = [root]
        while stack:
            directory = stack.pop()
            try:
                with os.scandir(directory) as it:
                    entries = sorted(it, key=lambda e: e.name)
            except OSError as e:
                logger.warning("Cannot read directory %s: %s", directory, e)
                result.unreadable_directories.append(str(directory))
                continue

            subdirs = []
            for entry in entries:
                try:
                    if entry.is_dir(follow_symlinks=False):
                        subdirs.append(Path(entry.path))
                    elif entry.is_file() and is_video_file(entry.name, self.extensions):
                        yield Path(entry.path)
                except OSError as e:
                    logger.warning("Cannot stat %s: %s", entry.path, e)
            # Reverse so subdirectories are visited in name order
            stack.extend(reversed(subdirs))

    def scan_file(
        self,
        path: Path,
        library_id: int,
        media_type: str,
        result: ScanResult | None = None,
    ) -> ScanOutcome:
        """Index a single file if it is not already in the catalog.

        The item row and its stream rows are written in one transaction.
        After commit, a poster is requested in the background.

        Args:
            path: File to index.
            library_id: Owning library.
            media_type: Item type recorded on the row.
            result: Optional ScanResult to record errors in.

        Returns:
            ScanOutcome describing what happened.
        """
        path_str = str(path)
        with self.pool.read_connection() as conn:
            if media_item_exists(conn, path_str):
                logger.debug("Already indexed: %s", path)
                return ScanOutcome.SKIPPED

        try:
            metadata = self.probe.probe(path)
        except MediaProbeError as e:
            logger.warning("Skipping unprobeable file %s: %s", path, e)
            if result is not None:
                result.errors.append((path_str, str(e)))
            return ScanOutcome.FAILED

        try:
            item_id = self._insert_item(metadata, library_id, media_type)
        except sqlite3.IntegrityError as e:
            if "media_items.path" in str(e):
                logger.debug("Indexed concurrently by another scan: %s", path)
                return ScanOutcome.SKIPPED
            logger.error("Failed to index %s: %s", path, e)
            if result is not None:
                result.errors.append((path_str, str(e)))
            return ScanOutcome.FAILED
        except sqlite3.Error as e:
            logger.error("Failed to index %s: %s", path, e)
            if result is not None:
                result.errors.append((path_str, str(e)))
            return ScanOutcome.FAILED

        logger.info("Indexed %s as item %d", path, item_id)
        self._request_poster(item_id, metadata)
        return ScanOutcome.NEW

    def _insert_item(
        self, metadata: MediaMetadata, library_id: int, media_type: str
    ) -> int:
        # Year is a placeholder until filenames are parsed for it
        record = MediaItemRecord.from_metadata(
            metadata,
            library_id=library_id,
            media_type=media_type,
            title=derive_title(metadata.path),
            year=current_year(),
            timestamp=utc_now_iso(),
        )
        with self.pool.transaction() as conn:
            item_id = insert_media_item(conn, record)
            streams = [
                MediaStreamRecord.from_stream_info(info, item_id)
                for info in (*metadata.audio_streams, *metadata.subtitle_streams)
            ]
            insert_media_streams(conn, streams)
        return item_id

    def _request_poster(self, item_id: int, metadata: MediaMetadata) -> None:
        if self.image_manager is None:
            return
        if metadata.video is None:
            logger.debug("No video stream in %s, skipping poster", metadata.path)
            return
        self.image_manager.request_poster(
            item_id, metadata.path, metadata.duration_seconds
        )
