"""Scanner module for Homeflix.

Public API:
    - LibraryScanner: walks library roots and indexes new files
    - ScanResult: counters and errors for a scan
    - ScanOutcome: per-file result
    - DEFAULT_EXTENSIONS: video file extensions that are scanned
"""

from homeflix.scanner.orchestrator import (
    DEFAULT_EXTENSIONS,
    LibraryScanner,
    ScanOutcome,
    ScanResult,
    derive_title,
    is_video_file,
)

__all__ = [
    "DEFAULT_EXTENSIONS",
    "LibraryScanner",
    "ScanOutcome",
    "ScanResult",
    "derive_title",
    "is_video_file",
]
