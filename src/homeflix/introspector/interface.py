"""MetadataProbe interface for media file analysis."""

from pathlib import Path
from typing import Protocol

from homeflix.domain import MediaMetadata


class MediaProbeError(Exception):
    """Raised when a media file cannot be probed.

    The file is treated as unindexable; callers log and move on.
    """

    def __init__(self, message: str, path: Path | None = None) -> None:
        self.path = path
        super().__init__(message)


class MetadataProbe(Protocol):
    """Protocol for media probe implementations.

    Implementations run an external analyzer over a file and return a
    typed summary without decoding the content.
    """

    def probe(self, path: Path) -> MediaMetadata:
        """Analyze a media file.

        Args:
            path: Path to the media file.

        Returns:
            MediaMetadata describing the container and its streams.

        Raises:
            MediaProbeError: If the file cannot be opened or the analyzer
                output is malformed.
        """
        ...
