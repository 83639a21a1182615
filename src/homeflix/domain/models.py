"""Domain models for Homeflix.

These models describe probed media independently of the database layer.
"""

from dataclasses import dataclass, field
from pathlib import Path


@dataclass
class VideoStreamInfo:
    """The primary video stream of a file."""

    index: int
    codec: str
    width: int | None = None
    height: int | None = None

    @property
    def resolution(self) -> str | None:
        """Resolution as "WxH", or None when either dimension is unknown."""
        if self.width is None or self.height is None:
            return None
        return f"{self.width}x{self.height}"


@dataclass
class AudioStreamInfo:
    """An audio stream discovered by the probe."""

    index: int
    codec: str
    channels: int = 2
    language: str | None = None
    label: str | None = None
    is_default: bool = False


@dataclass
class SubtitleStreamInfo:
    """A subtitle stream discovered by the probe."""

    index: int
    codec: str
    language: str | None = None
    label: str | None = None
    is_default: bool = False


@dataclass
class ChapterInfo:
    """A chapter marker."""

    title: str
    start_seconds: float
    end_seconds: float

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "start_seconds": self.start_seconds,
            "end_seconds": self.end_seconds,
        }


@dataclass
class MediaMetadata:
    """Typed summary of a probed media file."""

    path: Path
    duration_seconds: float = 0.0
    container_format: str = "unknown"
    bitrate: int = 0
    size_bytes: int = 0
    video: VideoStreamInfo | None = None
    audio_streams: list[AudioStreamInfo] = field(default_factory=list)
    subtitle_streams: list[SubtitleStreamInfo] = field(default_factory=list)
    chapters: list[ChapterInfo] = field(default_factory=list)

    @property
    def default_audio_channels(self) -> int | None:
        """Channel count of the first audio stream, if any."""
        if not self.audio_streams:
            return None
        return self.audio_streams[0].channels
