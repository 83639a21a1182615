"""Domain models and enums for Homeflix.

Usage:
    from homeflix.domain import MediaMetadata, TranscodeStatus
"""

from .enums import (
    ImageKind,
    LibraryType,
    PlaybackMode,
    StreamKind,
    TranscodeStatus,
)
from .models import (
    AudioStreamInfo,
    ChapterInfo,
    MediaMetadata,
    SubtitleStreamInfo,
    VideoStreamInfo,
)

__all__ = [
    # Models
    "AudioStreamInfo",
    "ChapterInfo",
    "MediaMetadata",
    "SubtitleStreamInfo",
    "VideoStreamInfo",
    # Enums
    "ImageKind",
    "LibraryType",
    "PlaybackMode",
    "StreamKind",
    "TranscodeStatus",
]
