"""Pure parsing functions for ffprobe JSON output.

These functions transform ffprobe JSON data into Homeflix domain objects.
All functions are pure (no I/O, no side effects) for easy testing.
"""

import logging
from pathlib import Path

from homeflix.domain import (
    AudioStreamInfo,
    ChapterInfo,
    MediaMetadata,
    SubtitleStreamInfo,
    VideoStreamInfo,
)

logger = logging.getLogger(__name__)

DEFAULT_AUDIO_CHANNELS = 2
DEFAULT_CHAPTER_TITLE = "Chapter"


def parse_float(value: object, default: float = 0.0) -> float:
    """Parse a numeric ffprobe field (often a string) into a float."""
    if value is None:
        return default
    try:
        return float(value)
    except (ValueError, TypeError):
        return default


def parse_int(value: object, default: int | None = 0) -> int | None:
    """Parse an integer ffprobe field, truncating fractional strings."""
    if value is None:
        return default
    try:
        return int(float(value))
    except (ValueError, TypeError):
        return default


def _positive_int(value: object) -> int | None:
    parsed = parse_int(value, default=None)
    if parsed is None or parsed <= 0:
        return None
    return parsed


def _mapping(value: object) -> dict:
    """Treat a missing or non-object tags/disposition value as empty."""
    return value if isinstance(value, dict) else {}


def _stream_label(tags: dict) -> str | None:
    return tags.get("title") or tags.get("label") or None


def _is_default(stream: dict) -> bool:
    return _mapping(stream.get("disposition")).get("default", 0) == 1


def parse_video_stream(stream: dict) -> VideoStreamInfo:
    """Parse an ffprobe video stream dict."""
    return VideoStreamInfo(
        index=stream.get("index", 0),
        codec=stream.get("codec_name") or "unknown",
        width=_positive_int(stream.get("width")),
        height=_positive_int(stream.get("height")),
    )


def parse_audio_stream(stream: dict) -> AudioStreamInfo:
    """Parse an ffprobe audio stream dict.

    Channel count falls back to stereo when ffprobe omits it.
    """
    tags = _mapping(stream.get("tags"))
    return AudioStreamInfo(
        index=stream.get("index", 0),
        codec=stream.get("codec_name") or "unknown",
        channels=_positive_int(stream.get("channels")) or DEFAULT_AUDIO_CHANNELS,
        language=tags.get("language"),
        label=_stream_label(tags),
        is_default=_is_default(stream),
    )


def parse_subtitle_stream(stream: dict) -> SubtitleStreamInfo:
    """Parse an ffprobe subtitle stream dict."""
    tags = _mapping(stream.get("tags"))
    return SubtitleStreamInfo(
        index=stream.get("index", 0),
        codec=stream.get("codec_name") or "unknown",
        language=tags.get("language"),
        label=_stream_label(tags),
        is_default=_is_default(stream),
    )


def parse_chapters(chapters: list[dict]) -> list[ChapterInfo]:
    """Parse ffprobe chapters in their original order."""
    result = []
    for chapter in chapters:
        if not isinstance(chapter, dict):
            continue
        tags = _mapping(chapter.get("tags"))
        result.append(
            ChapterInfo(
                title=tags.get("title") or DEFAULT_CHAPTER_TITLE,
                start_seconds=parse_float(chapter.get("start_time")),
                end_seconds=parse_float(chapter.get("end_time")),
            )
        )
    return result


def parse_ffprobe_output(path: Path, data: dict) -> MediaMetadata:
    """Parse ffprobe JSON output into MediaMetadata.

    Only the first real video stream is kept; embedded cover art
    (attached_pic) is ignored. Streams of other types (data, attachment)
    are dropped.

    Args:
        path: Path to the media file.
        data: Parsed ffprobe JSON output.

    Returns:
        MediaMetadata for the file.
    """
    format_info = _mapping(data.get("format"))

    metadata = MediaMetadata(
        path=path,
        duration_seconds=parse_float(format_info.get("duration")),
        container_format=format_info.get("format_name") or "unknown",
        bitrate=parse_int(format_info.get("bit_rate")) or 0,
        size_bytes=parse_int(format_info.get("size")) or 0,
    )

    for stream in data.get("streams") or []:
        if not isinstance(stream, dict):
            logger.debug("Skipping malformed stream entry in %s: %r", path, stream)
            continue
        codec_type = stream.get("codec_type")
        if codec_type == "video":
            if metadata.video is not None:
                continue
            if _mapping(stream.get("disposition")).get("attached_pic", 0) == 1:
                continue
            metadata.video = parse_video_stream(stream)
        elif codec_type == "audio":
            metadata.audio_streams.append(parse_audio_stream(stream))
        elif codec_type == "subtitle":
            metadata.subtitle_streams.append(parse_subtitle_stream(stream))

    metadata.chapters = parse_chapters(data.get("chapters") or [])

    if metadata.video is None:
        logger.debug("No video stream found in %s", path)

    return metadata
