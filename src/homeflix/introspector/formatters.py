"""Formatters for probe results.

Shared by the ``homeflix probe`` command and anything else that needs to
show a MediaMetadata to a person or serialize it.
"""

import json
from dataclasses import asdict
from typing import Any

from homeflix.domain.models import (
    AudioStreamInfo,
    MediaMetadata,
    SubtitleStreamInfo,
)


def _format_duration(seconds: float) -> str:
    total = int(seconds)
    hours, rem = divmod(total, 3600)
    minutes, secs = divmod(rem, 60)
    return f"{hours}:{minutes:02d}:{secs:02d}"


def format_stream_line(stream: AudioStreamInfo | SubtitleStreamInfo) -> str:
    """Format one audio or subtitle stream for human output."""
    parts = [f"#{stream.index}", stream.codec]
    if isinstance(stream, AudioStreamInfo):
        parts.append(f"{stream.channels}ch")
    if stream.language:
        parts.append(stream.language)
    if stream.label:
        parts.append(f'"{stream.label}"')
    if stream.is_default:
        parts.append("(default)")
    return " ".join(parts)


def format_human(metadata: MediaMetadata) -> str:
    """Format probe output for the terminal.

    Args:
        metadata: The probed file.

    Returns:
        Multi-line summary.
    """
    lines = [
        f"File: {metadata.path}",
        f"Container: {metadata.container_format}",
        f"Duration: {_format_duration(metadata.duration_seconds)}",
        f"Bitrate: {metadata.bitrate // 1000} kb/s",
        "",
    ]

    if metadata.video is not None:
        video = metadata.video
        lines.append(
            f"Video: #{video.index} {video.codec} {video.resolution or 'unknown size'}"
        )
    else:
        lines.append("Video: none")

    lines.append("Audio:")
    for stream in metadata.audio_streams:
        lines.append(f"  {format_stream_line(stream)}")
    if not metadata.audio_streams:
        lines.append("  (none)")

    if metadata.subtitle_streams:
        lines.append("Subtitles:")
        for stream in metadata.subtitle_streams:
            lines.append(f"  {format_stream_line(stream)}")

    if metadata.chapters:
        lines.append(f"Chapters: {len(metadata.chapters)}")
        for chapter in metadata.chapters:
            lines.append(
                f"  {_format_duration(chapter.start_seconds)} {chapter.title}"
            )

    return "\n".join(lines)


def metadata_to_dict(metadata: MediaMetadata) -> dict[str, Any]:
    """JSON-ready representation of a MediaMetadata."""
    data = asdict(metadata)
    data["path"] = str(metadata.path)
    if metadata.video is not None:
        data["video"]["resolution"] = metadata.video.resolution
    return data


def format_json(metadata: MediaMetadata) -> str:
    """Serialize probe output as indented JSON."""
    return json.dumps(metadata_to_dict(metadata), indent=2)
