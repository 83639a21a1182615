"""FFmpeg command building.

Three invocations are used:

- poster capture: one scaled JPEG frame at a timestamp
- segmented (HLS) encode: playlist plus numbered segments in a directory
- live encode: fragmented MP4 written to stdout
"""

from __future__ import annotations

from pathlib import Path

HLS_SEGMENT_SECONDS = 10
HLS_PLAYLIST_NAME = "master.m3u8"
HLS_SEGMENT_PATTERN = "segment_%03d.ts"

POSTER_WIDTH = 600

LIVE_VIDEO_ENCODER = "libx264"
LIVE_AUDIO_ENCODER = "aac"
LIVE_MOVFLAGS = "frag_keyframe+empty_moov+default_base_moof"


def format_timestamp(seconds: float) -> str:
    """Format seconds for ffmpeg's -ss option (millisecond precision)."""
    return f"{max(seconds, 0.0):.3f}"


def build_poster_command(
    ffmpeg: Path,
    source: Path,
    output: Path,
    timestamp_seconds: float,
    width: int = POSTER_WIDTH,
) -> list[str]:
    """Build the ffmpeg arguments for a single-frame poster capture.

    The frame is scaled to ``width`` with the height derived from the source
    aspect ratio and rounded to an even number.
    """
    return [
        str(ffmpeg),
        "-hide_banner",
        "-loglevel",
        "error",
        "-ss",
        format_timestamp(timestamp_seconds),
        "-i",
        str(source),
        "-frames:v",
        "1",
        "-vf",
        f"scale={width}:-2",
        "-q:v",
        "3",
        "-y",
        str(output),
    ]


def build_hls_command(
    ffmpeg: Path,
    source: Path,
    output_dir: Path,
    segment_seconds: int = HLS_SEGMENT_SECONDS,
) -> list[str]:
    """Build the ffmpeg arguments for a segmented HLS encode.

    The playlist keeps every segment (``-hls_list_size 0``). The playlist
    path is the last argument.
    """
    return [
        str(ffmpeg),
        "-hide_banner",
        "-nostdin",
        "-i",
        str(source),
        "-map",
        "0:v:0",
        "-map",
        "0:a:0?",
        "-c:v",
        "libx264",
        "-preset",
        "veryfast",
        "-pix_fmt",
        "yuv420p",
        "-c:a",
        "aac",
        "-ac",
        "2",
        "-hls_time",
        str(segment_seconds),
        "-hls_list_size",
        "0",
        "-hls_segment_filename",
        str(output_dir / HLS_SEGMENT_PATTERN),
        "-f",
        "hls",
        str(output_dir / HLS_PLAYLIST_NAME),
    ]


def build_scale_filter(height: int | None) -> str:
    """Build the video filter chain for live transcoding.

    Pixel format is always normalized to yuv420p. With a target height the
    width is derived from the aspect ratio and kept even (``-2``).
    """
    filters = []
    if height is not None:
        filters.append(f"scale=-2:{height}")
    filters.append("format=yuv420p")
    return ",".join(filters)


def build_live_transcode_command(
    ffmpeg: Path, source: Path, height: int | None = None
) -> list[str]:
    """Build the ffmpeg arguments for a live fragmented-MP4 encode to stdout."""
    return [
        str(ffmpeg),
        "-hide_banner",
        "-loglevel",
        "error",
        "-nostdin",
        "-i",
        str(source),
        "-map",
        "0:v:0",
        "-map",
        "0:a:0?",
        "-vf",
        build_scale_filter(height),
        "-c:v",
        LIVE_VIDEO_ENCODER,
        "-preset",
        "veryfast",
        "-tune",
        "zerolatency",
        "-c:a",
        LIVE_AUDIO_ENCODER,
        "-ac",
        "2",
        "-movflags",
        LIVE_MOVFLAGS,
        "-f",
        "mp4",
        "pipe:1",
    ]
