"""FFmpeg invocation helpers."""

from homeflix.executor.commands import (
    HLS_PLAYLIST_NAME,
    HLS_SEGMENT_PATTERN,
    HLS_SEGMENT_SECONDS,
    POSTER_WIDTH,
    build_hls_command,
    build_live_transcode_command,
    build_poster_command,
    build_scale_filter,
)
from homeflix.executor.ffmpeg_base import FFmpegComponentBase

__all__ = [
    "HLS_PLAYLIST_NAME",
    "HLS_SEGMENT_PATTERN",
    "HLS_SEGMENT_SECONDS",
    "POSTER_WIDTH",
    "FFmpegComponentBase",
    "build_hls_command",
    "build_live_transcode_command",
    "build_poster_command",
    "build_scale_filter",
]
