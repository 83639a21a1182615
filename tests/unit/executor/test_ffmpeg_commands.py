"""Tests for ffmpeg command builders and the shared path handling."""

from pathlib import Path
from unittest.mock import patch

import pytest

from homeflix.executor import (
    FFmpegComponentBase,
    build_hls_command,
    build_live_transcode_command,
    build_poster_command,
    build_scale_filter,
)
from homeflix.tools import ToolNotFoundError

FFMPEG = Path("/opt/ffmpeg/bin/ffmpeg")


class TestPosterCommand:
    def test_arguments(self):
        args = build_poster_command(
            FFMPEG, Path("/m/in.mkv"), Path("/c/poster.jpg"), 59.6454, width=400
        )
        assert args[0] == str(FFMPEG)
        assert args[args.index("-ss") + 1] == "59.645"
        # Seek before -i so ffmpeg seeks the input
        assert args.index("-ss") < args.index("-i")
        assert args[args.index("-frames:v") + 1] == "1"
        assert args[args.index("-vf") + 1] == "scale=400:-2"
        assert args[-1] == "/c/poster.jpg"

    def test_negative_timestamp_clamped(self):
        args = build_poster_command(FFMPEG, Path("a"), Path("b"), -3)
        assert args[args.index("-ss") + 1] == "0.000"


class TestHlsCommand:
    def test_arguments(self):
        out = Path("/c/hls/job")
        args = build_hls_command(FFMPEG, Path("/m/in.avi"), out, segment_seconds=6)

        assert args[args.index("-hls_time") + 1] == "6"
        assert args[args.index("-hls_list_size") + 1] == "0"
        assert args[args.index("-hls_segment_filename") + 1] == "/c/hls/job/segment_%03d.ts"
        assert args[args.index("-f") + 1] == "hls"
        assert args[-1] == "/c/hls/job/master.m3u8"


class TestLiveCommand:
    @pytest.mark.parametrize(
        "height,expected",
        [(None, "format=yuv420p"), (720, "scale=-2:720,format=yuv420p")],
    )
    def test_scale_filter(self, height, expected):
        assert build_scale_filter(height) == expected

    def test_fragmented_mp4_to_stdout(self):
        args = build_live_transcode_command(FFMPEG, Path("/m/in.mkv"), 480)

        assert args[-3:] == ["-f", "mp4", "pipe:1"]
        assert "frag_keyframe" in args[args.index("-movflags") + 1]
        assert args[args.index("-vf") + 1] == "scale=-2:480,format=yuv420p"
        assert args[args.index("-c:v") + 1] == "libx264"


class TestFFmpegComponentBase:
    def test_explicit_path_is_used_without_lookup(self):
        with patch("homeflix.executor.ffmpeg_base.require_tool") as require:
            assert FFmpegComponentBase(FFMPEG).tool_path == FFMPEG
        require.assert_not_called()

    def test_path_resolved_once(self):
        with patch(
            "homeflix.executor.ffmpeg_base.require_tool", return_value=FFMPEG
        ) as require:
            component = FFmpegComponentBase()
            assert component.tool_path == FFMPEG
            assert component.tool_path == FFMPEG
        require.assert_called_once_with("ffmpeg")

    def test_construction_never_fails_without_ffmpeg(self):
        component = FFmpegComponentBase()
        with patch(
            "homeflix.executor.ffmpeg_base.require_tool",
            side_effect=ToolNotFoundError("ffmpeg"),
        ):
            with pytest.raises(ToolNotFoundError):
                _ = component.tool_path
