"""Unit tests for FFprobeProbe with a mocked subprocess."""

import json
import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest

from homeflix.introspector import FFprobeProbe, MediaProbeError, StubProbe

RUN_COMMAND = "homeflix.introspector.ffprobe.run_command"


@pytest.fixture
def media_file(temp_dir: Path) -> Path:
    path = temp_dir / "movie.mp4"
    path.write_bytes(b"\x00" * 64)
    return path


@pytest.fixture
def probe() -> FFprobeProbe:
    return FFprobeProbe(ffprobe_path=Path("/usr/bin/ffprobe"), timeout=5)


class TestFFprobeProbe:
    """Tests for FFprobeProbe.probe()."""

    def test_successful_probe(self, probe, media_file, h264_mp4_fixture):
        with patch(RUN_COMMAND, return_value=(json.dumps(h264_mp4_fixture), "", 0)) as run:
            metadata = probe.probe(media_file)

        assert metadata.path == media_file
        assert metadata.video.codec == "h264"
        args = run.call_args[0][0]
        assert args[0] == Path("/usr/bin/ffprobe")
        assert "-show_chapters" in args
        assert args[-1] == media_file
        assert run.call_args.kwargs["timeout"] == 5

    def test_missing_file(self, probe, temp_dir):
        with patch(RUN_COMMAND) as run:
            with pytest.raises(MediaProbeError, match="File not found"):
                probe.probe(temp_dir / "nope.mkv")
        run.assert_not_called()

    def test_nonzero_exit_includes_stderr(self, probe, media_file):
        with patch(RUN_COMMAND, return_value=("", "moov atom not found\n", 1)):
            with pytest.raises(MediaProbeError, match="moov atom not found") as exc_info:
                probe.probe(media_file)
        assert exc_info.value.path == media_file

    def test_invalid_json(self, probe, media_file):
        with patch(RUN_COMMAND, return_value=("{not json", "", 0)):
            with pytest.raises(MediaProbeError, match="Invalid ffprobe output"):
                probe.probe(media_file)

    def test_non_object_json(self, probe, media_file):
        with patch(RUN_COMMAND, return_value=("[]", "", 0)):
            with pytest.raises(MediaProbeError, match="Unexpected ffprobe output"):
                probe.probe(media_file)

    @pytest.mark.parametrize("missing", ["streams", "format"])
    def test_missing_sections(self, probe, media_file, h264_mp4_fixture, missing):
        del h264_mp4_fixture[missing]
        with patch(RUN_COMMAND, return_value=(json.dumps(h264_mp4_fixture), "", 0)):
            with pytest.raises(MediaProbeError, match=f"Missing '{missing}'"):
                probe.probe(media_file)

    @pytest.mark.parametrize(
        ("key", "value"),
        [("streams", None), ("format", "mp4"), ("chapters", "none"), ("streams", {})],
    )
    def test_wrongly_shaped_sections(
        self, probe, media_file, h264_mp4_fixture, key, value
    ):
        h264_mp4_fixture[key] = value
        with patch(RUN_COMMAND, return_value=(json.dumps(h264_mp4_fixture), "", 0)):
            with pytest.raises(MediaProbeError, match=f"Malformed '{key}'"):
                probe.probe(media_file)

    def test_odd_stream_entries_are_tolerated(self, probe, media_file, h264_mp4_fixture):
        streams = h264_mp4_fixture["streams"]
        streams[1]["tags"] = None
        streams[2]["disposition"] = None
        streams.append(42)
        h264_mp4_fixture["chapters"].append("chapter")
        with patch(RUN_COMMAND, return_value=(json.dumps(h264_mp4_fixture), "", 0)):
            metadata = probe.probe(media_file)

        assert [a.language for a in metadata.audio_streams] == [None, "fra"]
        assert metadata.audio_streams[0].label is None
        assert metadata.audio_streams[1].is_default is False
        assert len(metadata.chapters) == 2

    def test_parser_type_errors_become_probe_errors(self, probe, media_file):
        payload = {"streams": [], "format": {}}
        with (
            patch(RUN_COMMAND, return_value=(json.dumps(payload), "", 0)),
            patch(
                "homeflix.introspector.ffprobe.parse_ffprobe_output",
                side_effect=TypeError("bad value"),
            ),
        ):
            with pytest.raises(MediaProbeError, match="Malformed ffprobe output"):
                probe.probe(media_file)

    def test_timeout(self, probe, media_file):
        error = subprocess.TimeoutExpired(cmd="ffprobe", timeout=5)
        with patch(RUN_COMMAND, side_effect=error):
            with pytest.raises(MediaProbeError, match="timed out"):
                probe.probe(media_file)

    def test_cannot_start_ffprobe(self, probe, media_file):
        with patch(RUN_COMMAND, side_effect=PermissionError("denied")):
            with pytest.raises(MediaProbeError, match="Could not run ffprobe"):
                probe.probe(media_file)

    def test_ffprobe_not_installed(self, media_file):
        probe = FFprobeProbe()
        with patch("homeflix.tools.detection.shutil.which", return_value=None):
            with pytest.raises(MediaProbeError, match="ffprobe"):
                probe.probe(media_file)


class TestStubProbe:
    """Tests for the in-memory probe."""

    def test_returns_mapped_metadata(self, metadata_factory):
        metadata = metadata_factory(Path("/m/a.mp4"))
        stub = StubProbe({Path("/m/a.mp4"): metadata})

        assert stub.probe(Path("/m/a.mp4")) is metadata
        assert stub.calls == [Path("/m/a.mp4")]

    def test_mapped_error_is_raised(self):
        stub = StubProbe()
        stub.add(Path("/m/broken.mkv"), MediaProbeError("corrupt"))
        with pytest.raises(MediaProbeError, match="corrupt"):
            stub.probe(Path("/m/broken.mkv"))

    def test_unmapped_path(self):
        with pytest.raises(MediaProbeError, match="No stub result"):
            StubProbe().probe(Path("/m/unknown.avi"))
