"""FFprobe-based implementation of the MetadataProbe protocol."""

import json
import logging
import subprocess  # nosec B404 - subprocess is required for ffprobe invocation
from pathlib import Path

from homeflix.core.subprocess_utils import run_command, stderr_tail
from homeflix.domain import MediaMetadata
from homeflix.introspector.interface import MediaProbeError
from homeflix.introspector.parsers import parse_ffprobe_output

logger = logging.getLogger(__name__)

PROBE_TIMEOUT = 60


class FFprobeProbe:
    """ffprobe-based implementation of MetadataProbe.

    Runs ``ffprobe -print_format json`` with streams, format and chapters
    and hands the output to the pure parser.
    """

    def __init__(
        self, ffprobe_path: Path | None = None, timeout: int = PROBE_TIMEOUT
    ) -> None:
        """Initialize the probe.

        Args:
            ffprobe_path: Explicit path to ffprobe. If not provided, the path
                is resolved from configuration or the system PATH on first use.
            timeout: Seconds before a probe is abandoned.
        """
        self._ffprobe_path = ffprobe_path
        self.timeout = timeout

    @property
    def ffprobe_path(self) -> Path:
        """Resolved ffprobe executable.

        Raises:
            MediaProbeError: If ffprobe is not available.
        """
        if self._ffprobe_path is None:
            from homeflix.tools import ToolNotFoundError, require_tool

            try:
                self._ffprobe_path = require_tool("ffprobe")
            except ToolNotFoundError as e:
                raise MediaProbeError(str(e)) from e
        return self._ffprobe_path

    def probe(self, path: Path) -> MediaMetadata:
        """Extract metadata from a media file.

        Args:
            path: Path to the media file.

        Returns:
            MediaMetadata for the file.

        Raises:
            MediaProbeError: If the file cannot be probed.
        """
        if not path.exists():
            raise MediaProbeError(f"File not found: {path}", path)

        try:
            data = self._run_ffprobe(path)
        except subprocess.TimeoutExpired as e:
            raise MediaProbeError(
                f"ffprobe timed out for {path} after {e.timeout}s", path
            ) from e
        except OSError as e:
            raise MediaProbeError(f"Could not run ffprobe for {path}: {e}", path) from e
        except json.JSONDecodeError as e:
            raise MediaProbeError(
                f"Invalid ffprobe output for {path}: {e}", path
            ) from e

        try:
            return parse_ffprobe_output(path, data)
        except (TypeError, AttributeError, ValueError) as e:
            raise MediaProbeError(
                f"Malformed ffprobe output for {path}: {e}", path
            ) from e

    def _run_ffprobe(self, path: Path) -> dict:
        """Run ffprobe and return parsed JSON output.

        Raises:
            json.JSONDecodeError: If output is not valid JSON.
            MediaProbeError: On non-zero exit or missing or malformed sections.
        """
        stdout, stderr, returncode = run_command(
            [
                self.ffprobe_path,
                "-v",
                "error",
                "-print_format",
                "json",
                "-show_streams",
                "-show_format",
                "-show_chapters",
                path,
            ],
            timeout=self.timeout,
        )
        if returncode != 0:
            raise MediaProbeError(
                f"ffprobe failed for {path} (exit {returncode}): "
                f"{stderr_tail(stderr) or 'no output'}",
                path,
            )

        data = json.loads(stdout)
        if not isinstance(data, dict):
            raise MediaProbeError(f"Unexpected ffprobe output for {path}", path)

        if "streams" not in data:
            raise MediaProbeError(
                f"Missing 'streams' in ffprobe output for {path}. "
                "File may be corrupted or not a valid media file.",
                path,
            )
        if "format" not in data:
            raise MediaProbeError(
                f"Missing 'format' in ffprobe output for {path}. "
                "File may be corrupted or not a valid media file.",
                path,
            )

        shapes = (("streams", list), ("format", dict), ("chapters", list))
        for key, expected in shapes:
            if key in data and not isinstance(data[key], expected):
                raise MediaProbeError(
                    f"Malformed '{key}' in ffprobe output for {path}: "
                    f"expected {expected.__name__}, got {type(data[key]).__name__}",
                    path,
                )

        return data
