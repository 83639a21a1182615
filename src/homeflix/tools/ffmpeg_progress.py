"""Progress reporting from ffmpeg's stderr.

Without ``-progress``, ffmpeg rewrites one status line while encoding::

    frame= 1234 fps= 30 q=28.0 size= 2048kB time=00:01:23.45 bitrate=5000kbits/s
"""

import re
from dataclasses import dataclass

# ffmpeg pads values after "=", e.g. "frame=  12"
_FIELD_RE = re.compile(r"(\w+)=\s*(\S+)")
_CLOCK_RE = re.compile(r"(\d+):(\d{2}):(\d{2})(?:\.(\d+))?")


@dataclass
class FFmpegProgress:
    """One status line; fields ffmpeg printed as N/A stay None."""

    frame: int | None = None
    fps: float | None = None
    out_time_us: int | None = None
    speed: str | None = None

    @property
    def out_time_seconds(self) -> float | None:
        return None if self.out_time_us is None else self.out_time_us / 1e6

    def get_percent(self, duration_seconds: float | None) -> float:
        """Share of ``duration_seconds`` encoded so far, capped at 100.

        0.0 when either the duration or the output time is unknown.
        """
        seconds = self.out_time_seconds
        if not duration_seconds or duration_seconds < 0 or seconds is None:
            return 0.0
        return min(100.0, 100.0 * seconds / duration_seconds)


def _clock_to_us(value: str) -> int | None:
    # A leading "-" shows up before the first packet is muxed
    match = _CLOCK_RE.fullmatch(value)
    if match is None:
        return None
    hours, minutes, seconds, fraction = match.groups()
    whole = int(hours) * 3600 + int(minutes) * 60 + int(seconds)
    return whole * 1_000_000 + int((fraction or "").ljust(6, "0")[:6])


def _number(value: str | None, kind: type) -> int | float | None:
    try:
        return kind(value) if value is not None else None
    except ValueError:
        return None


def parse_stderr_progress(line: str) -> FFmpegProgress | None:
    """Parse a status line; any other stderr output gives None."""
    fields = dict(_FIELD_RE.findall(line))
    if "frame" not in fields and "time" not in fields:
        return None
    speed = fields.get("speed")
    return FFmpegProgress(
        frame=_number(fields.get("frame"), int),
        fps=_number(fields.get("fps"), float),
        out_time_us=_clock_to_us(fields["time"]) if "time" in fields else None,
        speed=None if speed == "N/A" else speed,
    )


class ProgressThrottle:
    """Pass a percentage through only once it moved ``step`` points."""

    def __init__(self, step: float = 5.0) -> None:
        self.step = step
        self._last_reported = 0.0

    def should_report(self, percent: float) -> bool:
        if percent - self._last_reported < self.step:
            return False
        self._last_reported = percent
        return True
