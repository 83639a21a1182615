"""Configuration sections for Homeflix.

Each ``[section]`` of config.toml maps to one dataclass below; values are
checked when the dataclass is built, so a bad setting fails at load time.
"""

from dataclasses import dataclass, field
from pathlib import Path

LOG_LEVELS = frozenset({"debug", "info", "warning", "error"})
LOG_FORMATS = frozenset({"text", "json"})


def _within(name: str, value: float, low: float, high: float | None = None) -> None:
    """Raise ValueError unless ``low < value`` (and ``value <= high``)."""
    if value <= low or (high is not None and value > high):
        bounds = f"({low}, {high}]" if high is not None else f"greater than {low}"
        raise ValueError(f"{name} must be {bounds}, got {value}")


def _one_of(name: str, value: str, allowed: frozenset[str]) -> None:
    if value.lower() not in allowed:
        raise ValueError(f"{name} must be one of {sorted(allowed)}, got {value!r}")


@dataclass
class ToolPathsConfig:
    """``[tools]``: explicit ffmpeg/ffprobe executables; unset means PATH."""

    ffmpeg: Path | None = None
    ffprobe: Path | None = None


@dataclass
class ServerConfig:
    """``[server]``: where `homeflix serve` listens."""

    bind: str = "127.0.0.1"
    port: int = 8096
    shutdown_timeout: float = 30.0
    """Grace period for running transcode jobs on SIGTERM."""

    def __post_init__(self) -> None:
        _within("port", self.port, 0, 65535)
        _within("shutdown_timeout", self.shutdown_timeout, 0)


@dataclass
class LoggingConfig:
    """``[logging]``: root logger level, format and optional rotating file."""

    level: str = "info"
    file: Path | None = None
    format: str = "text"
    include_stderr: bool = False
    max_bytes: int = 10 * 1024 * 1024
    backup_count: int = 5

    def __post_init__(self) -> None:
        _one_of("level", self.level, LOG_LEVELS)
        _one_of("format", self.format, LOG_FORMATS)


@dataclass
class StreamingConfig:
    """``[streaming]``: what clients play natively and how bytes are sent."""

    target_container: str = "mp4"
    target_video_codec: str = "h264"
    chunk_size: int = 64 * 1024
    disconnect_poll_interval: float = 1.0
    """Longest gap between client-disconnect checks while piping a live encode."""

    def __post_init__(self) -> None:
        _within("chunk_size", self.chunk_size, 0)
        _within("disconnect_poll_interval", self.disconnect_poll_interval, 0, 5)


@dataclass
class TranscodeConfig:
    """``[transcode]``: segmented (HLS) output."""

    segment_seconds: int = 10
    progress_step: float = 5.0
    """Percentage points of progress between database updates."""

    def __post_init__(self) -> None:
        _within("segment_seconds", self.segment_seconds, 0)
        _within("progress_step", self.progress_step, 0, 100)


@dataclass
class ImageConfig:
    """``[images]``: poster capture."""

    poster_width: int = 600
    timeout: int = 120
    workers: int = 2

    def __post_init__(self) -> None:
        _within("poster_width", self.poster_width, 0)
        if self.poster_width % 2:
            # 4:2:0 chroma subsampling needs an even width
            raise ValueError(f"poster_width must be even, got {self.poster_width}")
        _within("workers", self.workers, 0)


@dataclass
class HomeflixConfig:
    """Every section plus the storage locations.

    ``database_path`` and ``cache_dir`` stay None until set; the loader
    resolves them under the data directory.
    """

    tools: ToolPathsConfig = field(default_factory=ToolPathsConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    streaming: StreamingConfig = field(default_factory=StreamingConfig)
    transcode: TranscodeConfig = field(default_factory=TranscodeConfig)
    images: ImageConfig = field(default_factory=ImageConfig)
    database_path: Path | None = None
    db_timeout: float = 30.0
    cache_dir: Path | None = None

    def get_tool_path(self, tool_name: str) -> Path | None:
        """Configured path for ``ffmpeg`` or ``ffprobe`` (any case), if any."""
        return getattr(self.tools, tool_name.lower(), None)
