"""Layered assembly of HomeflixConfig.

Every configuration layer (file, environment, command line) is first
flattened into a ConfigSource whose keys are ``<section>_<field>``, e.g.
``server_port`` for ``[server] port``. ConfigBuilder stacks the sources
and builds the section dataclasses from whatever was set, so unset keys
fall back to the dataclass defaults.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

from homeflix.config.env import EnvReader
from homeflix.config.models import (
    HomeflixConfig,
    ImageConfig,
    LoggingConfig,
    ServerConfig,
    StreamingConfig,
    ToolPathsConfig,
    TranscodeConfig,
)

logger = logging.getLogger(__name__)

# config.toml table name -> section dataclass
SECTIONS: dict[str, type] = {
    "server": ServerConfig,
    "logging": LoggingConfig,
    "streaming": StreamingConfig,
    "transcode": TranscodeConfig,
    "images": ImageConfig,
}
TOP_LEVEL_KEYS = ("database_path", "db_timeout", "cache_dir")
PATH_KEYS = frozenset(
    {"ffmpeg_path", "ffprobe_path", "database_path", "cache_dir", "logging_file"}
)

# ConfigSource key -> (variable, EnvReader getter)
ENV_VARIABLES = {
    "ffmpeg_path": ("HOMEFLIX_FFMPEG_PATH", "get_path"),
    "ffprobe_path": ("HOMEFLIX_FFPROBE_PATH", "get_path"),
    "database_path": ("HOMEFLIX_DATABASE_PATH", "get_path"),
    "db_timeout": ("HOMEFLIX_DB_TIMEOUT", "get_float"),
    "cache_dir": ("HOMEFLIX_CACHE_DIR", "get_path"),
    "server_bind": ("HOMEFLIX_SERVER_BIND", "get_str"),
    "server_port": ("HOMEFLIX_SERVER_PORT", "get_int"),
    "logging_level": ("HOMEFLIX_LOG_LEVEL", "get_str"),
    "logging_file": ("HOMEFLIX_LOG_FILE", "get_path"),
    "logging_format": ("HOMEFLIX_LOG_FORMAT", "get_str"),
}


@dataclass
class ConfigSource:
    """Values one layer sets; None leaves the lower layers' value in place."""

    ffmpeg_path: Path | None = None
    ffprobe_path: Path | None = None

    database_path: Path | None = None
    db_timeout: float | None = None
    cache_dir: Path | None = None

    server_bind: str | None = None
    server_port: int | None = None
    server_shutdown_timeout: float | None = None

    logging_level: str | None = None
    logging_file: Path | None = None
    logging_format: str | None = None
    logging_include_stderr: bool | None = None
    logging_max_bytes: int | None = None
    logging_backup_count: int | None = None

    streaming_target_container: str | None = None
    streaming_target_video_codec: str | None = None
    streaming_chunk_size: int | None = None
    streaming_disconnect_poll_interval: float | None = None

    transcode_segment_seconds: int | None = None
    transcode_progress_step: float | None = None

    images_poster_width: int | None = None
    images_timeout: int | None = None
    images_workers: int | None = None


class ConfigBuilder:
    """Stack ConfigSources, later ones winning, and build the result.

    Example:
        builder = ConfigBuilder()
        builder.apply(source_from_file(parsed_toml), source_name="file")
        builder.apply(source_from_env(EnvReader()), source_name="env")
        config = builder.build()
    """

    def __init__(self) -> None:
        self._values: dict[str, Any] = {}
        self._origins: dict[str, str] = {}

    def apply(self, source: ConfigSource, *, source_name: str = "unknown") -> None:
        """Take every non-None value from ``source``, labelled ``source_name``."""
        for key, value in vars(source).items():
            if value is None:
                continue
            self._values[key] = value
            self._origins[key] = source_name

    def origin_of(self, key: str) -> str:
        """Name of the layer that set ``key``, or "default"."""
        return self._origins.get(key, "default")

    def _section(self, name: str, cls: type) -> Any:
        prefix = f"{name}_"
        return cls(
            **{
                f.name: self._values[prefix + f.name]
                for f in fields(cls)
                if prefix + f.name in self._values
            }
        )

    def build(self) -> HomeflixConfig:
        """Build the merged configuration.

        Raises:
            ValueError: If a merged value fails section validation.
        """
        sections = {name: self._section(name, cls) for name, cls in SECTIONS.items()}
        storage = {
            key: self._values[key] for key in TOP_LEVEL_KEYS if key in self._values
        }
        tools = ToolPathsConfig(
            ffmpeg=self._values.get("ffmpeg_path"),
            ffprobe=self._values.get("ffprobe_path"),
        )
        return HomeflixConfig(tools=tools, **sections, **storage)


def _as_path(value: Any) -> Path | None:
    return Path(value).expanduser() if value else None


def source_from_file(file_config: dict[str, Any]) -> ConfigSource:
    """Flatten a parsed config.toml; unknown tables and keys are logged."""
    known = set(TOP_LEVEL_KEYS) | set(SECTIONS) | {"tools"}
    for key in sorted(set(file_config) - known):
        logger.warning("Ignoring unknown config key: %s", key)

    values: dict[str, Any] = {key: file_config.get(key) for key in TOP_LEVEL_KEYS}
    tools = file_config.get("tools", {})
    values["ffmpeg_path"] = tools.get("ffmpeg")
    values["ffprobe_path"] = tools.get("ffprobe")

    for name, cls in SECTIONS.items():
        table = file_config.get(name, {})
        names = {f.name for f in fields(cls)}
        for key in sorted(set(table) - names):
            logger.warning("Ignoring unknown config key: %s.%s", name, key)
        for key in names:
            values[f"{name}_{key}"] = table.get(key)

    for key in PATH_KEYS:
        values[key] = _as_path(values[key])
    return ConfigSource(**values)


def source_from_env(reader: EnvReader) -> ConfigSource:
    """Read the HOMEFLIX_* variables listed in ENV_VARIABLES."""
    return ConfigSource(
        **{
            key: getattr(reader, getter)(variable)
            for key, (variable, getter) in ENV_VARIABLES.items()
        }
    )
