"""Locate, read and merge Homeflix configuration.

Later layers win: built-in defaults, then ``config.toml``, then
``HOMEFLIX_*`` environment variables, then command-line options.

Everything lives under the data directory (``~/.homeflix`` unless
HOMEFLIX_DATA_DIR is set): ``config.toml`` (or HOMEFLIX_CONFIG_PATH),
``library.db`` and the ``cache/`` tree of posters and HLS output.
"""

from __future__ import annotations

import logging
import os
import threading
from pathlib import Path
from typing import Any, NamedTuple

from homeflix.config.builder import (
    ConfigBuilder,
    ConfigSource,
    source_from_env,
    source_from_file,
)
from homeflix.config.env import EnvReader
from homeflix.config.models import HomeflixConfig
from homeflix.config.toml_parser import load_toml_file

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = Path.home() / ".homeflix"
CONFIG_FILE_NAME = "config.toml"
DATABASE_FILE_NAME = "library.db"
CACHE_DIR_NAME = "cache"


class _ParsedFile(NamedTuple):
    mtime: float
    data: dict[str, Any]


_parsed_files: dict[Path, _ParsedFile] = {}
_parsed_files_lock = threading.Lock()


def _env_path(var: str) -> Path | None:
    value = os.environ.get(var)
    return Path(value).expanduser() if value else None


def get_data_dir() -> Path:
    """Directory holding config.toml, library.db and cache/."""
    return _env_path("HOMEFLIX_DATA_DIR") or DEFAULT_CONFIG_DIR


def get_default_config_path() -> Path:
    return _env_path("HOMEFLIX_CONFIG_PATH") or get_data_dir() / CONFIG_FILE_NAME


def resolve_database_path(config: HomeflixConfig) -> Path:
    return config.database_path or get_data_dir() / DATABASE_FILE_NAME


def resolve_cache_dir(config: HomeflixConfig) -> Path:
    return config.cache_dir or get_data_dir() / CACHE_DIR_NAME


def load_config_file(path: Path | None = None, *, strict: bool = False) -> dict:
    """Parse a config file, reusing the last result while its mtime holds.

    A missing file parses as an empty dict.

    Raises:
        TomlParseError: When ``strict`` is set and the file is unreadable or
            not valid TOML.
    """
    path = path or get_default_config_path()
    try:
        mtime = path.stat().st_mtime
    except FileNotFoundError:
        mtime = 0.0

    with _parsed_files_lock:
        cached = _parsed_files.get(path)
        if cached is None or cached.mtime != mtime:
            cached = _ParsedFile(mtime, load_toml_file(path, strict=strict))
            _parsed_files[path] = cached
        return cached.data


def clear_config_cache() -> None:
    """Forget every parsed config file."""
    with _parsed_files_lock:
        _parsed_files.clear()


def get_config(
    config_path: Path | None = None,
    ffmpeg_path: Path | None = None,
    ffprobe_path: Path | None = None,
    database_path: Path | None = None,
    env_reader: EnvReader | None = None,
    *,
    strict: bool = False,
) -> HomeflixConfig:
    """Merge every configuration layer into one HomeflixConfig.

    Args:
        config_path: Config file to read instead of the default location.
        ffmpeg_path: Command-line ffmpeg override.
        ffprobe_path: Command-line ffprobe override.
        database_path: Command-line database override.
        env_reader: Environment to read; ``os.environ`` when None.
        strict: Fail on an unparseable config file instead of ignoring it.

    Raises:
        TomlParseError: When ``strict`` is set and the file cannot be parsed.
        ValueError: If the merged settings fail validation.
    """
    builder = ConfigBuilder()
    layers = (
        ("file", source_from_file(load_config_file(config_path, strict=strict))),
        ("env", source_from_env(env_reader or EnvReader())),
        (
            "cli",
            ConfigSource(
                ffmpeg_path=ffmpeg_path,
                ffprobe_path=ffprobe_path,
                database_path=database_path,
            ),
        ),
    )
    for name, source in layers:
        builder.apply(source, source_name=name)
    return builder.build()
