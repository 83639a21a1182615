"""Configuration management for Homeflix.

Configuration loading with precedence handling:
1. CLI flags (highest priority)
2. Environment variables (HOMEFLIX_*)
3. Config file (~/.homeflix/config.toml)
4. Default values (lowest priority)
"""

from homeflix.config.builder import (
    ConfigBuilder,
    ConfigSource,
    source_from_env,
    source_from_file,
)
from homeflix.config.env import EnvReader
from homeflix.config.loader import (
    clear_config_cache,
    get_config,
    get_data_dir,
    get_default_config_path,
    load_config_file,
    resolve_cache_dir,
    resolve_database_path,
)
from homeflix.config.logging_factory import (
    build_logging_config,
    configure_logging_from_cli,
)
from homeflix.config.models import (
    HomeflixConfig,
    ImageConfig,
    LoggingConfig,
    ServerConfig,
    StreamingConfig,
    ToolPathsConfig,
    TranscodeConfig,
)
from homeflix.config.toml_parser import TomlParseError, load_toml_file

__all__ = [
    # Models
    "HomeflixConfig",
    "ImageConfig",
    "LoggingConfig",
    "ServerConfig",
    "StreamingConfig",
    "ToolPathsConfig",
    "TranscodeConfig",
    # Loader
    "clear_config_cache",
    "get_config",
    "get_data_dir",
    "get_default_config_path",
    "load_config_file",
    "resolve_cache_dir",
    "resolve_database_path",
    # Layering
    "EnvReader",
    "ConfigBuilder",
    "ConfigSource",
    "source_from_env",
    "source_from_file",
    "build_logging_config",
    "configure_logging_from_cli",
    "load_toml_file",
    "TomlParseError",
]
