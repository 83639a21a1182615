"""Tests for configuration models, layering and loading."""

import logging
from pathlib import Path

import pytest

from homeflix.config import (
    ConfigBuilder,
    ConfigSource,
    EnvReader,
    HomeflixConfig,
    ImageConfig,
    LoggingConfig,
    ServerConfig,
    StreamingConfig,
    TomlParseError,
    TranscodeConfig,
    build_logging_config,
    clear_config_cache,
    get_config,
    get_data_dir,
    get_default_config_path,
    load_config_file,
    load_toml_file,
    resolve_cache_dir,
    resolve_database_path,
    source_from_env,
    source_from_file,
)


class TestModels:
    """Validation in the configuration dataclasses."""

    def test_defaults(self):
        config = HomeflixConfig()
        assert config.server.bind == "127.0.0.1"
        assert config.server.port == 8096
        assert config.streaming.target_container == "mp4"
        assert config.streaming.target_video_codec == "h264"
        assert config.transcode.segment_seconds == 10
        assert config.images.poster_width == 600
        assert config.get_tool_path("FFMPEG") is None

    @pytest.mark.parametrize(
        "factory",
        [
            lambda: ServerConfig(port=0),
            lambda: ServerConfig(port=70000),
            lambda: ServerConfig(shutdown_timeout=0),
            lambda: LoggingConfig(level="trace"),
            lambda: LoggingConfig(format="xml"),
            lambda: StreamingConfig(chunk_size=0),
            lambda: StreamingConfig(disconnect_poll_interval=10),
            lambda: TranscodeConfig(segment_seconds=0),
            lambda: TranscodeConfig(progress_step=0),
            lambda: ImageConfig(poster_width=601),
            lambda: ImageConfig(workers=0),
        ],
    )
    def test_invalid_values(self, factory):
        with pytest.raises(ValueError):
            factory()


class TestEnvReader:
    def test_typed_reads(self):
        reader = EnvReader(
            env={
                "PORT": "9000",
                "TIMEOUT": "2.5",
                "FLAG": "Yes",
                "PATH_VAR": "~/media",
            }
        )
        assert reader.get_int("PORT") == 9000
        assert reader.get_float("TIMEOUT") == 2.5
        assert reader.get_bool("FLAG") is True
        assert reader.get_path("PATH_VAR") == Path("~/media").expanduser()
        assert reader.get_str("MISSING", "x") == "x"

    def test_invalid_number_logs_and_defaults(self, caplog):
        reader = EnvReader(env={"PORT": "eighty"})
        with caplog.at_level(logging.WARNING):
            assert reader.get_int("PORT", 8096) == 8096
        assert "Invalid integer value for PORT" in caplog.text

    def test_path_must_exist(self, temp_dir):
        reader = EnvReader(env={"P": str(temp_dir / "missing"), "Q": ""})
        assert reader.get_path("P", must_exist=True) is None
        assert reader.get_path("Q") is None


class TestConfigBuilder:
    def test_later_sources_win(self):
        builder = ConfigBuilder()
        builder.apply(ConfigSource(server_port=9000, server_bind="0.0.0.0"), source_name="file")
        builder.apply(ConfigSource(server_port=9100), source_name="env")

        config = builder.build()

        assert config.server.port == 9100
        assert config.server.bind == "0.0.0.0"
        assert builder.origin_of("server_port") == "env"
        assert builder.origin_of("server_bind") == "file"
        assert builder.origin_of("cache_dir") == "default"

    def test_invalid_merged_value(self):
        builder = ConfigBuilder()
        builder.apply(ConfigSource(logging_level="loud"))
        with pytest.raises(ValueError):
            builder.build()

    def test_source_from_file(self):
        source = source_from_file(
            {
                "database_path": "/data/lib.db",
                "tools": {"ffmpeg": "/opt/ffmpeg"},
                "server": {"port": 8200},
                "streaming": {"chunk_size": 4096},
                "transcode": {"segment_seconds": 6},
                "images": {"workers": 4},
            }
        )
        assert source.database_path == Path("/data/lib.db")
        assert source.ffmpeg_path == Path("/opt/ffmpeg")
        assert source.server_port == 8200
        assert source.streaming_chunk_size == 4096
        assert source.transcode_segment_seconds == 6
        assert source.images_workers == 4
        assert source.ffprobe_path is None

    def test_source_from_file_warns_on_unknown_keys(self, caplog):
        with caplog.at_level(logging.WARNING):
            source = source_from_file({"sever": {"port": 1}, "server": {"prot": 2}})

        assert source.server_port is None
        assert "unknown config key: sever" in caplog.text
        assert "unknown config key: server.prot" in caplog.text

    def test_source_from_env(self):
        source = source_from_env(
            EnvReader(
                env={
                    "HOMEFLIX_SERVER_PORT": "8300",
                    "HOMEFLIX_LOG_LEVEL": "debug",
                    "HOMEFLIX_CACHE_DIR": "/var/cache/homeflix",
                }
            )
        )
        assert source.server_port == 8300
        assert source.logging_level == "debug"
        assert source.cache_dir == Path("/var/cache/homeflix")


class TestLoader:
    def test_default_locations(self, homeflix_data_dir: Path):
        assert get_data_dir() == homeflix_data_dir
        assert get_default_config_path() == homeflix_data_dir / "config.toml"

        config = get_config()
        assert resolve_database_path(config) == homeflix_data_dir / "library.db"
        assert resolve_cache_dir(config) == homeflix_data_dir / "cache"

    def test_config_path_env_override(self, monkeypatch, temp_dir):
        monkeypatch.setenv("HOMEFLIX_CONFIG_PATH", str(temp_dir / "alt.toml"))
        assert get_default_config_path() == temp_dir / "alt.toml"

    def test_precedence(self, homeflix_data_dir: Path, monkeypatch):
        (homeflix_data_dir / "config.toml").write_text(
            '[server]\nport = 9000\nbind = "0.0.0.0"\n\n[tools]\nffmpeg = "/file/ffmpeg"\n'
        )
        monkeypatch.setenv("HOMEFLIX_SERVER_PORT", "9500")

        config = get_config(ffmpeg_path=Path("/cli/ffmpeg"))

        assert config.server.port == 9500
        assert config.server.bind == "0.0.0.0"
        assert config.tools.ffmpeg == Path("/cli/ffmpeg")

    def test_injected_env_reader(self, homeflix_data_dir: Path):
        config = get_config(env_reader=EnvReader(env={"HOMEFLIX_DB_TIMEOUT": "5"}))
        assert config.db_timeout == 5.0

    def test_reload_after_cache_clear(self, homeflix_data_dir: Path):
        path = homeflix_data_dir / "config.toml"
        path.write_text("[server]\nport = 9000\n")
        assert load_config_file(path)["server"]["port"] == 9000

        path.write_text("[server]\nport = 9001\n")
        clear_config_cache()
        assert load_config_file(path)["server"]["port"] == 9001

    def test_invalid_toml(self, homeflix_data_dir: Path):
        path = homeflix_data_dir / "config.toml"
        path.write_text("[server\nport = ")

        assert get_config() == HomeflixConfig()
        clear_config_cache()
        with pytest.raises(TomlParseError):
            get_config(strict=True)

    def test_missing_file(self, temp_dir):
        assert load_toml_file(temp_dir / "absent.toml", strict=True) == {}


class TestLoggingFactory:
    def test_overrides(self):
        base = LoggingConfig(level="warning", format="json", max_bytes=1024)

        merged = build_logging_config(base, level="debug")

        assert merged.level == "debug"
        assert merged.format == "json"
        assert merged.max_bytes == 1024

    def test_invalid_override(self):
        with pytest.raises(ValueError):
            build_logging_config(LoggingConfig(), format="yaml")
