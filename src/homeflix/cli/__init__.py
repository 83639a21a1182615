"""CLI module for Homeflix."""

from __future__ import annotations

import logging
import sqlite3
import sys
from pathlib import Path
from typing import TYPE_CHECKING

import click

from homeflix import __version__
from homeflix.cli.exit_codes import ExitCode

if TYPE_CHECKING:
    from homeflix.config.models import HomeflixConfig
    from homeflix.introspector import MetadataProbe
    from homeflix.services import MediaServices

logger = logging.getLogger(__name__)

_logging_configured: bool = False


def _configure_logging(
    log_level: str | None,
    log_file: Path | None,
    log_json: bool,
) -> None:
    """Configure logging from CLI options (once per process)."""
    global _logging_configured
    if _logging_configured:
        return

    from homeflix.config.logging_factory import configure_logging_from_cli

    configure_logging_from_cli(
        level=log_level,
        file=log_file,
        format="json" if log_json else None,
    )
    _logging_configured = True


def get_cli_config(ctx: click.Context) -> HomeflixConfig:
    """Return the merged configuration, loading it on first use.

    Exits with CONFIG_ERROR if the configuration is invalid.
    """
    config = ctx.obj.get("config")
    if config is not None:
        return config

    from homeflix.config import TomlParseError, get_config

    try:
        config = get_config(strict=True)
    except (TomlParseError, ValueError) as e:
        click.echo(f"Error: Invalid configuration: {e}", err=True)
        sys.exit(ExitCode.CONFIG_ERROR)
    ctx.obj["config"] = config
    return config


def get_cli_services(ctx: click.Context) -> MediaServices:
    """Return the MediaServices, building them on first use.

    Services built here own their connection pool and close it when the
    command finishes. Services passed in by tests are used as is.
    """
    services = ctx.obj.get("services")
    if services is not None:
        return services

    from homeflix.services import MediaServices

    config = get_cli_config(ctx)
    try:
        services = MediaServices.build(config)
    except (sqlite3.Error, OSError) as e:
        click.echo(f"Error: Cannot open database: {e}", err=True)
        sys.exit(ExitCode.DATABASE_ERROR)

    root = ctx.find_root()
    root.call_on_close(services.pool.close)
    ctx.obj["services"] = services
    return services


def get_cli_probe(ctx: click.Context) -> MetadataProbe:
    """Return a metadata probe without opening the database."""
    services = ctx.obj.get("services")
    if services is not None:
        return services.probe

    from homeflix.introspector import FFprobeProbe

    return FFprobeProbe(get_cli_config(ctx).tools.ffprobe)


@click.group()
@click.version_option(__version__, package_name="homeflix")
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error"], case_sensitive=False),
    default=None,
    help="Override log level (default: info).",
)
@click.option(
    "--log-file",
    type=click.Path(path_type=Path),
    default=None,
    help="Override log file path.",
)
@click.option(
    "--log-json",
    is_flag=True,
    default=False,
    help="Use JSON log format.",
)
@click.pass_context
def main(
    ctx: click.Context,
    log_level: str | None,
    log_file: Path | None,
    log_json: bool,
) -> None:
    """Homeflix - Index, stream and transcode a home media library."""
    ctx.ensure_object(dict)
    _configure_logging(log_level, log_file, log_json)


# Defer import to avoid circular dependency
def _register_commands():
    from homeflix.cli.library import library_group
    from homeflix.cli.probe import probe_command
    from homeflix.cli.scan import scan_command
    from homeflix.cli.serve import serve_command
    from homeflix.cli.transcode import transcode_command

    main.add_command(library_group)
    main.add_command(scan_command)
    main.add_command(probe_command)
    main.add_command(transcode_command)
    main.add_command(serve_command)


_register_commands()
