"""CLI probe command."""

import logging
import sys
from pathlib import Path

import click

from homeflix.cli import get_cli_probe
from homeflix.cli.exit_codes import ExitCode
from homeflix.introspector import MediaProbeError, format_human, format_json

logger = logging.getLogger(__name__)


@click.command("probe")
@click.argument("path", type=click.Path(path_type=Path))
@click.option("--json", "json_output", is_flag=True, help="Output as JSON.")
@click.pass_context
def probe_command(ctx: click.Context, path: Path, json_output: bool) -> None:
    """Probe a media file and print its streams and chapters.

    Nothing is written to the catalog.
    """
    if not path.exists():
        click.echo(f"Error: File not found: {path}", err=True)
        sys.exit(ExitCode.TARGET_NOT_FOUND)

    probe = get_cli_probe(ctx)
    try:
        metadata = probe.probe(path)
    except MediaProbeError as e:
        click.echo(f"Error: Could not probe {path}", err=True)
        click.echo(f"Reason: {e}", err=True)
        sys.exit(ExitCode.PARSE_ERROR)

    click.echo(format_json(metadata) if json_output else format_human(metadata))
