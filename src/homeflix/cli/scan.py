"""CLI scan command."""

import json
import sys

import click

from homeflix.cli import get_cli_services
from homeflix.cli.exit_codes import ExitCode


@click.command("scan")
@click.argument("library_id", type=int)
@click.option("--json", "json_output", is_flag=True, help="Output as JSON.")
@click.option(
    "--no-wait",
    is_flag=True,
    help="Exit without waiting for poster generation to finish.",
)
@click.pass_context
def scan_command(
    ctx: click.Context, library_id: int, json_output: bool, no_wait: bool
) -> None:
    """Scan a library and index new video files.

    Files already in the catalog are skipped. Files that cannot be probed
    are reported and do not stop the scan.
    """
    services = get_cli_services(ctx)
    result = services.scanner.scan_library(library_id)

    if not result.library_found:
        click.echo(f"Error: Library not found: {library_id}", err=True)
        sys.exit(ExitCode.TARGET_NOT_FOUND)

    if not no_wait and services.image_manager.pending_count:
        if not json_output:
            click.echo(
                f"Waiting for {services.image_manager.pending_count} poster(s)..."
            )
        services.image_manager.wait_for_pending()

    if json_output:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    click.echo(
        f"Scanned library {library_id} in {result.elapsed_seconds:.1f}s: "
        f"{result.files_found} found, {result.files_new} new, "
        f"{result.files_skipped} skipped, {result.files_errored} errors"
    )
    for path, message in result.errors:
        click.echo(f"  error: {path}: {message}", err=True)
    for directory in result.unreadable_directories:
        click.echo(f"  unreadable directory: {directory}", err=True)
