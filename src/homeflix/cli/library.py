"""CLI commands for managing libraries."""

import json

import click

from homeflix.cli import get_cli_services
from homeflix.domain.enums import LibraryType


@click.group("library")
def library_group() -> None:
    """Manage media libraries.

    Examples:

        # Register a movie library
        homeflix library add Movies movie ~/Videos/Movies

        # Show registered libraries
        homeflix library list
    """


@library_group.command("add")
@click.argument("name")
@click.argument(
    "library_type",
    metavar="TYPE",
    type=click.Choice([t.value for t in LibraryType], case_sensitive=False),
)
@click.argument(
    "path",
    type=click.Path(exists=True, file_okay=False, resolve_path=True),
)
@click.pass_context
def add_command(ctx: click.Context, name: str, library_type: str, path: str) -> None:
    """Register a library rooted at PATH.

    The library is not scanned; run `homeflix scan LIBRARY_ID` afterwards.
    """
    services = get_cli_services(ctx)
    try:
        library = services.create_library(name, library_type.lower(), path)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="NAME") from e
    click.echo(f"Created library {library.id}: {library.name} ({library.type.value})")


@library_group.command("list")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON.")
@click.pass_context
def list_command(ctx: click.Context, json_output: bool) -> None:
    """List registered libraries."""
    services = get_cli_services(ctx)
    libraries = services.list_libraries()

    if json_output:
        click.echo(json.dumps([lib.to_dict() for lib in libraries], indent=2))
        return

    if not libraries:
        click.echo("No libraries. Add one with `homeflix library add`.")
        return

    for lib in libraries:
        click.echo(f"{lib.id:>4}  {lib.type.value:<6}  {lib.name}  {lib.root_path}")
