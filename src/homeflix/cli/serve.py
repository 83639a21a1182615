"""`homeflix serve`: run the HTTP server in the foreground.

Meant to run under systemd: logs go to stderr or the configured file and
SIGTERM triggers a graceful stop.
"""

from __future__ import annotations

import asyncio
import errno
import logging
import os
import sys
from typing import TYPE_CHECKING

import click

from homeflix.cli import get_cli_services
from homeflix.cli.exit_codes import ExitCode
from homeflix.tools import check_tool_availability

if TYPE_CHECKING:
    from homeflix.services import MediaServices

logger = logging.getLogger(__name__)

LOOPBACK_ADDRESSES = frozenset({"127.0.0.1", "localhost", "::1"})

# Lets responses already in flight finish after the signal arrives
DRAIN_DELAY = 0.5

_BIND_ERRORS = {
    errno.EADDRINUSE: "Port {port} is already in use",
    errno.EADDRNOTAVAIL: "Cannot bind to address {bind}",
    errno.EACCES: "Permission denied binding {bind}:{port}",
}


async def run_server(
    services: MediaServices,
    bind: str,
    port: int,
    shutdown_timeout: float,
) -> int:
    """Serve until SIGTERM or SIGINT, then shut down gracefully.

    Returns:
        ExitCode.SUCCESS after a clean stop, ExitCode.GENERAL_ERROR when the
        socket cannot be bound.
    """
    from aiohttp import web

    from homeflix.server.app import create_app
    from homeflix.server.lifecycle import DaemonLifecycle
    from homeflix.server.signals import remove_signal_handlers, setup_signal_handlers

    lifecycle = DaemonLifecycle(shutdown_timeout=shutdown_timeout)
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    setup_signal_handlers(loop, lifecycle, stop)

    runner = web.AppRunner(create_app(services, lifecycle, owns_pool=False))
    await runner.setup()
    exit_code = ExitCode.SUCCESS
    try:
        await web.TCPSite(runner, bind, port).start()
        logger.info(
            "Homeflix listening on http://%s:%d (pid %d)", bind, port, os.getpid()
        )
        await stop.wait()
        await asyncio.sleep(DRAIN_DELAY)
    except OSError as e:
        template = _BIND_ERRORS.get(e.errno, "Server error: {error}")
        logger.error(template.format(bind=bind, port=port, error=e))
        exit_code = ExitCode.GENERAL_ERROR
    finally:
        remove_signal_handlers(loop)
        await runner.cleanup()
        logger.info("Homeflix stopped")
    return exit_code


def _warn_about_environment(services: MediaServices, bind: str, port: int) -> None:
    if bind not in LOOPBACK_ADDRESSES:
        logger.warning(
            "Binding to %s exposes Homeflix to the network; the API has no "
            "authentication",
            bind,
        )
    if port < 1024:
        logger.warning("Port %d normally needs root", port)
    missing = sorted(
        name
        for name, found in check_tool_availability(services.config).items()
        if not found
    )
    if missing:
        logger.warning(
            "Not found: %s. Probing, posters and transcoding will fail until "
            "installed",
            ", ".join(missing),
        )


@click.command("serve")
@click.option("--bind", help="Address to listen on [config: server.bind, 127.0.0.1].")
@click.option(
    "--port",
    "-p",
    type=click.IntRange(1, 65535),
    help="Port to listen on [config: server.port, 8096].",
)
@click.pass_context
def serve_command(ctx: click.Context, bind: str | None, port: int | None) -> None:
    """Run the HTTP server.

    Serves the JSON API, byte-range and live streams and HLS output until
    SIGTERM (systemd) or SIGINT (Ctrl+C). Running transcode jobs then get
    server.shutdown_timeout seconds to finish.

    \b
    Examples:
        homeflix serve
        homeflix serve --port 9000
        homeflix serve --bind 0.0.0.0
    """
    services = get_cli_services(ctx)
    server = services.config.server
    bind = server.bind if bind is None else bind
    port = server.port if port is None else port

    _warn_about_environment(services, bind, port)
    logger.debug("shutdown_timeout=%.1fs", server.shutdown_timeout)
    try:
        exit_code = asyncio.run(
            run_server(services, bind, port, server.shutdown_timeout)
        )
    except KeyboardInterrupt:
        # Ctrl+C before the loop installed its handlers
        sys.exit(ExitCode.INTERRUPTED)
    if exit_code != ExitCode.SUCCESS:
        sys.exit(exit_code)
