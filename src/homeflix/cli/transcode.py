"""CLI transcode command."""

from __future__ import annotations

import asyncio
import logging
import sys
from typing import TYPE_CHECKING

import click

from homeflix.cli import get_cli_services
from homeflix.cli.exit_codes import ExitCode
from homeflix.domain.enums import TranscodeStatus
from homeflix.errors import MediaNotFoundError

if TYPE_CHECKING:
    from homeflix.db.types import TranscodeJobRecord
    from homeflix.services import MediaServices

logger = logging.getLogger(__name__)

POLL_INTERVAL = 1.0


async def run_transcode(
    services: MediaServices,
    item_id: int,
    timeout: float | None = None,
    reset_stale: bool = False,
) -> TranscodeJobRecord | None:
    """Start (or reuse) a job for an item and wait until it is terminal.

    A job that another process is running is polled until it finishes.
    ``timeout`` bounds the whole wait, polling included.

    Args:
        services: Wired services.
        item_id: Media item to transcode.
        timeout: Seconds to wait before giving up; no limit when None.
        reset_stale: Fail the item's pending or processing jobs first, so
            a job abandoned by a killed process is not reused.

    Raises:
        MediaNotFoundError: If the item does not exist.
        TimeoutError: If the job is not terminal within ``timeout``.
    """
    manager = services.transcode_manager
    try:
        if reset_stale:
            await asyncio.to_thread(manager.recover_interrupted_jobs, item_id)
        job_id = await manager.start_job(item_id)
        try:
            async with asyncio.timeout(timeout):
                job = await manager.wait_for_job(job_id)
                if job is not None and not job.status.is_terminal:
                    logger.info(
                        "Job %s is %s in another process; polling",
                        job_id,
                        job.status.value,
                    )
                while job is not None and not job.status.is_terminal:
                    await asyncio.sleep(POLL_INTERVAL)
                    job = await asyncio.to_thread(manager.get_job, job_id)
        except TimeoutError:
            await manager.close(timeout=0)
            raise
        return job
    finally:
        await manager.close(timeout=services.config.server.shutdown_timeout)


@click.command("transcode")
@click.argument("item_id", type=int)
@click.option(
    "--timeout",
    type=float,
    default=None,
    help="Give up waiting after this many seconds (a job run here is cancelled).",
)
@click.option(
    "--reset-stale",
    is_flag=True,
    help="Fail a pending or processing job left behind by a killed process.",
)
@click.pass_context
def transcode_command(
    ctx: click.Context, item_id: int, timeout: float | None, reset_stale: bool
) -> None:
    """Create HLS output for a media item and wait for it to finish.

    An existing completed or running job for the item is reused. A job left
    running by a process that was killed stays reused until `homeflix serve`
    restarts or --reset-stale is given.
    """
    services = get_cli_services(ctx)
    try:
        job = asyncio.run(run_transcode(services, item_id, timeout, reset_stale))
    except MediaNotFoundError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(ExitCode.TARGET_NOT_FOUND)
    except TimeoutError:
        click.echo(f"Error: Transcode did not finish within {timeout}s", err=True)
        sys.exit(ExitCode.OPERATION_FAILED)

    if job is None:
        click.echo("Error: Job disappeared from the catalog", err=True)
        sys.exit(ExitCode.OPERATION_FAILED)

    if job.status is TranscodeStatus.COMPLETED:
        click.echo(f"Job {job.id} completed: {job.output_dir}/{job.playlist_filename}")
        return

    click.echo(f"Job {job.id} {job.status.value}: {job.error_message}", err=True)
    sys.exit(ExitCode.OPERATION_FAILED)
