"""aiohttp application behind `homeflix serve`.

``/health`` and ``/health/stream`` sit at the root; the JSON API is
mounted under ``/api``. Startup fails jobs a previous process left
running, cleanup stops background work before the pool closes.
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

from aiohttp import web

from homeflix import __version__
from homeflix.db.queries import count_jobs_by_status
from homeflix.domain.enums import TranscodeStatus
from homeflix.executor import HLS_PLAYLIST_NAME
from homeflix.server.api import setup_api_routes
from homeflix.server.api.transcode import HLS_MIME_TYPES

if TYPE_CHECKING:
    from homeflix.db.connection import DaemonConnectionPool
    from homeflix.server.lifecycle import DaemonLifecycle
    from homeflix.services import MediaServices

logger = logging.getLogger(__name__)

# A locked database must not hang the health endpoint
DB_PROBE_TIMEOUT = 5.0


@dataclass
class HealthStatus:
    """Body of ``GET /health``.

    ``status`` is "healthy", "degraded" (database unreachable) or
    "unhealthy" (shutting down); anything but healthy answers 503.
    """

    status: str
    database: str
    uptime_seconds: float
    version: str
    shutting_down: bool = False
    live_streams: int = 0
    transcode_jobs_running: int = 0
    transcode_jobs_pending: int = 0

    @property
    def http_status(self) -> int:
        return 200 if self.status == "healthy" else 503

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class StreamHealth:
    """Body of ``GET /health/stream``.

    ``playable`` is set once any job directory holds a playlist and at
    least one segment; ``sample_job`` names the first such job.
    """

    hls_root: str
    jobs_on_disk: int = 0
    playable: bool = False
    sample_job: str | None = None
    mime_types: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _pending_job_count(pool: DaemonConnectionPool) -> int | None:
    """Pending transcode jobs, or None when the database cannot be read."""
    try:
        with pool.read_connection() as conn:
            counts = count_jobs_by_status(conn)
    except sqlite3.Error as e:
        logger.warning("Health check could not read the database: %s", e)
        return None
    return counts.get(TranscodeStatus.PENDING.value, 0)


async def probe_database(pool: DaemonConnectionPool) -> int | None:
    """Run the database check off the event loop, bounded by DB_PROBE_TIMEOUT."""
    if pool.is_closed:
        return None
    try:
        async with asyncio.timeout(DB_PROBE_TIMEOUT):
            return await asyncio.to_thread(_pending_job_count, pool)
    except TimeoutError:
        logger.warning(
            "Health check gave up on the database after %.0fs", DB_PROBE_TIMEOUT
        )
        return None


def inspect_hls_cache(hls_root: Path) -> StreamHealth:
    """Look for a servable HLS output under the cache (blocking)."""
    health = StreamHealth(hls_root=str(hls_root), mime_types=dict(HLS_MIME_TYPES))
    if not hls_root.is_dir():
        return health
    for job_dir in sorted(p for p in hls_root.iterdir() if p.is_dir()):
        health.jobs_on_disk += 1
        if health.playable:
            continue
        if (job_dir / HLS_PLAYLIST_NAME).is_file() and any(job_dir.glob("*.ts")):
            health.playable = True
            health.sample_job = job_dir.name
    return health


async def health_handler(request: web.Request) -> web.Response:
    """``GET /health``: database reachability, uptime and job counts."""
    services: MediaServices = request.app["services"]
    lifecycle: DaemonLifecycle | None = request.app["lifecycle"]

    pending = await probe_database(services.pool)
    if lifecycle is not None and lifecycle.is_shutting_down:
        status = "unhealthy"
    elif pending is None:
        status = "degraded"
    else:
        status = "healthy"

    health = HealthStatus(
        status=status,
        database="disconnected" if pending is None else "connected",
        uptime_seconds=round(lifecycle.uptime_seconds, 1) if lifecycle else 0.0,
        version=__version__,
        shutting_down=status == "unhealthy",
        live_streams=len(services.stream_controller.active_processes),
        transcode_jobs_running=services.transcode_manager.active_job_count,
        transcode_jobs_pending=pending or 0,
    )
    return web.json_response(health.to_dict(), status=health.http_status)


async def stream_health_handler(request: web.Request) -> web.Response:
    """``GET /health/stream``: always 200, ``playable`` tells the story."""
    services: MediaServices = request.app["services"]
    hls_root = services.transcode_manager.hls_root
    health = await asyncio.to_thread(inspect_hls_cache, hls_root)
    return web.json_response(health.to_dict())


async def _recover_jobs(app: web.Application) -> None:
    services: MediaServices = app["services"]
    await asyncio.to_thread(services.transcode_manager.recover_interrupted_jobs)


async def _stop_background_work(app: web.Application) -> None:
    """Let scans finish, then give jobs what is left of the shutdown window."""
    services: MediaServices = app["services"]
    lifecycle: DaemonLifecycle | None = app["lifecycle"]
    timeout = None
    if lifecycle is not None:
        timeout = lifecycle.remaining_shutdown_time()
        if timeout is None:
            timeout = lifecycle.shutdown_timeout

    scans = list(app["background_tasks"])
    if scans:
        logger.info("Waiting for %d library scan(s) to finish", len(scans))
        await asyncio.gather(*scans, return_exceptions=True)
    await services.close(timeout=timeout)


async def _close_pool(app: web.Application) -> None:
    if app["owns_pool"]:
        app["services"].pool.close()


def create_app(
    services: MediaServices,
    lifecycle: DaemonLifecycle | None = None,
    *,
    owns_pool: bool = True,
) -> web.Application:
    """Build the application around already wired services.

    Args:
        services: Scanner, managers and pool shared by every handler.
        lifecycle: When given, API handlers answer 503 once it reports
            shutdown and cleanup honours its deadline.
        owns_pool: Close ``services.pool`` during cleanup. `homeflix serve`
            passes False because the CLI closes the pool itself.
    """
    app = web.Application()
    app["services"] = services
    app["lifecycle"] = lifecycle
    app["owns_pool"] = owns_pool
    app["background_tasks"] = set()

    app.router.add_get("/health", health_handler)
    app.router.add_get("/health/stream", stream_health_handler)
    setup_api_routes(app)

    app.on_startup.append(_recover_jobs)
    app.on_cleanup.extend((_stop_background_work, _close_pool))
    return app
