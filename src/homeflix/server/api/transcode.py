"""API handlers for segmented transcode jobs.

Endpoints:
    GET /api/transcode/{job_id} - Job status
    GET /api/transcode/{job_id}/{filename} - Playlist or segment file
"""

from __future__ import annotations

import asyncio
import re
import uuid
from pathlib import Path

from aiohttp import web

from homeflix.server.api.errors import ErrorCode, api_error
from homeflix.server.middleware import (
    services_required_middleware,
    shutdown_check_middleware,
)

HLS_MIME_TYPES: dict[str, str] = {
    ".m3u8": "application/vnd.apple.mpegurl",
    ".ts": "video/mp2t",
}

_SAFE_FILENAME = re.compile(r"^[A-Za-z0-9_-][A-Za-z0-9_.-]*$")


def is_valid_job_id(value: str) -> bool:
    """Check that a job id is a canonical UUID string."""
    try:
        return str(uuid.UUID(value)) == value.lower()
    except ValueError:
        return False


def resolve_job_file(output_dir: Path, filename: str) -> Path | None:
    """Resolve a file inside a job's output directory.

    Returns None for names that could escape the directory or that are not
    HLS playlist/segment files.
    """
    if not _SAFE_FILENAME.match(filename) or ".." in filename:
        return None
    if Path(filename).suffix.lower() not in HLS_MIME_TYPES:
        return None
    root = output_dir.resolve()
    candidate = (root / filename).resolve()
    if candidate.parent != root:
        return None
    return candidate


@shutdown_check_middleware
@services_required_middleware
async def api_transcode_job_handler(request: web.Request) -> web.Response:
    """Handle GET /api/transcode/{job_id}."""
    job_id = request.match_info["job_id"]
    if not is_valid_job_id(job_id):
        return api_error(f"Invalid job id: '{job_id}'", ErrorCode.INVALID_ID_FORMAT)
    manager = request["services"].transcode_manager

    job = await asyncio.to_thread(manager.get_job, job_id)
    if job is None:
        return api_error(f"Transcode job not found: {job_id}", ErrorCode.NOT_FOUND)
    return web.json_response(job.to_dict())


@shutdown_check_middleware
@services_required_middleware
async def api_transcode_file_handler(request: web.Request) -> web.StreamResponse:
    """Handle GET /api/transcode/{job_id}/{filename}.

    Serves files from the job's own output directory only.
    """
    job_id = request.match_info["job_id"]
    filename = request.match_info["filename"]
    if not is_valid_job_id(job_id):
        return api_error(f"Invalid job id: '{job_id}'", ErrorCode.INVALID_ID_FORMAT)
    manager = request["services"].transcode_manager

    job = await asyncio.to_thread(manager.get_job, job_id)
    if job is None:
        return api_error(f"Transcode job not found: {job_id}", ErrorCode.NOT_FOUND)

    path = resolve_job_file(Path(job.output_dir), filename)
    if path is None:
        return api_error(
            f"Invalid file name: '{filename}'", ErrorCode.INVALID_PARAMETER
        )
    if not await asyncio.to_thread(path.is_file):
        return api_error(f"File not found: {filename}", ErrorCode.NOT_FOUND)

    content_type = HLS_MIME_TYPES[path.suffix.lower()]
    headers = {"Content-Type": content_type}
    if path.suffix.lower() == ".m3u8":
        # Playlists grow while the job runs
        headers["Cache-Control"] = "no-cache"
    return web.FileResponse(path, headers=headers)


def get_transcode_routes() -> list[tuple[str, str, object]]:
    """Return (method, path, handler) tuples, paths relative to the API prefix."""
    return [
        ("GET", "/transcode/{job_id}", api_transcode_job_handler),
        ("GET", "/transcode/{job_id}/{filename}", api_transcode_file_handler),
    ]
