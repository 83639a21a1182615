"""API handlers for media item endpoints.

Endpoints:
    GET  /api/items/{item_id} - Item with streams and chapters
    GET  /api/items/{item_id}/poster - Poster image
    POST /api/items/{item_id}/transcode - Start (or reuse) a segmented transcode
"""

from __future__ import annotations

import asyncio
from pathlib import Path

from aiohttp import web

from homeflix.db.queries import get_image, get_media_item, get_streams_for_item
from homeflix.domain.enums import ImageKind
from homeflix.errors import MediaNotFoundError
from homeflix.server.api.errors import ErrorCode, api_error
from homeflix.server.middleware import (
    parse_int_id,
    services_required_middleware,
    shutdown_check_middleware,
)


@shutdown_check_middleware
@services_required_middleware
async def api_item_detail_handler(request: web.Request) -> web.Response:
    """Handle GET /api/items/{item_id}."""
    item_id = parse_int_id(request, "item_id")
    if isinstance(item_id, web.Response):
        return item_id
    pool = request["services"].pool

    def _query() -> dict | None:
        with pool.read_connection() as conn:
            item = get_media_item(conn, item_id)
            if item is None:
                return None
            streams = get_streams_for_item(conn, item_id)
            poster = get_image(conn, item_id, ImageKind.POSTER)
        data = item.to_dict()
        data["streams"] = [s.to_dict() for s in streams]
        data["has_poster"] = poster is not None
        return data

    data = await asyncio.to_thread(_query)
    if data is None:
        return api_error(f"Media item not found: {item_id}", ErrorCode.NOT_FOUND)
    return web.json_response(data)


@shutdown_check_middleware
@services_required_middleware
async def api_item_poster_handler(request: web.Request) -> web.StreamResponse:
    """Handle GET /api/items/{item_id}/poster."""
    item_id = parse_int_id(request, "item_id")
    if isinstance(item_id, web.Response):
        return item_id
    image_manager = request["services"].image_manager

    poster = await asyncio.to_thread(image_manager.get_poster, item_id)
    if poster is None:
        return api_error(f"No poster for item {item_id}", ErrorCode.NOT_FOUND)
    path = Path(poster.path)
    if not await asyncio.to_thread(path.is_file):
        return api_error(
            f"Poster file missing for item {item_id}", ErrorCode.NOT_FOUND
        )
    return web.FileResponse(path, headers={"Content-Type": "image/jpeg"})


@shutdown_check_middleware
@services_required_middleware
async def api_start_transcode_handler(request: web.Request) -> web.Response:
    """Handle POST /api/items/{item_id}/transcode.

    Returns:
        202 with ``{"job_id": ...}``. An existing pending, processing or
        completed job for the item is returned instead of a new one.
    """
    item_id = parse_int_id(request, "item_id")
    if isinstance(item_id, web.Response):
        return item_id
    manager = request["services"].transcode_manager

    try:
        job_id = await manager.start_job(item_id)
    except MediaNotFoundError as e:
        return api_error(str(e), ErrorCode.NOT_FOUND)
    return web.json_response({"job_id": job_id}, status=202)


def get_item_routes() -> list[tuple[str, str, object]]:
    """Return (method, path, handler) tuples, paths relative to the API prefix."""
    return [
        ("GET", "/items/{item_id}", api_item_detail_handler),
        ("GET", "/items/{item_id}/poster", api_item_poster_handler),
        ("POST", "/items/{item_id}/transcode", api_start_transcode_handler),
    ]
