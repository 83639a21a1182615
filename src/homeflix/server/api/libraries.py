"""API handlers for library endpoints.

Endpoints:
    GET  /api/libraries - List libraries
    POST /api/libraries - Create a library (starts a background scan)
    GET  /api/libraries/{library_id}/items - List a library's items
    POST /api/libraries/{library_id}/scan - Start a background scan
"""

from __future__ import annotations

import asyncio
import json
import logging

from aiohttp import web
from pydantic import ValidationError

from homeflix.db.queries import count_media_items, list_media_items
from homeflix.errors import LibraryNotFoundError
from homeflix.server.api.errors import ErrorCode, api_error
from homeflix.server.api.schemas import CreateLibraryRequest, ListItemsQuery
from homeflix.server.middleware import (
    parse_int_id,
    services_required_middleware,
    shutdown_check_middleware,
    validate_query_params,
)

logger = logging.getLogger(__name__)

ITEMS_ALLOWED_PARAMS = frozenset({"type", "sort", "order", "page", "limit"})


def _validation_details(error: ValidationError) -> list[dict[str, str]]:
    return [
        {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
        for err in error.errors()
    ]


def schedule_scan(app: web.Application, library_id: int) -> asyncio.Task:
    """Run a library scan in the background and track the task on the app."""
    services = app["services"]
    task = asyncio.create_task(
        services.scan_library(library_id), name=f"scan-library-{library_id}"
    )
    tasks: set[asyncio.Task] = app["background_tasks"]
    tasks.add(task)

    def _done(finished: asyncio.Task) -> None:
        tasks.discard(finished)
        if finished.cancelled():
            return
        exc = finished.exception()
        if exc is not None:
            logger.error(
                "Background scan of library %d failed",
                library_id,
                exc_info=exc,
            )

    task.add_done_callback(_done)
    return task


@shutdown_check_middleware
@services_required_middleware
async def api_libraries_handler(request: web.Request) -> web.Response:
    """Handle GET /api/libraries."""
    services = request["services"]
    libraries = await asyncio.to_thread(services.list_libraries)
    return web.json_response({"libraries": [lib.to_dict() for lib in libraries]})


@shutdown_check_middleware
@services_required_middleware
async def api_create_library_handler(request: web.Request) -> web.Response:
    """Handle POST /api/libraries.

    Body: ``{"name": str, "type": "movie"|"show"|"music"|"photo",
    "root_path": str, "scan": bool = true}``

    Returns:
        201 with the created library and whether a scan was started.
    """
    try:
        payload = await request.json()
    except json.JSONDecodeError:
        return api_error("Invalid JSON payload", ErrorCode.INVALID_JSON)

    try:
        body = CreateLibraryRequest.model_validate(payload)
    except ValidationError as e:
        return api_error(
            "Invalid library definition",
            ErrorCode.VALIDATION_FAILED,
            details=_validation_details(e),
        )

    services = request["services"]
    library = await asyncio.to_thread(
        services.create_library, body.name, body.type, body.root_path
    )
    if body.scan:
        schedule_scan(request.app, library.id)

    return web.json_response(
        {"library": library.to_dict(), "scan_started": body.scan}, status=201
    )


@shutdown_check_middleware
@services_required_middleware
@validate_query_params(ITEMS_ALLOWED_PARAMS)
async def api_library_items_handler(request: web.Request) -> web.Response:
    """Handle GET /api/libraries/{library_id}/items.

    Query parameters: ``type`` (a library type or ``all``), ``sort``
    (``date_added``, ``title`` or ``year``), ``order`` (``asc``/``desc``),
    ``page`` (from 1) and ``limit`` (default 50). Newest items come first
    by default.
    """
    library_id = parse_int_id(request, "library_id")
    if isinstance(library_id, web.Response):
        return library_id
    try:
        params = ListItemsQuery.model_validate(dict(request.query))
    except ValidationError as e:
        return api_error(
            "Invalid query parameters",
            ErrorCode.INVALID_PARAMETER,
            details=_validation_details(e),
        )
    services = request["services"]

    def _query() -> tuple[list, int]:
        services.get_library(library_id)
        with services.pool.read_connection() as conn:
            items = list_media_items(
                conn,
                library_id,
                media_type=params.media_type,
                sort=params.sort,
                order=params.order,
                limit=params.limit,
                offset=params.offset,
            )
            total = count_media_items(conn, library_id, media_type=params.media_type)
        return items, total

    try:
        items, total = await asyncio.to_thread(_query)
    except LibraryNotFoundError as e:
        return api_error(str(e), ErrorCode.NOT_FOUND)
    return web.json_response(
        {
            "library_id": library_id,
            "page": params.page,
            "limit": params.limit,
            "total": total,
            "items": [item.to_dict() for item in items],
        }
    )


@shutdown_check_middleware
@services_required_middleware
async def api_scan_library_handler(request: web.Request) -> web.Response:
    """Handle POST /api/libraries/{library_id}/scan.

    Returns 202 immediately; the scan runs in the background.
    """
    library_id = parse_int_id(request, "library_id")
    if isinstance(library_id, web.Response):
        return library_id
    services = request["services"]

    try:
        await asyncio.to_thread(services.get_library, library_id)
    except LibraryNotFoundError as e:
        return api_error(str(e), ErrorCode.NOT_FOUND)

    already_running = services.scanner.is_scanning(library_id)
    if not already_running:
        schedule_scan(request.app, library_id)
    return web.json_response(
        {"library_id": library_id, "already_running": already_running}, status=202
    )


def get_library_routes() -> list[tuple[str, str, object]]:
    """Return (method, path, handler) tuples, paths relative to the API prefix."""
    return [
        ("GET", "/libraries", api_libraries_handler),
        ("POST", "/libraries", api_create_library_handler),
        ("GET", "/libraries/{library_id}/items", api_library_items_handler),
        ("POST", "/libraries/{library_id}/scan", api_scan_library_handler),
    ]
