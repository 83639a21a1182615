"""API handler for media playback.

Endpoints:
    GET /api/stream/{item_id}?height=N - Direct Play or live transcode
"""

from __future__ import annotations

import logging

from aiohttp import web

from homeflix.errors import MediaNotFoundError
from homeflix.server.api.errors import ErrorCode, api_error
from homeflix.server.middleware import (
    STREAM_ALLOWED_PARAMS,
    parse_int_id,
    services_required_middleware,
    shutdown_check_middleware,
    validate_query_params,
)
from homeflix.streaming import RangeNotSatisfiableError
from homeflix.tools import ToolNotFoundError

logger = logging.getLogger(__name__)

MAX_HEIGHT = 4320


def _parse_height(raw: str | None) -> int | None:
    """Parse the height query parameter.

    Raises:
        ValueError: If the value is not an integer in [1, MAX_HEIGHT].
    """
    if raw is None or raw == "":
        return None
    height = int(raw)
    if not 1 <= height <= MAX_HEIGHT:
        raise ValueError(f"height must be between 1 and {MAX_HEIGHT}")
    return height


@shutdown_check_middleware
@services_required_middleware
@validate_query_params(STREAM_ALLOWED_PARAMS)
async def api_stream_handler(request: web.Request) -> web.StreamResponse:
    """Handle GET /api/stream/{item_id}.

    Serves the original file (with Range support) when the client can play
    it, otherwise a live fragmented-MP4 transcode. ``height`` forces the
    transcode path.
    """
    item_id = parse_int_id(request, "item_id")
    if isinstance(item_id, web.Response):
        return item_id
    try:
        height = _parse_height(request.query.get("height"))
    except ValueError:
        return api_error(
            f"Invalid height: '{request.query.get('height')}'",
            ErrorCode.INVALID_PARAMETER,
        )

    controller = request["services"].stream_controller
    try:
        return await controller.stream_media(request, item_id, height)
    except MediaNotFoundError as e:
        return api_error(str(e), ErrorCode.NOT_FOUND)
    except RangeNotSatisfiableError as e:
        return api_error(
            str(e),
            ErrorCode.RANGE_NOT_SATISFIABLE,
            headers={"Content-Range": f"bytes */{e.file_size}"},
        )
    except ToolNotFoundError as e:
        logger.error("Cannot transcode item %d: %s", item_id, e)
        return api_error(str(e), ErrorCode.TOOL_UNAVAILABLE)


def get_stream_routes() -> list[tuple[str, str, object]]:
    """Return (method, path, handler) tuples, paths relative to the API prefix."""
    return [
        ("GET", "/stream/{item_id}", api_stream_handler),
        ("HEAD", "/stream/{item_id}", api_stream_handler),
    ]
