"""JSON API route modules for the Homeflix server.

- libraries.py: Library listing, creation and scans
- items.py: Item detail, posters and segmented transcode requests
- stream.py: Direct Play / live transcode playback
- transcode.py: Transcode job status and HLS files

API Versioning:
    All endpoints are available under both ``/api/`` and ``/api/v1/``.
    Both prefixes resolve to the same handler.
"""

from aiohttp import web

from homeflix.server.api.items import get_item_routes
from homeflix.server.api.libraries import get_library_routes, schedule_scan
from homeflix.server.api.stream import get_stream_routes
from homeflix.server.api.transcode import get_transcode_routes

__all__ = [
    "API_PREFIXES",
    "schedule_scan",
    "setup_api_routes",
]

API_PREFIXES = ("/api", "/api/v1")

_ROUTE_GETTERS = [
    get_library_routes,
    get_item_routes,
    get_stream_routes,
    get_transcode_routes,
]


def setup_api_routes(app: web.Application) -> None:
    """Register every API route under each prefix in API_PREFIXES.

    Args:
        app: aiohttp Application to configure.
    """
    for prefix in API_PREFIXES:
        for get_routes in _ROUTE_GETTERS:
            for method, suffix, handler in get_routes():
                app.router.add_route(method, f"{prefix}{suffix}", handler)
