"""Per-handler guards for the JSON API.

Handlers stack them outermost first::

    @shutdown_check_middleware
    @services_required_middleware
    async def handler(request: web.Request) -> web.Response:
        services = request["services"]
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from functools import wraps

from aiohttp import web

from homeflix.server.api.errors import ErrorCode, api_error

logger = logging.getLogger(__name__)

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]

STREAM_ALLOWED_PARAMS = frozenset({"height"})


def shutdown_check_middleware(handler: Handler) -> Handler:
    """Answer 503 SHUTTING_DOWN once the daemon has begun stopping."""

    @wraps(handler)
    async def guarded(request: web.Request) -> web.StreamResponse:
        lifecycle = request.app.get("lifecycle")
        if lifecycle and lifecycle.is_shutting_down:
            return api_error("Service is shutting down", ErrorCode.SHUTTING_DOWN)
        return await handler(request)

    return guarded


def services_required_middleware(handler: Handler) -> Handler:
    """Put the app's MediaServices on the request as ``request["services"]``."""

    @wraps(handler)
    async def with_services(request: web.Request) -> web.StreamResponse:
        request["services"] = request.app["services"]
        return await handler(request)

    return with_services


def validate_query_params(
    allowed_params: frozenset[str],
    *,
    strict: bool = False,
) -> Callable[[Handler], Handler]:
    """Check the query string against ``allowed_params``.

    Unknown names are logged and ignored, or answered with 400
    INVALID_PARAMETER when ``strict`` is set.
    """

    def decorate(handler: Handler) -> Handler:
        @wraps(handler)
        async def checked(request: web.Request) -> web.StreamResponse:
            unknown = sorted(set(request.query) - allowed_params)
            if unknown and strict:
                return api_error(
                    f"Unknown query parameters: {unknown}",
                    ErrorCode.INVALID_PARAMETER,
                )
            if unknown:
                logger.warning("Ignoring query params %s on %s", unknown, request.path)
            return await handler(request)

        return checked

    return decorate


def parse_int_id(request: web.Request, name: str) -> int | web.Response:
    """Read the positive integer path segment ``name``.

    Returns:
        The id, or a 400 INVALID_ID_FORMAT response for the handler to return.
    """
    raw = request.match_info[name]
    if raw.isascii() and raw.isdigit() and int(raw) > 0:
        return int(raw)
    return api_error(f"Invalid {name}: '{raw}'", ErrorCode.INVALID_ID_FORMAT)
