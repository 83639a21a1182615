"""JSON error bodies for the HTTP API.

Every failed request answers ``{"error": <message>, "code": <ErrorCode>}``,
with an optional ``details`` key. Each code has a usual HTTP status that
applies unless the caller passes another one.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from aiohttp import web


class ErrorCode(StrEnum):
    INVALID_JSON = "INVALID_JSON"
    INVALID_PARAMETER = "INVALID_PARAMETER"
    INVALID_ID_FORMAT = "INVALID_ID_FORMAT"
    VALIDATION_FAILED = "VALIDATION_FAILED"
    NOT_FOUND = "NOT_FOUND"
    RANGE_NOT_SATISFIABLE = "RANGE_NOT_SATISFIABLE"
    TOOL_UNAVAILABLE = "TOOL_UNAVAILABLE"
    SHUTTING_DOWN = "SHUTTING_DOWN"

    @property
    def status(self) -> int:
        return _STATUS.get(self, 400)


_STATUS = {
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.RANGE_NOT_SATISFIABLE: 416,
    ErrorCode.TOOL_UNAVAILABLE: 503,
    ErrorCode.SHUTTING_DOWN: 503,
}


def api_error(
    message: str,
    code: ErrorCode,
    *,
    status: int | None = None,
    details: Any = None,
    headers: dict[str, str] | None = None,
) -> web.Response:
    """Build the JSON error response for ``code``.

    Example:
        return api_error(f"Library not found: {library_id}", ErrorCode.NOT_FOUND)
    """
    body: dict[str, Any] = {"error": message, "code": str(code)}
    if details is not None:
        body["details"] = details
    return web.json_response(
        body, status=status if status is not None else code.status, headers=headers
    )
