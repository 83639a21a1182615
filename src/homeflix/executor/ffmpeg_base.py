"""Shared ffmpeg path handling for components that spawn ffmpeg."""

import logging
from pathlib import Path

from homeflix.tools import require_tool

logger = logging.getLogger(__name__)


class FFmpegComponentBase:
    """Base class for components that invoke ffmpeg.

    The ffmpeg path is resolved lazily so that constructing a component
    never fails on hosts without ffmpeg; the first invocation does.
    """

    def __init__(self, ffmpeg_path: Path | None = None) -> None:
        """Initialize the component.

        Args:
            ffmpeg_path: Explicit ffmpeg executable. None resolves from
                configuration or PATH on first use.
        """
        self._tool_path = ffmpeg_path

    @property
    def tool_path(self) -> Path:
        """Get path to ffmpeg, verifying availability.

        Raises:
            ToolNotFoundError: If ffmpeg is not available.
        """
        if self._tool_path is None:
            self._tool_path = require_tool("ffmpeg")
            logger.debug("Resolved ffmpeg at %s", self._tool_path)
        return self._tool_path
