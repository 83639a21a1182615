"""External tool resolution.

Tools are resolved from an explicit path, then the configured path
(HOMEFLIX_FFMPEG_PATH / [tools] in config.toml), then the system PATH.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from homeflix.config.models import HomeflixConfig

logger = logging.getLogger(__name__)

SUPPORTED_TOOLS = ("ffmpeg", "ffprobe")


class ToolNotFoundError(RuntimeError):
    """Raised when a required external tool cannot be located."""

    def __init__(self, tool_name: str) -> None:
        self.tool_name = tool_name
        super().__init__(
            f"Required tool not available: {tool_name}. Install ffmpeg or set "
            f"HOMEFLIX_{tool_name.upper()}_PATH / [tools] {tool_name} in "
            "~/.homeflix/config.toml"
        )


def find_tool(name: str, configured_path: Path | None = None) -> Path | None:
    """Find a tool executable.

    Args:
        name: Tool name (e.g., "ffmpeg").
        configured_path: Optional configured path override.

    Returns:
        Path to tool executable, or None if not found.
    """
    if configured_path:
        if configured_path.is_file():
            return configured_path
        logger.warning(
            "Configured path for %s is not a file: %s", name, configured_path
        )

    which_result = shutil.which(name)
    if which_result:
        return Path(which_result)

    return None


def get_tool_path(name: str, configured_path: Path | None = None) -> Path | None:
    """Get path to a tool, or None if not available.

    When no path is passed, the path from the loaded configuration is used.
    """
    if configured_path is None:
        from homeflix.config import get_config

        configured_path = get_config().get_tool_path(name)
    return find_tool(name, configured_path)


def require_tool(name: str, configured_path: Path | None = None) -> Path:
    """Get path to a required tool.

    Raises:
        ToolNotFoundError: If the tool is not available.
    """
    path = get_tool_path(name, configured_path)
    if path is None:
        raise ToolNotFoundError(name)
    return path


def check_tool_availability(config: HomeflixConfig | None = None) -> dict[str, bool]:
    """Map each supported tool name to whether it can be located.

    Args:
        config: Configuration whose tool paths are checked. None uses the
            loaded configuration.
    """
    return {
        name: get_tool_path(name, config.get_tool_path(name) if config else None)
        is not None
        for name in SUPPORTED_TOOLS
    }
