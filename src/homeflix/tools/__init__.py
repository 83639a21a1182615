"""External tool resolution and output parsing."""

from homeflix.tools.detection import (
    SUPPORTED_TOOLS,
    ToolNotFoundError,
    check_tool_availability,
    find_tool,
    get_tool_path,
    require_tool,
)
from homeflix.tools.ffmpeg_progress import (
    FFmpegProgress,
    ProgressThrottle,
    parse_stderr_progress,
)

__all__ = [
    "SUPPORTED_TOOLS",
    "FFmpegProgress",
    "ProgressThrottle",
    "ToolNotFoundError",
    "check_tool_availability",
    "find_tool",
    "get_tool_path",
    "parse_stderr_progress",
    "require_tool",
]
