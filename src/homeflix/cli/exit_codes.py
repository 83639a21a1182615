"""Exit codes for all CLI commands.

Exit code ranges:
    0: Success
    1-9: General errors
    10-19: Validation errors (config, input)
    20-29: Target/file errors
    30-39: Tool/dependency errors
    40-49: Operation errors
    50-59: Probe errors
"""

from enum import IntEnum


class ExitCode(IntEnum):
    """Exit codes for Homeflix CLI commands."""

    SUCCESS = 0

    GENERAL_ERROR = 1
    INTERRUPTED = 2

    INVALID_ARGUMENTS = 10
    CONFIG_ERROR = 11

    TARGET_NOT_FOUND = 20

    TOOL_NOT_AVAILABLE = 30

    OPERATION_FAILED = 40
    DATABASE_ERROR = 42

    PARSE_ERROR = 51
