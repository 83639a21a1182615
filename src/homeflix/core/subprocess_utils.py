"""Blocking invocation of ffprobe and one-shot ffmpeg commands.

Encoders that run for minutes are spawned through asyncio instead, see
homeflix.jobs.transcode and homeflix.streaming.controller.
"""

from __future__ import annotations

import logging
import shlex
import subprocess  # nosec B404 - running ffmpeg/ffprobe is the point
import time
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


def run_command(
    args: list[str | Path], timeout: float = 120, **kwargs: Any
) -> tuple[str, str, int]:
    """Run ``args`` to completion and capture its output as text.

    Undecodable bytes in the output become U+FFFD. Extra keyword
    arguments go to subprocess.run.

    Returns:
        ``(stdout, stderr, returncode)``.

    Raises:
        subprocess.TimeoutExpired: After ``timeout`` seconds; the child has
            already been killed.
        OSError: If the executable cannot be started.
    """
    argv = [str(arg) for arg in args]
    tool = Path(argv[0]).name
    logger.debug("Running %s", shlex.join(argv), extra={"command": tool})

    started = time.monotonic()
    try:
        completed = subprocess.run(  # nosec B603 - argv list, no shell
            argv,
            capture_output=True,
            text=True,
            errors="replace",
            timeout=timeout,
            **kwargs,
        )
    except subprocess.TimeoutExpired:
        logger.warning(
            "%s killed after %gs",
            tool,
            timeout,
            extra={"command": tool, "timeout_seconds": timeout},
        )
        raise

    logger.debug(
        "%s exited with %d",
        tool,
        completed.returncode,
        extra={
            "command": tool,
            "elapsed_seconds": round(time.monotonic() - started, 3),
        },
    )
    return completed.stdout or "", completed.stderr or "", completed.returncode


def stderr_tail(stderr: str | bytes | None, max_lines: int = 5) -> str:
    """Keep the last ``max_lines`` non-blank lines of a tool's stderr.

    ffmpeg prints its banner and progress first and the actual error last.
    """
    if not stderr:
        return ""
    text = stderr
    if isinstance(text, bytes):
        text = text.decode("utf-8", errors="replace")
    lines = [line for line in text.splitlines() if line.strip()]
    return "\n".join(lines[-max_lines:])
