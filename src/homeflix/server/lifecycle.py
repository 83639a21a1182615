"""Uptime and graceful-shutdown bookkeeping for the HTTP server."""

from __future__ import annotations

import logging
import time

logger = logging.getLogger(__name__)


class DaemonLifecycle:
    """Shared between the signal handlers, the request guards and cleanup.

    Once :meth:`initiate_shutdown` runs, API handlers answer 503 and
    background work has ``shutdown_timeout`` seconds to finish.
    """

    def __init__(self, shutdown_timeout: float = 30.0) -> None:
        self.shutdown_timeout = shutdown_timeout
        self._started = time.monotonic()
        self._deadline: float | None = None

    @property
    def uptime_seconds(self) -> float:
        return time.monotonic() - self._started

    @property
    def is_shutting_down(self) -> bool:
        return self._deadline is not None

    def initiate_shutdown(self) -> bool:
        """Start the shutdown clock.

        Returns:
            False when shutdown was already under way.
        """
        if self._deadline is not None:
            return False
        self._deadline = time.monotonic() + self.shutdown_timeout
        logger.info(
            "Shutting down, background work has %.0fs to finish",
            self.shutdown_timeout,
        )
        return True

    def remaining_shutdown_time(self) -> float | None:
        """Seconds left before remaining work is cancelled.

        None before shutdown starts; never negative.
        """
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())
