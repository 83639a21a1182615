"""Map SIGTERM and SIGINT onto a graceful server shutdown."""

from __future__ import annotations

import asyncio
import logging
import signal
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from homeflix.server.lifecycle import DaemonLifecycle

logger = logging.getLogger(__name__)

# systemd stops units with SIGTERM; Ctrl+C sends SIGINT
SHUTDOWN_SIGNALS = (signal.SIGTERM, signal.SIGINT)


def _on_shutdown_signal(
    sig: signal.Signals, lifecycle: DaemonLifecycle, shutdown_event: asyncio.Event
) -> None:
    if lifecycle.initiate_shutdown():
        logger.info("Received %s", sig.name)
    else:
        logger.info("Received %s again, already shutting down", sig.name)
    shutdown_event.set()


def setup_signal_handlers(
    loop: asyncio.AbstractEventLoop,
    lifecycle: DaemonLifecycle,
    shutdown_event: asyncio.Event,
) -> None:
    """Install loop handlers that start shutdown and wake ``shutdown_event``.

    Platforms or threads without loop signal support only get a warning.
    """
    for sig in SHUTDOWN_SIGNALS:
        try:
            loop.add_signal_handler(
                sig, _on_shutdown_signal, sig, lifecycle, shutdown_event
            )
        except (ValueError, RuntimeError, NotImplementedError) as e:
            logger.warning("Failed to register handler for %s: %r", sig.name, e)


def remove_signal_handlers(loop: asyncio.AbstractEventLoop) -> None:
    """Undo setup_signal_handlers(); signals that were never hooked are skipped."""
    for sig in SHUTDOWN_SIGNALS:
        try:
            loop.remove_signal_handler(sig)
        except (ValueError, RuntimeError, NotImplementedError) as e:
            logger.debug("No handler to remove for %s: %r", sig.name, e)
