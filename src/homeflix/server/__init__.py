"""aiohttp server behind `homeflix serve`."""

from homeflix.server.app import create_app
from homeflix.server.lifecycle import DaemonLifecycle

__all__ = [
    "DaemonLifecycle",
    "create_app",
]
