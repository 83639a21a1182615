"""Typed access to HOMEFLIX_* environment variables."""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

TRUTHY = frozenset({"1", "true", "yes", "on"})


class EnvReader:
    """Read and convert environment variables.

    Unset variables yield the default. Values that fail to convert are
    logged and also yield the default, so a typo in the environment never
    stops the daemon from starting.

    Args:
        env: Variables to read instead of ``os.environ``.
    """

    def __init__(self, env: Mapping[str, str] | None = None) -> None:
        self._env: Mapping[str, str] = os.environ if env is None else env

    def _read(
        self, var: str, convert: Callable[[str], T], kind: str, default: T | None
    ) -> T | None:
        raw = self._env.get(var)
        if raw is None:
            return default
        try:
            return convert(raw)
        except ValueError:
            logger.warning("Invalid %s value for %s: %r", kind, var, raw)
            return default

    def get_str(self, var: str, default: str | None = None) -> str | None:
        return self._env.get(var, default)

    def get_int(self, var: str, default: int | None = None) -> int | None:
        return self._read(var, int, "integer", default)

    def get_float(self, var: str, default: float | None = None) -> float | None:
        return self._read(var, float, "float", default)

    def get_bool(self, var: str, default: bool | None = None) -> bool | None:
        """Anything outside 1/true/yes/on (case-insensitive) reads as False."""
        return self._read(
            var, lambda raw: raw.strip().lower() in TRUTHY, "boolean", default
        )

    def get_path(
        self, var: str, must_exist: bool = False, default: Path | None = None
    ) -> Path | None:
        """Read a path with ``~`` expanded; an empty value counts as unset.

        With ``must_exist``, a path missing on disk is logged and ``default``
        returned instead.
        """
        raw = self._env.get(var)
        if not raw:
            return default
        path = Path(raw).expanduser()
        if must_exist and not path.exists():
            logger.warning("%s points to a missing path: %s", var, path)
            return default
        return path
