"""Reading config.toml."""

from __future__ import annotations

import logging
import tomllib
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


class TomlParseError(Exception):
    """A config file exists but is unreadable or not valid TOML."""

    def __init__(self, path: Path, message: str) -> None:
        self.path = path
        super().__init__(f"Failed to parse {path}: {message}")


def load_toml_file(path: Path, *, strict: bool = False) -> dict[str, Any]:
    """Parse ``path``; a missing file gives an empty dict.

    Without ``strict``, a broken file is logged and also gives an empty
    dict so the defaults apply.

    Raises:
        TomlParseError: On a broken file when ``strict`` is set.
    """
    try:
        raw = path.read_bytes()
    except FileNotFoundError:
        return {}
    except OSError as e:
        return _broken(path, e, strict)

    try:
        return tomllib.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, tomllib.TOMLDecodeError) as e:
        return _broken(path, e, strict)


def _broken(path: Path, error: Exception, strict: bool) -> dict[str, Any]:
    if strict:
        raise TomlParseError(path, str(error)) from error
    logger.warning("Ignoring unreadable config file %s: %s", path, error)
    return {}
