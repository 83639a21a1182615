"""Apply command-line logging flags on top of the configured logging."""

from __future__ import annotations

import dataclasses
from pathlib import Path

from homeflix.config.models import LoggingConfig


def build_logging_config(
    base: LoggingConfig,
    *,
    level: str | None = None,
    file: Path | None = None,
    format: str | None = None,
    include_stderr: bool | None = None,
) -> LoggingConfig:
    """Return a copy of ``base`` with every non-None flag swapped in.

    The copy is validated again, so a bad flag raises ValueError.
    """
    flags = {
        "level": level,
        "file": file,
        "format": format,
        "include_stderr": include_stderr,
    }
    return dataclasses.replace(
        base, **{name: value for name, value in flags.items() if value is not None}
    )


def configure_logging_from_cli(
    *,
    config_path: Path | None = None,
    level: str | None = None,
    file: Path | None = None,
    format: str | None = None,
    include_stderr: bool | None = None,
) -> None:
    """Set up the root logger for a CLI run."""
    from homeflix.config.loader import get_config
    from homeflix.logging import configure_logging

    base = get_config(config_path=config_path).logging
    configure_logging(
        build_logging_config(
            base,
            level=level,
            file=file,
            format=format,
            include_stderr=include_stderr,
        )
    )
