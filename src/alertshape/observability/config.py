"""Runtime configuration, env-var driven.

All settings have safe defaults. Zero config required: the CLI logs
warnings and errors to stderr in a human-readable format.

Logging:
    Formatter: ALERTSHAPE_LOG_FORMATTER=structlog (default) | stdlib
    Renderer:  ALERTSHAPE_LOG_FORMAT=console (default) | json
    Level:     ALERTSHAPE_LOG_LEVEL=WARNING (default)

Invalid values are errors, never silently replaced by a default. A
malformed integer raises ValueError when the config is read; an unknown
formatter or log level raises ValueError from setup_logging(). The CLI
reports either as "Error: ..." and exits 2.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field


def _int_env(var: str, default: int) -> int:
    """Parse an integer from an environment variable with a helpful error on bad input."""
    raw = os.environ.get(var)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError as err:
        raise ValueError(f"{var}={raw!r} is not a valid integer") from err


@dataclass
class AlertshapeConfig:
    """Configuration for alertshape, read from ALERTSHAPE_* variables."""

    # --- Logging ---
    log_formatter: str = field(
        default_factory=lambda: os.environ.get("ALERTSHAPE_LOG_FORMATTER", "structlog")
    )  # "structlog" | "stdlib"

    log_level: str = field(
        default_factory=lambda: os.environ.get("ALERTSHAPE_LOG_LEVEL", "WARNING")
    )

    log_format: str = field(
        default_factory=lambda: os.environ.get("ALERTSHAPE_LOG_FORMAT", "console")
    )  # "console" | "json"

    # --- Templates ---
    default_datasource: str = field(
        default_factory=lambda: os.environ.get("ALERTSHAPE_DEFAULT_DATASOURCE", "")
    )
    default_window_seconds: int = field(
        default_factory=lambda: _int_env("ALERTSHAPE_DEFAULT_WINDOW_SECONDS", 600)
    )


def get_config() -> AlertshapeConfig:
    """Get the current configuration."""
    return AlertshapeConfig()
