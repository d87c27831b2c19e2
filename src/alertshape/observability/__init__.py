"""alertshape observability: env-var config and structured logging.

Public API:
    get_config()          - Current AlertshapeConfig from ALERTSHAPE_* env vars
    setup_logging(cfg)    - Wire the configured formatter to the root logger
    get_logger(name)      - Get a structured logger (kwargs API)
    register_formatter(n, cls) - Register custom LogFormatter
"""

from alertshape.observability.config import AlertshapeConfig, get_config
from alertshape.observability.logging import (
    LogFormatter,
    get_logger,
    register_formatter,
    reset_logging,
    setup_logging,
)

__all__ = [
    "AlertshapeConfig",
    "get_config",
    "LogFormatter",
    "get_logger",
    "register_formatter",
    "reset_logging",
    "setup_logging",
]
