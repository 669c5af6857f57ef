"""structlog setup for the CLI.

Library modules log with ``structlog.get_logger(__name__)`` and event-style
messages; this module only decides where those events go.
"""

from __future__ import annotations

import logging
import os
import sys

import structlog

_ENV_LEVEL = "CONTEXTOR_LOG_LEVEL"


def setup_logging(level: str = "WARNING", json_logs: bool = False) -> None:
    """Route structlog through stdlib logging on stderr.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR).
        json_logs: Render events as JSON lines instead of console key=value.
    """
    env_level = os.getenv(_ENV_LEVEL)
    if env_level:
        level = env_level
    log_level = getattr(logging, level.upper(), logging.WARNING)

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=log_level,
        force=True,
    )

    renderer = (
        structlog.processors.JSONRenderer()
        if json_logs
        else structlog.dev.ConsoleRenderer(colors=False)
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        # capture_logs() in tests only sees uncached loggers
        cache_logger_on_first_use=False,
    )
