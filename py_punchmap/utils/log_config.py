"""
structlog configuration.

Library modules only call ``structlog.get_logger()``; hosts call
``configure_logging`` once at startup.
"""

import logging
import sys

import structlog


def configure_logging(level: str = "INFO", fmt: str = "plain") -> None:
    """
    Route structlog through stdlib logging.

    Args:
        level: stdlib level name
        fmt: "json" for JSON lines, anything else for console output
    """
    logging.basicConfig(format="%(message)s", stream=sys.stderr,
                        level=getattr(logging, level.upper(), logging.INFO))

    renderer = (structlog.processors.JSONRenderer() if fmt == "json"
                else structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
