"""structlog setup for container-fixtures."""

import logging
import sys
from typing import Optional

import structlog

LOGGING_LEVEL_MAP = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def setup_logging(
    log_level: Optional[str] = None,
    log_format: Optional[str] = None,
    force: bool = False,
) -> None:
    """Configure structlog to render through stdlib logging.

    Leaves an existing structlog configuration alone unless ``force`` is set,
    so an application that configured logging first keeps its setup.
    """
    if structlog.is_configured() and not force:
        return

    from ..config import settings

    config = settings.logging
    level_name = (log_level or config.log_level).upper()
    level = LOGGING_LEVEL_MAP.get(level_name, logging.INFO)
    fmt = log_format or config.log_format

    if fmt == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    package_logger = logging.getLogger("container_fixtures")
    package_logger.setLevel(level)
    if not package_logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter("%(message)s"))
        package_logger.addHandler(handler)
