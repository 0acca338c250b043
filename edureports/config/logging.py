"""
Logging for the reports API

structlog events and stdlib records (uvicorn, gunicorn, SQLAlchemy) share one
processor chain and one stdout handler. `LOG_FORMAT=json` emits one JSON
object per line for log shipping; `console` is for local development.

Request-scoped values bound with `structlog.contextvars` (the request id set
by the logging middleware) are merged into every event.
"""

import logging
import sys
from typing import Optional

import structlog
from structlog.processors import JSONRenderer, TimeStamper
from structlog.stdlib import add_log_level, ProcessorFormatter

from edureports.config.settings import get_settings

# Server loggers that would otherwise install their own handlers
SERVER_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access", "gunicorn.error")


def _renderer(log_format: str):
    if log_format == "console":
        return structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())
    return JSONRenderer()


def configure_logging(log_level: Optional[str] = None) -> None:
    """
    Install the shared structlog/stdlib logging setup.

    Safe to call more than once (tests, the seed script and the API lifespan
    all do); existing root handlers are replaced.

    Args:
        log_level: Overrides LOG_LEVEL
    """
    settings = get_settings()
    level = getattr(logging, (log_level or settings.monitoring.log_level).upper(), logging.INFO)

    pre_chain = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        add_log_level,
        TimeStamper(fmt="iso", utc=True),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    structlog.configure(
        processors=pre_chain + [ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        ProcessorFormatter(
            processor=_renderer(settings.monitoring.log_format),
            foreign_pre_chain=pre_chain,
        )
    )

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)

    for name in SERVER_LOGGERS:
        server_logger = logging.getLogger(name)
        server_logger.handlers = []
        server_logger.propagate = True
        server_logger.setLevel(level)

    # Statements are only logged with DB_ECHO
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.database.echo else logging.WARNING
    )
