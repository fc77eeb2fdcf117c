"""
structlog setup for feedrelay.

Engine and service code logs through ``structlog.get_logger`` with
keyword fields; storage, transport and command code uses stdlib
``logging``. Both end up in the same renderer: JSON lines in
production, coloured console output elsewhere.
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager

import structlog
from structlog.types import Processor

from feedrelay.config.settings import get_settings

# Third-party loggers that are chatty at INFO
QUIET_LOGGERS = ("httpx", "httpcore", "asyncio", "asyncpg")


def _processors(json_output: bool) -> list[Processor]:
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]
    if json_output:
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))
    return processors


def setup_logging(level: str | None = None, json_output: bool | None = None) -> None:
    """
    Configure structlog and the stdlib root logger.

    Args:
        level: Log level name; defaults to ``LOG_LEVEL``.
        json_output: Force JSON lines; defaults to on in production.
    """
    settings = get_settings()
    level = level or settings.log_level
    if json_output is None:
        json_output = settings.is_production

    structlog.configure(
        processors=_processors(json_output),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level),
        force=True,
    )
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


@contextmanager
def cycle_context(cycle: int) -> Iterator[None]:
    """Tag every structlog line emitted inside the block with ``cycle``."""
    structlog.contextvars.bind_contextvars(cycle=cycle)
    try:
        yield
    finally:
        structlog.contextvars.unbind_contextvars("cycle")
