# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Structured logging for the records core.

Service modules keep using logging.getLogger(__name__). setup_logging()
installs a structlog ProcessorFormatter on the root handler, so those
standard library records pass through the same processor chain as native
structlog events. Fields bound with bind_context() (request_id, tenant_id,
user_id) therefore appear on every line emitted while a request is served,
which is what lets sequence, enrollment and transfer events be filtered
per school.

Output is JSON outside development and a console rendering otherwise.

Example:
    >>> from src.utils.logging import bind_context, setup_logging
    >>> setup_logging(get_settings())
    >>> bind_context(request_id="r-1", tenant_id="school-1")
    >>> logging.getLogger("src.domains.sequence").info("Sequence generated")
"""

import logging
import sys
from typing import TYPE_CHECKING

import structlog
from structlog.types import Processor

if TYPE_CHECKING:
    from src.core.config.settings import Settings

# Third-party loggers kept at WARNING regardless of the configured level
QUIET_LOGGERS = (
    "asyncpg",
    "asyncio",
    "sqlalchemy.engine",
    "sqlalchemy.pool",
    "uvicorn.access",
)


def _pre_chain() -> list[Processor]:
    """Processors applied to both stdlib records and structlog events."""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.ExtraAdder(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]


def _renderer(settings: "Settings") -> Processor:
    if settings.is_development:
        return structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())
    return structlog.processors.JSONRenderer()


def setup_logging(settings: "Settings") -> None:
    """Route stdlib and structlog output through one structlog formatter.

    Safe to call more than once; the root handler is replaced each time.

    Args:
        settings: Application settings providing log_level and environment.
    """
    level = logging.getLevelName(settings.log_level.upper())

    structlog.configure(
        processors=[
            *_pre_chain(),
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_pre_chain(),
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            _renderer(settings),
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Structlog logger sharing the stdlib handler configured above."""
    return structlog.get_logger(name)


def bind_context(**fields: object) -> None:
    """Attach fields to every log line of the current request."""
    structlog.contextvars.bind_contextvars(**fields)


def clear_context() -> None:
    """Drop request fields; the auth middleware calls this around each request."""
    structlog.contextvars.clear_contextvars()
