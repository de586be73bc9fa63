"""
Structured logging for sdm-serverless.

Modules log through :func:`get_logger` using dotted event names and keyword
fields, which keeps dispatch decisions searchable in both renderers::

    logger = get_logger(__name__)
    logger.debug("dispatch.skipped", reason="not_targeted")

Goal fields are bound for the duration of a dispatch with :class:`LogContext`.
Binding goes through structlog's contextvars, so two dispatches interleaved
on one event loop keep their own ``goal`` / ``goal_set_id`` values.

Log records go to stderr; stdout belongs to the CLI's own output.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from sdm_serverless.core.settings import SdmSettings

_service = "sdm-serverless"


def _add_service(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    event_dict.setdefault("service", _service)
    return event_dict


def configure_logging(
    level: str = "INFO",
    json_format: bool | None = None,
    service: str = "sdm-serverless",
    add_timestamp: bool = True,
) -> None:
    """Configure structlog and the stdlib root logger.

    Args:
        level: Minimum level name (DEBUG, INFO, WARNING, ERROR)
        json_format: JSON lines when True, coloured console output when
            False, and JSON whenever stderr is not a tty when None
        service: Value of the ``service`` field on every record
        add_timestamp: Prefix records with a UTC ISO timestamp
    """
    global _service
    _service = service
    numeric_level = logging.getLevelName(level.upper())

    if json_format is None:
        json_format = not sys.stderr.isatty()

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        _add_service,
    ]
    if add_timestamp:
        processors.insert(0, structlog.processors.TimeStamper(fmt="iso", utc=True))
    if json_format:
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=numeric_level)


def configure_from_settings(settings: SdmSettings) -> None:
    """:func:`configure_logging` driven by a worker's settings."""
    configure_logging(
        level=settings.log_level,
        json_format=settings.log_format == "json",
        service=settings.name,
    )


def get_logger(name: str | None = None) -> Any:
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    structlog.contextvars.unbind_contextvars(*keys)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()


class LogContext:
    """Binds fields for the length of a ``with`` / ``async with`` block.

    ``None`` values are dropped so optional goal fields never show up as
    ``goal_set_id=None``.

    Example:
        async with LogContext(goal="deploy-dev", goal_set_id="gs-42"):
            logger.info("dispatch.started")
    """

    def __init__(self, **fields: Any) -> None:
        self._fields = {key: value for key, value in fields.items() if value is not None}

    def __enter__(self) -> LogContext:
        bind_context(**self._fields)
        return self

    def __exit__(self, *exc_info: object) -> None:
        unbind_context(*self._fields)

    async def __aenter__(self) -> LogContext:
        return self.__enter__()

    async def __aexit__(self, *exc_info: object) -> None:
        self.__exit__(*exc_info)


__all__ = [
    "configure_logging",
    "configure_from_settings",
    "get_logger",
    "bind_context",
    "unbind_context",
    "clear_context",
    "LogContext",
]
