"""Structlog configuration for the dialogue engine.

Production (``CONVOFLOW_ENV=production``) renders one JSON object per line;
any other environment uses the colored console renderer. Context bound with
``bind_context`` or ``turn_context`` is stored in contextvars, so every
asyncio task (one per turn) carries its own session id.
"""

import logging
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from importlib.metadata import PackageNotFoundError, version
from typing import Any

import structlog
from structlog.types import EventDict, Processor

SERVICE_NAME = "convoflow"

try:
    SERVICE_VERSION = version(SERVICE_NAME)
except PackageNotFoundError:
    SERVICE_VERSION = "unknown"


def add_service_info(logger: logging.Logger, method_name: str, event_dict: EventDict) -> EventDict:
    event_dict.setdefault("service", SERVICE_NAME)
    event_dict.setdefault("version", SERVICE_VERSION)
    return event_dict


def _environment_processor(env: str) -> Processor:
    def add_environment(
        logger: logging.Logger, method_name: str, event_dict: EventDict
    ) -> EventDict:
        event_dict["environment"] = env
        return event_dict

    return add_environment


def configure_structlog(env: str | None = None, log_level: str | None = None) -> None:
    """Configure structlog and the stdlib root logger.

    Args:
        env: Deployment environment (default: ``CONVOFLOW_ENV`` or "development").
        log_level: Root level name (default: ``CONVOFLOW_LOG_LEVEL``, else
            INFO in production and DEBUG elsewhere).
    """
    env = env or os.getenv("CONVOFLOW_ENV", "development")
    is_production = env == "production"
    level = log_level or os.getenv("CONVOFLOW_LOG_LEVEL") or ("INFO" if is_production else "DEBUG")

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        _environment_processor(env),
        add_service_info,
    ]

    renderer: Processor
    if is_production:
        shared_processors.append(structlog.processors.format_exc_info)
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(
            colors=sys.stdout.isatty(),
            exception_formatter=structlog.dev.plain_traceback,
        )

    structlog.configure(
        processors=[*shared_processors, renderer],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level.upper())


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a logger, usually with ``__name__`` of the calling module."""
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Bind key-value pairs to every later log line of the current task."""
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    structlog.contextvars.unbind_contextvars(*keys)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()


@contextmanager
def turn_context(**kwargs: Any) -> Iterator[None]:
    """Bind ``kwargs`` for the duration of one turn, restoring previous values after."""
    with structlog.contextvars.bound_contextvars(**kwargs):
        yield


configure_structlog()
