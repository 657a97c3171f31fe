"""
Structured logging for graphgate.

structlog renders JSON in production and coloured console output elsewhere.
Standard library loggers (uvicorn, pymongo) are routed through the same
renderer so a single stream carries every record.
"""

import asyncio
import functools
import logging
import sys
import time
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Optional

import structlog
from structlog.contextvars import bind_contextvars, merge_contextvars, reset_contextvars
from structlog.processors import (
    CallsiteParameter,
    CallsiteParameterAdder,
    JSONRenderer,
    TimeStamper,
    add_log_level,
)
from structlog.stdlib import ProcessorFormatter, add_logger_name

from graphgate.core.config import Settings

QUIET_LOGGERS = ("uvicorn.access", "pymongo", "asyncio")


def setup_logging(settings: Settings) -> None:
    """Configure structlog and the root logger from the settings."""
    renderer = JSONRenderer() if settings.is_production else structlog.dev.ConsoleRenderer()
    timestamper = TimeStamper(fmt="iso")

    structlog.configure(
        processors=[
            merge_contextvars,
            add_log_level,
            add_logger_name,
            CallsiteParameterAdder(
                parameters=[
                    CallsiteParameter.MODULE,
                    CallsiteParameter.FUNC_NAME,
                    CallsiteParameter.LINENO,
                ]
            ),
            timestamper,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        ProcessorFormatter(processor=renderer, foreign_pre_chain=[add_log_level, timestamper])
    )
    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(settings.log_level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (typically __name__)
    """
    return structlog.get_logger(name)


class LogContext:
    """Bind key/value pairs to every log record emitted inside the block."""

    def __init__(self, **kwargs: Any):
        self.context = kwargs
        self.tokens: dict = {}

    def __enter__(self) -> "LogContext":
        self.tokens = bind_contextvars(**self.context)
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        reset_contextvars(**self.tokens)


@contextmanager
def _timed(logger: structlog.stdlib.BoundLogger, operation: str) -> Iterator[None]:
    start_time = time.perf_counter()
    try:
        yield
    except Exception as e:
        logger.error(f"{operation} failed", duration_ms=_elapsed_ms(start_time), error=str(e))
        raise
    logger.info(f"{operation} completed", duration_ms=_elapsed_ms(start_time))


def _elapsed_ms(start_time: float) -> float:
    return round((time.perf_counter() - start_time) * 1000, 2)


def log_performance(operation: str) -> Callable:
    """
    Decorator logging how long a sync or async callable took.

    Failures are logged with their duration and re-raised.
    """

    def decorator(func: Callable) -> Callable:
        logger = get_logger(func.__module__)

        if asyncio.iscoroutinefunction(func):
            @functools.wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                with _timed(logger, operation):
                    return await func(*args, **kwargs)

            return async_wrapper

        @functools.wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            with _timed(logger, operation):
                return func(*args, **kwargs)

        return sync_wrapper

    return decorator
