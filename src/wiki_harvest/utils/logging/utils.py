# ABOUTME: structlog logger helpers: module-named loggers, bound contexts and API call timing
# ABOUTME: Used by the client, mapper and pipeline so every event carries entry or run identifiers

import functools
import inspect
import time
import uuid
from collections.abc import Callable
from typing import Any, TypeVar

import structlog

F = TypeVar("F", bound=Callable[..., Any])


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger named after ``name`` or, when omitted, the calling module."""
    if name is None:
        caller = inspect.currentframe()
        caller = caller.f_back if caller else None
        name = caller.f_globals.get("__name__") if caller else None

    return structlog.get_logger(name or "wiki_harvest")


def generate_operation_id() -> str:
    """Short random id correlating the events of one run or call."""
    return uuid.uuid4().hex[:8]


def log_api_call(api_name: str, **context) -> Callable[[F], F]:
    """Decorate an async callable so each call logs its duration and outcome.

    Exceptions are logged at warning level and re-raised unchanged.
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            log = get_logger(func.__module__).bind(api_name=api_name, call_id=generate_operation_id(), **context)
            started = time.perf_counter()
            log.debug("Calling API")

            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                log.warning(
                    "API call failed",
                    duration_seconds=round(time.perf_counter() - started, 3),
                    error=str(e),
                    error_type=type(e).__name__,
                )
                raise

            log.debug("API call succeeded", duration_seconds=round(time.perf_counter() - started, 3))
            return result

        return wrapper  # type: ignore[return-value]

    return decorator


class LogContext:
    """Bind context onto a logger for the duration of a ``with`` block.

    An exception leaving the block is logged once with the bound context and
    then propagates.
    """

    def __init__(self, logger: structlog.stdlib.BoundLogger, **context):
        self.logger = logger
        self.context = context
        self.bound_logger: structlog.stdlib.BoundLogger | None = None

    def __enter__(self) -> structlog.stdlib.BoundLogger:
        self.bound_logger = self.logger.bind(**self.context)
        return self.bound_logger

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if exc_type is not None and self.bound_logger is not None:
            self.bound_logger.error("Aborted with exception", error=str(exc_val), error_type=exc_type.__name__)


def with_entry_context(
    entry_id: str, logger: structlog.stdlib.BoundLogger | None = None, **context
) -> LogContext:
    """Context for work on one entry; binds ``entry_id`` plus any extra fields."""
    return LogContext(logger or get_logger(), entry_id=entry_id, **context)


def with_pipeline_context(
    pipeline_name: str, logger: structlog.stdlib.BoundLogger | None = None, **context
) -> LogContext:
    """Context for one pipeline run.

    Args:
        pipeline_name: Name bound as ``pipeline``
        logger: Logger to bind onto, the caller's module logger if omitted
        **context: Extra fields to bind

    Returns:
        LogContext that also binds a fresh ``operation_id``
    """
    return LogContext(
        logger or get_logger(), pipeline=pipeline_name, operation_id=generate_operation_id(), **context
    )
