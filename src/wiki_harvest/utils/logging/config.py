# ABOUTME: Logging configuration using loguru sinks with structlog as the logging front-end
# ABOUTME: Interactive runs write rotating files under logs/, production runs emit JSON lines on stdout

import logging
import os
import sys
import time
from enum import StrEnum
from pathlib import Path
from typing import Any

import structlog
from loguru import logger

DEFAULT_LOG_DIR = Path("logs")
THIRD_PARTY_LOGGERS = ["httpx", "httpcore", "asyncio", "tenacity"]

MAIN_LOG_NAME = "wiki-harvest.log"
JSON_LOG_NAME = "wiki-harvest.json"
ERROR_LOG_NAME = "errors.log"

TEXT_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {extra[name]} - {message}"
RECORD_FORMAT = "{time} | {level} | {name} | {message}"


class LoggingMode(StrEnum):
    INTERACTIVE = "interactive"
    PRODUCTION = "production"


class InterceptHandler(logging.Handler):
    """Forward stdlib logging records (and structlog, which renders through stdlib) into loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        logger.opt(exception=record.exc_info).bind(name=record.name).log(level, record.getMessage())


def detect_logging_mode() -> LoggingMode:
    """WIKI_HARVEST_LOG_MODE wins when valid; otherwise a TTY means interactive."""
    requested = (os.getenv("WIKI_HARVEST_LOG_MODE") or "").strip().lower()
    if requested in {mode.value for mode in LoggingMode}:
        return LoggingMode(requested)

    return LoggingMode.INTERACTIVE if sys.stdout.isatty() else LoggingMode.PRODUCTION


def quiet_third_party_loggers() -> None:
    for name in THIRD_PARTY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.captureWarnings(True)
    logging.getLogger("py.warnings").setLevel(logging.ERROR)


def setup_structlog() -> None:
    """Render structlog events as key=value text and hand them to stdlib logging."""
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.processors.KeyValueRenderer(key_order=["event"], drop_missing=True),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def _ensure_log_dir(log_dir: Path, tries: int = 3) -> bool:
    """Create the log directory, tolerating races between parallel processes."""
    for n in range(1, tries + 1):
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
        except OSError:
            if n == tries:
                return False
            time.sleep(0.01 * n)
        else:
            return True
    return False


def configure_logging(
    mode: LoggingMode | str | None = None,
    log_level: str = "INFO",
    log_file: str | None = None,
    log_dir: Path = DEFAULT_LOG_DIR,
) -> None:
    """Route stdlib and structlog output into loguru sinks.

    Args:
        mode: Interactive or production; detected from the environment when omitted
        log_level: Minimum level name such as DEBUG or WARNING
        log_file: Path for the human-readable log, ``logs/wiki-harvest.log`` by default
        log_dir: Directory for the interactive-mode files

    An interactive run whose log directory cannot be created falls back to
    production output.
    """
    selected = LoggingMode(mode) if mode is not None else detect_logging_mode()

    quiet_third_party_loggers()
    setup_structlog()

    log_level = log_level.upper()
    level_number = logging.getLevelName(log_level)
    if not isinstance(level_number, int):
        level_number = logging.INFO
    logging.basicConfig(handlers=[InterceptHandler()], level=level_number, force=True)

    logger.remove()
    logger.configure(extra={"name": "wiki_harvest"})

    if selected is LoggingMode.INTERACTIVE and not _ensure_log_dir(log_dir):
        selected = LoggingMode.PRODUCTION

    if selected is LoggingMode.PRODUCTION:
        logger.add(sys.stdout, level=log_level, format=RECORD_FORMAT, serialize=True)
        return

    logger.add(
        log_file or str(log_dir / MAIN_LOG_NAME),
        level=log_level,
        format=TEXT_FORMAT,
        rotation="10 MB",
        retention="7 days",
    )
    logger.add(
        log_dir / JSON_LOG_NAME,
        level=log_level,
        format=RECORD_FORMAT,
        serialize=True,
        rotation="10 MB",
        retention="7 days",
    )
    logger.add(log_dir / ERROR_LOG_NAME, level="ERROR", format=TEXT_FORMAT, backtrace=True, diagnose=False)


def get_logging_status(log_dir: Path = DEFAULT_LOG_DIR) -> dict[str, Any]:
    """Describe where logs would go for the detected mode, for the logging-status command."""
    mode = detect_logging_mode()
    files = {"main": MAIN_LOG_NAME, "json": JSON_LOG_NAME, "errors": ERROR_LOG_NAME}

    return {
        "mode": mode,
        "log_directory": str(log_dir.absolute()) if log_dir.exists() else None,
        "log_files": {
            key: (str(log_dir / filename) if mode is LoggingMode.INTERACTIVE else None)
            for key, filename in files.items()
        },
        "third_party_suppressed": THIRD_PARTY_LOGGERS,
    }
