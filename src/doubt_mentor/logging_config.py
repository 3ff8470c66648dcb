"""loguru sinks for the service.

Every record carries the caller's `user_id` and `session_id` (bound by the
orchestrator with `logger.contextualize`), and the standard-library loggers
used by uvicorn are routed into loguru so one format covers the whole process.
"""

import logging
import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any

from loguru import logger

_CONTEXT_DEFAULTS = {"user_id": "-", "session_id": "-"}

_CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> <level>{level:<8}</level> "
    "<magenta>[{extra[user_id]} {extra[session_id]}]</magenta> "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
_FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level:<8} | user={extra[user_id]} session={extra[session_id]} | "
    "{name}:{function}:{line} - {message}"
)

STDLIB_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")


class InterceptHandler(logging.Handler):
    """Forward standard-library log records to loguru, keeping the caller's frame."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame is not None and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def _add_console(level: str) -> str:
    logger.add(sys.stderr, level=level, format=_CONSOLE_FORMAT)
    return f"console (stderr, {level})"


def _add_file(
    level: str,
    path: str = ".doubt_mentor/doubt_mentor.log",
    rotation: str = "10 MB",
    retention: int = 3,
) -> str:
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    logger.add(path, level=level, format=_FILE_FORMAT, rotation=rotation, retention=retention, enqueue=True)
    return f"file ({path}, {level})"


_SINKS: dict[str, Callable[..., str]] = {
    "console": _add_console,
    "file": _add_file,
}


def intercept_stdlib_logging(names: tuple[str, ...], level: str) -> None:
    for name in names:
        std_logger = logging.getLogger(name)
        std_logger.handlers = [InterceptHandler()]
        std_logger.setLevel(level)
        std_logger.propagate = False


def setup_logging(
    level: str = "INFO",
    consumers: list[dict[str, Any]] | None = None,
    *,
    stdlib_loggers: tuple[str, ...] = STDLIB_LOGGERS,
) -> list[str]:
    """Replace loguru's sinks with the configured ones and return a description of each."""
    logger.remove()
    logger.configure(extra=_CONTEXT_DEFAULTS)

    if consumers is None:
        consumers = [{"type": "console"}]

    descriptions: list[str] = []
    for config in consumers:
        sink_type = config.get("type", "")
        add_sink = _SINKS.get(sink_type)
        if add_sink is None:
            logger.warning(f"Unknown log consumer type: {sink_type!r}")
            continue
        options = {k: v for k, v in config.items() if k not in ("type", "level")}
        descriptions.append(add_sink(config.get("level", level), **options))

    intercept_stdlib_logging(stdlib_loggers, level)
    return descriptions
