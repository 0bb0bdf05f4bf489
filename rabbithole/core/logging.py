"""
Logging setup for the API process.

Console output always goes to stdout. A size-rotated log file is added when
LOG_FILE is set. Library loggers that chatter at INFO (HTTP clients, the
OpenAI SDK, LangChain, uvicorn access lines) are capped at WARNING.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from rabbithole.core.config import Settings, config

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

# Set on every handler installed here; repeated setup calls are no-ops
_HANDLER_MARK = "_rabbithole_handler"

QUIET_LOGGERS = (
    "httpx",
    "httpcore",
    "openai",
    "aiosqlite",
    "langchain",
    "langsmith",
    "uvicorn.access",
)


def setup_logging(settings: Optional[Settings] = None) -> None:
    """
    Install console and optional file handlers on the root logger.

    Args:
        settings: Source of LOG_LEVEL, LOG_FILE and rotation limits (default: global config)
    """
    settings = settings or config
    root = logging.getLogger()

    if any(getattr(h, _HANDLER_MARK, False) for h in root.handlers):
        return

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if settings.log_file:
        handlers.append(_rotating_file_handler(Path(settings.log_file), settings))

    formatter = logging.Formatter(LOG_FORMAT)
    for handler in handlers:
        handler.setFormatter(formatter)
        setattr(handler, _HANDLER_MARK, True)
        root.addHandler(handler)

    root.setLevel(settings.log_level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    if settings.log_file:
        logging.getLogger(__name__).info(f"Logging to file: {Path(settings.log_file).absolute()}")


def _rotating_file_handler(path: Path, settings: Settings) -> RotatingFileHandler:
    path.parent.mkdir(parents=True, exist_ok=True)
    return RotatingFileHandler(
        path,
        maxBytes=settings.log_max_bytes,
        backupCount=settings.log_backup_count,
        encoding="utf-8",
    )
