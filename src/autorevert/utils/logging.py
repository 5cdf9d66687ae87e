"""Logging setup for the autorevert runtime.

One rotating log file (``~/.autorevert/logs/autorevert.log`` unless
``AUTOREVERT_LOG_DIR`` or an explicit directory says otherwise) plus an
optional console stream, both attached to the root logger. The level can be
changed later with :func:`set_level`, which is how a ``debug_logging`` toggle
reaches an already running process without reopening the file.
"""

from __future__ import annotations

import logging
import logging.handlers
import os
from dataclasses import dataclass, field
from pathlib import Path

__all__ = ["setup_logging", "set_level", "reset_logging", "get_logger", "get_log_path"]

LOG_DIR_ENV = "AUTOREVERT_LOG_DIR"
LOG_FILE_NAME = "autorevert.log"
LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_DEFAULT_LOG_DIR = Path.home() / ".autorevert" / "logs"
# Event-loop libraries chatter at DEBUG on every timer tick
_NOISY_LOGGERS: tuple[str, ...] = ("asyncio", "qasync")


@dataclass(slots=True)
class _LoggingState:
    log_path: Path | None = None
    level: int = logging.INFO
    handlers: list[logging.Handler] = field(default_factory=list)


_STATE = _LoggingState()


def setup_logging(
    level: int = logging.INFO,
    *,
    log_dir: Path | str | None = None,
    console: bool = True,
    max_bytes: int = 1_000_000,
    backup_count: int = 3,
    force: bool = False,
) -> Path:
    """Install the rotating file handler (and console handler) on the root logger.

    Repeated calls are no-ops unless ``force`` is set, in which case the
    previously installed handlers are closed and replaced.
    """

    if _STATE.log_path is not None and not force:
        return _STATE.log_path

    log_path = _resolve_log_dir(log_dir) / LOG_FILE_NAME
    log_path.parent.mkdir(parents=True, exist_ok=True)

    reset_logging()
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    handlers: list[logging.Handler] = [
        logging.handlers.RotatingFileHandler(
            log_path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
        )
    ]
    if console:
        handlers.append(logging.StreamHandler())
    for handler in handlers:
        handler.setFormatter(formatter)

    logging.basicConfig(handlers=handlers, force=True)
    logging.captureWarnings(True)

    _STATE.log_path = log_path
    _STATE.handlers = handlers
    set_level(level)
    return log_path


def set_level(level: int) -> None:
    """Change the level of the root logger and every handler installed here."""

    root = logging.getLogger()
    root.setLevel(level)
    for handler in _STATE.handlers:
        handler.setLevel(level)
    quiet_level = max(level, logging.WARNING)
    for logger_name in _NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(quiet_level)
    if level != _STATE.level:
        logging.getLogger(__name__).debug("Log level set to %s", logging.getLevelName(level))
    _STATE.level = level


def reset_logging() -> None:
    """Detach and close the handlers installed by :func:`setup_logging`."""

    root = logging.getLogger()
    for handler in _STATE.handlers:
        root.removeHandler(handler)
        handler.close()
    _STATE.handlers = []
    _STATE.log_path = None


def get_logger(name: str) -> logging.Logger:
    """Return a module-specific logger."""

    return logging.getLogger(name)


def get_log_path() -> Path | None:
    """Return the currently configured log file if available."""

    return _STATE.log_path


def _resolve_log_dir(log_dir: Path | str | None) -> Path:
    env_override = os.environ.get(LOG_DIR_ENV)
    return Path(log_dir or env_override or _DEFAULT_LOG_DIR).expanduser()
