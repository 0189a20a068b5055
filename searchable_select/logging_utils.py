from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

LOGGER_ROOT = "SearchableSelect"
DEBUG_ENV_VAR = "SEARCHABLE_SELECT_DEBUG"
PROPAGATE_ENV_VAR = "SEARCHABLE_SELECT_PROPAGATE_LOGS"
_TRUTHY = {"1", "true", "yes", "on"}


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in _TRUTHY


def debug_enabled() -> bool:
    return _env_flag(DEBUG_ENV_VAR)


def resolve_log_level(debug_enabled: bool) -> int:
    """Return DEBUG when debugging is requested, INFO otherwise."""
    return logging.DEBUG if debug_enabled else logging.INFO


def get_logger(component: str) -> logging.Logger:
    """Return the named logger for a component (``SearchableSelect.<component>``)."""
    return logging.getLogger(f"{LOGGER_ROOT}.{component}")


LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def build_rotating_file_handler(
    log_path: Path,
    *,
    backups: int = 4,
    max_bytes: int = 256 * 1024,
    level: int = logging.DEBUG,
) -> RotatingFileHandler:
    """Handler writing ``log_path`` in :data:`LOG_FORMAT`; the file opens on first record."""
    log_path = Path(log_path)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        log_path,
        maxBytes=max(1024, int(max_bytes)),
        backupCount=max(0, int(backups)),
        encoding="utf-8",
        delay=True,
    )
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.setLevel(level)
    return handler


def configure_logging(
    log_dir: Optional[Path] = None,
    *,
    debug: Optional[bool] = None,
    filename: str = "searchable-select.log",
    backups: int = 4,
) -> logging.Logger:
    """Set level/propagation on the package root logger and optionally attach a file handler.

    ``debug`` defaults to the ``SEARCHABLE_SELECT_DEBUG`` environment flag. Propagation to the
    root logger is off unless ``SEARCHABLE_SELECT_PROPAGATE_LOGS`` is truthy, mirroring how the
    host application keeps widget chatter out of its own log.
    """
    if debug is None:
        debug = debug_enabled()
    logger = logging.getLogger(LOGGER_ROOT)
    logger.setLevel(resolve_log_level(debug))
    logger.propagate = _env_flag(PROPAGATE_ENV_VAR)
    if log_dir is not None:
        target = Path(log_dir) / filename
        for existing in logger.handlers:
            if isinstance(existing, RotatingFileHandler) and existing.baseFilename == os.path.abspath(target):
                return logger
        logger.addHandler(build_rotating_file_handler(target, backups=backups))
    return logger
