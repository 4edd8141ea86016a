"""
Logging setup for the API process.

- console: LOG_LEVEL and above
- LOG_DIR/app.log: INFO and above (only when LOG_DIR is set)
- LOG_DIR/error.log: ERROR and above (only when LOG_DIR is set)
"""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from overlay_studio.core.config import Settings, get_settings

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def _mk_rotating_handler(
    path: Path, level: int, fmt: logging.Formatter, settings: Settings
) -> RotatingFileHandler:
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        filename=str(path),
        maxBytes=settings.LOG_MAX_MB * 1024 * 1024,
        backupCount=settings.LOG_BACKUP_COUNT,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(fmt)
    return handler


def setup_logging(settings: Settings | None = None) -> Optional[Path]:
    """Reset the root logger handlers. Returns the log directory, if any."""
    settings = settings or get_settings()

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(logging.DEBUG)

    fmt = logging.Formatter(LOG_FORMAT)

    console_level = getattr(logging, settings.LOG_LEVEL, logging.INFO)
    ch = logging.StreamHandler()
    ch.setLevel(console_level)
    ch.setFormatter(fmt)
    root.addHandler(ch)

    # SQL echo is only useful when debugging queries
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)

    if not settings.LOG_DIR:
        return None

    log_dir = Path(settings.LOG_DIR)
    root.addHandler(_mk_rotating_handler(log_dir / "app.log", logging.INFO, fmt, settings))
    root.addHandler(_mk_rotating_handler(log_dir / "error.log", logging.ERROR, fmt, settings))
    return log_dir
