"""Root logger setup for the SheetDesk command line and embedding services."""
from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_FILENAME = "sheetdesk.log"

_CONSOLE_MARKER = "_sheetdesk_console"
_active_log_file: Optional[Path] = None


def _writes_to(handler: logging.Handler, log_file: Path) -> bool:
    return isinstance(handler, logging.FileHandler) and handler.baseFilename == os.path.abspath(log_file)


def _install(root: logging.Logger, handler: logging.Handler) -> None:
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)


def configure_logging(log_dir: str = "logs", level: int = logging.INFO, *, console: bool = False) -> Path:
    """Send log records to ``<log_dir>/sheetdesk.log``.

    Repeated calls reuse the handlers already attached to the root logger.
    ``console`` also mirrors records to ``stderr``.
    """

    global _active_log_file

    log_file = Path(log_dir).expanduser() / LOG_FILENAME
    log_file.parent.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    root.setLevel(min(root.level, level) if root.handlers else level)

    if not any(_writes_to(handler, log_file) for handler in root.handlers):
        _install(root, logging.FileHandler(log_file, encoding="utf-8"))

    if console and not any(getattr(handler, _CONSOLE_MARKER, False) for handler in root.handlers):
        stream = logging.StreamHandler(sys.stderr)
        setattr(stream, _CONSOLE_MARKER, True)
        _install(root, stream)

    _active_log_file = log_file
    logging.getLogger(__name__).debug("Log file: %s", log_file)
    return log_file


def get_log_path() -> Optional[Path]:
    """Return the active log file, or ``None`` before :func:`configure_logging` ran."""

    return _active_log_file


__all__ = ["LOG_FILENAME", "LOG_FORMAT", "configure_logging", "get_log_path"]
