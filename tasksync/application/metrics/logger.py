from __future__ import annotations

import logging
import os
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

from ...infrastructure.metrics import METRICS_LOGGER


class ReopeningRotatingFileHandler(TimedRotatingFileHandler):
    """
    Rotates on a schedule and follows its path: when the file it writes to is
    deleted or swapped for another one (logrotate copies, tmp reapers), the
    next record goes to a freshly opened file at ``baseFilename``.
    """

    def __init__(self, filename, **kwargs):
        super().__init__(filename, **kwargs)
        self._identity = self._stat_identity()

    def _stat_identity(self) -> tuple[int, int] | None:
        try:
            st = os.stat(self.baseFilename)
        except FileNotFoundError:
            return None
        return st.st_dev, st.st_ino

    def _open(self):
        stream = super()._open()
        self._identity = self._stat_identity()
        return stream

    def emit(self, record):
        if self.stream is not None and self._stat_identity() != self._identity:
            self.acquire()
            try:
                self.stream.close()
                self.stream = self._open()
            finally:
                self.release()
        super().emit(record)


def _owns_file(handler: logging.Handler, target: Path) -> bool:
    return getattr(handler, "baseFilename", None) == os.path.abspath(target)


def configure_metrics_logger(
    path: str,
    *,
    when: str = "midnight",
    backups: int = 14,
    logger_name: str = METRICS_LOGGER,
) -> logging.Logger:
    """Send bridge metrics to ``path`` as JSON lines, keeping them out of the root logger."""
    target = Path(path)
    logger = logging.getLogger(logger_name)
    logger.setLevel(logging.INFO)
    logger.propagate = False

    stale = [h for h in logger.handlers if not _owns_file(h, target)]
    for handler in stale:
        logger.removeHandler(handler)
        handler.close()
    if logger.handlers:
        return logger

    target.parent.mkdir(parents=True, exist_ok=True)
    handler = ReopeningRotatingFileHandler(
        target,
        when=when,
        backupCount=backups,
        encoding="utf-8",
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    return logger
