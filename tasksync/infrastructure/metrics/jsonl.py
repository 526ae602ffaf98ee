from __future__ import annotations

import json
import logging
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Iterator

METRICS_LOGGER = "metrics.tasksync"


class MetricsClient:
    def __init__(self):
        self._logger = logging.getLogger(METRICS_LOGGER)

    def configure(self, logger: logging.Logger | None = None) -> None:
        if logger:
            self._logger = logger

    def _emit(self, action: str, duration_ms: float, success: bool, *, source: str | None, extra: dict | None) -> None:
        payload: dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "action": action,
            "duration_ms": round(duration_ms, 3),
            "success": success,
        }
        if source:
            payload["source"] = source
        if extra:
            payload.update(extra)
        self._logger.info(json.dumps(payload, ensure_ascii=False, default=str))

    @contextmanager
    def span(self, action: str, *, source: str | None = None, extra: dict | None = None) -> Iterator[dict]:
        """
        Time the enclosed block and emit one JSON line when it ends.
        The yielded dict is merged into the payload, so callers can attach
        fields that are only known once the block has run.
        """
        fields: dict[str, Any] = dict(extra or {})
        start = time.perf_counter()
        success = True
        try:
            yield fields
        except Exception:
            success = False
            raise
        finally:
            duration = (time.perf_counter() - start) * 1000
            self._emit(action, duration, success, source=source, extra=fields)


metrics = MetricsClient()
