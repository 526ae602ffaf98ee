from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from ..infrastructure.http import AiohttpExecutor
from ..infrastructure.markers import MarkerTokenStore, WorkingLocation
from ..infrastructure.metrics import metrics
from .bridge import SyncBridge
from .metrics import configure_metrics_logger
from .wait_loop import DEFAULT_POLL_INTERVAL

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BridgeConfig:
    work_dir: str | None = None
    poll_interval: float = DEFAULT_POLL_INTERVAL
    default_timeout: float | None = None
    session_timeout: float = 30.0
    max_response_bytes: int = 10_000_000
    metrics_log_path: str | None = None


def _env_float(name: str, default: float | None) -> float | None:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be a number, got {raw!r}") from None


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}") from None


def load_config() -> BridgeConfig:
    config = BridgeConfig(
        work_dir=os.getenv("TASKSYNC_WORK_DIR", "").strip() or None,
        poll_interval=_env_float("TASKSYNC_POLL_INTERVAL", DEFAULT_POLL_INTERVAL),
        default_timeout=_env_float("TASKSYNC_DEFAULT_TIMEOUT", None),
        session_timeout=_env_float("TASKSYNC_SESSION_TIMEOUT", 30.0),
        max_response_bytes=_env_int("TASKSYNC_MAX_RESPONSE_BYTES", 10_000_000),
        metrics_log_path=os.getenv("TASKSYNC_METRICS_LOG", "").strip() or None,
    )
    if config.poll_interval < 0:
        raise RuntimeError("TASKSYNC_POLL_INTERVAL must not be negative")
    logger.info(
        "Config loaded: work_dir=%s, poll_interval=%s, default_timeout=%s, session_timeout=%s, metrics_log=%s",
        config.work_dir or "<tmp>",
        config.poll_interval,
        config.default_timeout,
        config.session_timeout,
        config.metrics_log_path or "-",
    )
    return config


class BridgeContainer:
    def __init__(self, *, config: BridgeConfig, store: MarkerTokenStore, executor: AiohttpExecutor, bridge: SyncBridge):
        self.config = config
        self.store = store
        self.executor = executor
        self.bridge = bridge

    def close(self) -> None:
        self.executor.close()


def create_container(config: BridgeConfig) -> BridgeContainer:
    if config.metrics_log_path:
        metrics.configure(configure_metrics_logger(config.metrics_log_path))

    location = WorkingLocation(Path(config.work_dir) if config.work_dir else None)
    store = MarkerTokenStore(location)
    executor = AiohttpExecutor(
        session_timeout=config.session_timeout,
        max_response_bytes=config.max_response_bytes,
    )
    bridge = SyncBridge(
        executor,
        store,
        poll_interval=config.poll_interval,
        default_timeout=config.default_timeout,
    )
    return BridgeContainer(config=config, store=store, executor=executor, bridge=bridge)
