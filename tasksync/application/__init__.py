from .wait_loop import DEFAULT_POLL_INTERVAL, WaitOutcome, wait_for
from .bridge import SyncBridge, run_synchronously
from .container import BridgeConfig, BridgeContainer, create_container, load_config
from .bootstrap import bootstrap_bridge

__all__ = [
    "DEFAULT_POLL_INTERVAL",
    "WaitOutcome",
    "wait_for",
    "SyncBridge",
    "run_synchronously",
    "BridgeConfig",
    "BridgeContainer",
    "create_container",
    "load_config",
    "bootstrap_bridge",
]
