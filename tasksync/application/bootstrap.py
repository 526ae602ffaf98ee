from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from .container import BridgeConfig, BridgeContainer, create_container


@contextmanager
def bootstrap_bridge(config: BridgeConfig) -> Iterator[BridgeContainer]:
    container = create_container(config)
    try:
        yield container
    finally:
        container.close()
