from __future__ import annotations

import enum
import logging
import time
from typing import Callable, Protocol

from ..domain import Token

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 0.005

Probe = Callable[[], bool]


class MarkerStore(Protocol):
    def has_marker(self, token: Token) -> bool: ...

    def remove_marker(self, token: Token) -> None: ...


class WaitOutcome(str, enum.Enum):
    COMPLETED = "completed"
    STOPPED = "stopped"


def wait_for(
    store: MarkerStore,
    token: Token,
    probe: Probe | None = None,
    *,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
) -> WaitOutcome:
    """
    Block until the marker of ``token`` disappears.

    ``probe`` is called once per iteration while the marker is still present;
    a truthy return ends the wait early. Whatever ends the wait, the marker is
    removed afterwards so a forced stop never leaves the token live.
    A ``poll_interval`` of 0 spins without sleeping.
    """
    outcome = WaitOutcome.COMPLETED
    try:
        if not store.has_marker(token):
            return outcome
        while True:
            if not store.has_marker(token):
                break
            if probe is not None and probe():
                outcome = WaitOutcome.STOPPED
                break
            if poll_interval > 0:
                time.sleep(poll_interval)
    finally:
        store.remove_marker(token)
    logger.debug("Wait on %s ended: %s", token, outcome.value)
    return outcome
