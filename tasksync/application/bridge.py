from __future__ import annotations

import logging
import time
from typing import Any, Callable, TypeVar

from ..domain import Completion, Destination, NetworkExecutor, Request, TaskHandle, TaskResult, Token
from ..infrastructure.markers import MarkerTokenStore, default_store
from ..infrastructure.metrics import MetricsClient, metrics
from .wait_loop import DEFAULT_POLL_INTERVAL, Probe, WaitOutcome, wait_for

logger = logging.getLogger(__name__)

T = TypeVar("T")


class _ResultSlot:
    __slots__ = ("value", "captured")

    def __init__(self, default: Any):
        self.value = default
        self.captured = False


def _deadline_probe(handle: TaskHandle, deadline: float) -> Probe:
    def probe() -> bool:
        if time.monotonic() > deadline:
            handle.cancel()
            return True
        return False

    return probe


class SyncBridge:
    """
    Runs a callback-completed request and blocks the caller until it finishes.

    Each call claims a token (a marker file in the store's working location),
    starts the request on the executor and polls until the completion handler
    removes the marker. With a timeout, the poll cancels the request once the
    deadline has passed and returns whatever has been captured by then.

    When a timeout fires while the request is completing, the cancellation and
    the real completion race for the result slot. Either may win.
    """

    def __init__(
        self,
        executor: NetworkExecutor,
        store: MarkerTokenStore | None = None,
        *,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        default_timeout: float | None = None,
        metrics_client: MetricsClient | None = None,
    ):
        self._executor = executor
        self._store = store or default_store()
        self._poll_interval = poll_interval
        self._default_timeout = default_timeout
        self._metrics = metrics_client or metrics

    @property
    def store(self) -> MarkerTokenStore:
        return self._store

    def run(
        self,
        destination: Destination | None,
        *,
        completion: Callable[..., Any] | None = None,
        timeout: float | None = None,
        default: Any = None,
    ) -> Any:
        if destination is None:
            return default
        if timeout is None:
            timeout = self._default_timeout

        url = destination.url if isinstance(destination, Request) else destination
        with self._metrics.span("bridge:run", extra={"url": url}) as fields:
            token = self._store.new_token()
            slot = _ResultSlot(default)
            try:
                handle = self._executor.start(destination, self._handler(token, slot, completion))
            except Exception:
                self._store.remove_marker(token)
                raise

            probe = None
            if timeout is not None:
                probe = _deadline_probe(handle, time.monotonic() + timeout)

            outcome = wait_for(self._store, token, probe, poll_interval=self._poll_interval)
            fields["timed_out"] = outcome is WaitOutcome.STOPPED
            fields["captured"] = slot.captured
            if outcome is WaitOutcome.STOPPED:
                logger.info("Request to %s cancelled after %.3fs timeout", url, timeout)
            return slot.value

    def fetch(self, destination: Destination | None, *, timeout: float | None = None) -> TaskResult | None:
        return self.run(destination, timeout=timeout)

    def fetch_value(
        self,
        destination: Destination | None,
        default: T,
        completion: Callable[[bytes | None, Any, BaseException | None], T],
        *,
        timeout: float | None = None,
    ) -> T:
        return self.run(destination, completion=completion, timeout=timeout, default=default)

    def _handler(self, token: Token, slot: _ResultSlot, completion: Callable[..., Any] | None) -> Completion:
        def on_complete(data, response, error) -> None:
            try:
                if completion is None:
                    slot.value = TaskResult(data, response, error)
                else:
                    slot.value = completion(data, response, error)
                slot.captured = True
            except Exception:
                logger.exception("Completion callback for token %s raised", token)
            finally:
                self._store.remove_marker(token)

        return on_complete


def run_synchronously(executor: NetworkExecutor, destination: Destination | None, **options: Any) -> Any:
    """One-off call through a bridge on the process-wide token store."""
    return SyncBridge(executor).run(destination, **options)
