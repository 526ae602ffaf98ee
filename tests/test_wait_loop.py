import tempfile
import threading
import time
import unittest
from pathlib import Path

from tasksync.application.wait_loop import WaitOutcome, wait_for
from tasksync.domain import Token
from tasksync.infrastructure.markers import MarkerTokenStore, WorkingLocation


class FakeStore:
    def __init__(self, *live: Token):
        self.live = set(live)
        self.checks = 0
        self.removed: list[Token] = []

    def has_marker(self, token: Token) -> bool:
        self.checks += 1
        return token in self.live

    def remove_marker(self, token: Token) -> None:
        self.removed.append(token)
        self.live.discard(token)


class WaitForTests(unittest.TestCase):
    def test_returns_immediately_when_marker_absent(self):
        store = FakeStore()
        token = Token("a" * 32)
        probe_calls = []

        outcome = wait_for(store, token, lambda: probe_calls.append(1) or False, poll_interval=1.0)

        self.assertEqual(outcome, WaitOutcome.COMPLETED)
        self.assertEqual(store.checks, 1)
        self.assertEqual(probe_calls, [])
        self.assertEqual(store.removed, [token])

    def test_probe_forces_stop_and_marker_is_removed(self):
        token = Token("b" * 32)
        store = FakeStore(token)
        calls = 0

        def probe():
            nonlocal calls
            calls += 1
            return calls >= 3

        outcome = wait_for(store, token, probe, poll_interval=0)

        self.assertEqual(outcome, WaitOutcome.STOPPED)
        self.assertEqual(calls, 3)
        self.assertNotIn(token, store.live)
        self.assertEqual(store.removed, [token])

    def test_zero_poll_interval_spins_until_probe_stops(self):
        token = Token("c" * 32)
        store = FakeStore(token)
        calls = 0

        def probe():
            nonlocal calls
            calls += 1
            return calls == 1000

        outcome = wait_for(store, token, probe, poll_interval=0)

        self.assertEqual(outcome, WaitOutcome.STOPPED)
        self.assertGreaterEqual(store.checks, 1000)


class WaitForMarkerFilesTests(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.store = MarkerTokenStore(WorkingLocation(Path(self.tmpdir.name)))

    def tearDown(self):
        self.tmpdir.cleanup()

    def test_unblocks_when_marker_removed_from_another_thread(self):
        token = self.store.new_token()
        timer = threading.Timer(0.1, self.store.remove_marker, args=(token,))
        timer.start()
        self.addCleanup(timer.cancel)

        start = time.monotonic()
        outcome = wait_for(self.store, token, poll_interval=0.001)
        elapsed = time.monotonic() - start

        self.assertEqual(outcome, WaitOutcome.COMPLETED)
        self.assertGreaterEqual(elapsed, 0.09)
        self.assertFalse(self.store.has_marker(token))

    def test_waiting_on_finished_token_never_blocks(self):
        token = self.store.new_token()
        self.store.remove_marker(token)

        start = time.monotonic()
        wait_for(self.store, token, poll_interval=5.0)
        wait_for(self.store, token, poll_interval=5.0)

        self.assertLess(time.monotonic() - start, 1.0)
