import asyncio
import tempfile
import time
import unittest
from pathlib import Path

import aiohttp
from aiohttp import web
from aiohttp.test_utils import TestServer

from tasksync.application.bridge import SyncBridge
from tasksync.domain import Request, RequestCancelled, ResponseTooLarge
from tasksync.infrastructure.http import AiohttpExecutor
from tasksync.infrastructure.markers import MarkerTokenStore, WorkingLocation


class AiohttpExecutorTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.release = asyncio.Event()

        async def ok(request):
            return web.Response(text="OK")

        async def stall(request):
            await self.release.wait()
            return web.Response(text="too late")

        async def echo(request):
            body = await request.read()
            return web.Response(body=body, headers={"X-Method": request.method})

        async def big(request):
            return web.Response(body=b"x" * 4096)

        async def missing(request):
            return web.Response(status=404, text="nope")

        app = web.Application()
        app.router.add_get("/ok", ok)
        app.router.add_get("/stall", stall)
        app.router.add_route("*", "/echo", echo)
        app.router.add_get("/big", big)
        app.router.add_get("/missing", missing)

        self.server = TestServer(app)
        await self.server.start_server()
        self.addAsyncCleanup(self.server.close)
        # cleanups run in reverse, so stalled handlers are released before the server stops
        self.addCleanup(self.release.set)

        self.tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmpdir.cleanup)
        self.store = MarkerTokenStore(WorkingLocation(Path(self.tmpdir.name)))
        self.executor = AiohttpExecutor(max_response_bytes=1024)
        self.addCleanup(self.executor.close)
        self.bridge = SyncBridge(self.executor, self.store, poll_interval=0.005)

    def url(self, path: str) -> str:
        return str(self.server.make_url(path))

    async def test_fetch_returns_payload_and_metadata(self):
        data, response, error = await asyncio.to_thread(self.bridge.fetch, self.url("/ok"))

        self.assertEqual(data, b"OK")
        self.assertEqual(response.status, 200)
        self.assertTrue(response.ok)
        self.assertIsNone(error)
        self.assertEqual(list(self.store.live_tokens()), [])

    async def test_http_error_status_is_not_an_error(self):
        result = await asyncio.to_thread(self.bridge.fetch, self.url("/missing"))

        self.assertEqual(result.response.status, 404)
        self.assertFalse(result.response.ok)
        self.assertEqual(result.text, "nope")
        self.assertIsNone(result.error)

    async def test_prebuilt_request_sends_method_and_body(self):
        request = Request(url=self.url("/echo"), method="PUT", body=b"payload")

        result = await asyncio.to_thread(self.bridge.fetch, request)

        self.assertEqual(result.data, b"payload")
        self.assertEqual(result.response.headers["X-Method"], "PUT")

    async def test_stalled_request_times_out(self):
        start = time.monotonic()
        result = await asyncio.to_thread(self.bridge.fetch, self.url("/stall"), timeout=1)
        elapsed = time.monotonic() - start

        self.assertGreaterEqual(elapsed, 1.0)
        self.assertLess(elapsed, 3.0)
        if result is not None:
            self.assertIsInstance(result.error, RequestCancelled)
        self.assertEqual(list(self.store.live_tokens()), [])

    async def test_oversized_response_is_reported(self):
        result = await asyncio.to_thread(self.bridge.fetch, self.url("/big"))

        self.assertIsNone(result.data)
        self.assertIsInstance(result.error, ResponseTooLarge)
        self.assertEqual(result.response.status, 200)

    async def test_connection_failure_passes_through(self):
        result = await asyncio.to_thread(self.bridge.fetch, "http://127.0.0.1:1/")

        self.assertIsNone(result.data)
        self.assertIsInstance(result.error, aiohttp.ClientError)

    async def test_completion_runs_exactly_once_on_cancel(self):
        calls = []
        done = asyncio.Event()
        loop = asyncio.get_running_loop()

        def completion(data, response, error):
            calls.append(error)
            loop.call_soon_threadsafe(done.set)

        handle = self.executor.start(self.url("/stall"), completion)
        await asyncio.sleep(0.1)
        handle.cancel()
        await asyncio.wait_for(done.wait(), 2)
        await asyncio.sleep(0.1)

        self.assertEqual(len(calls), 1)
        self.assertIsInstance(calls[0], RequestCancelled)

    async def test_close_is_idempotent(self):
        await asyncio.to_thread(self.bridge.fetch, self.url("/ok"))

        await asyncio.to_thread(self.executor.close)
        await asyncio.to_thread(self.executor.close)

        result = await asyncio.to_thread(self.bridge.fetch, self.url("/ok"))
        self.assertEqual(result.data, b"OK")
