from __future__ import annotations

import asyncio
import logging
import threading
from concurrent.futures import Future

import aiohttp

from ...domain import Completion, Destination, Request, RequestCancelled, ResponseMeta, ResponseTooLarge

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


class AiohttpTask:
    """Handle for one in-flight request; delivers its completion exactly once."""

    def __init__(self, request: Request, completion: Completion, loop: asyncio.AbstractEventLoop):
        self.request = request
        self._completion = completion
        self._loop = loop
        self._delivered = False
        self._future: Future | None = None

    def attach(self, future: Future) -> None:
        self._future = future
        future.add_done_callback(self._on_done)

    def cancel(self) -> None:
        if self._future is not None:
            self._future.cancel()

    def deliver(self, data: bytes | None, meta: ResponseMeta | None, error: BaseException | None) -> None:
        # only called on the executor loop thread
        if self._delivered:
            return
        self._delivered = True
        try:
            self._completion(data, meta, error)
        except Exception:
            logger.exception("Completion handler failed for %s %s", self.request.method, self.request.url)

    def _on_done(self, future: Future) -> None:
        if not future.cancelled():
            return
        if self._loop.is_closed():
            return
        error = RequestCancelled(f"{self.request.method} {self.request.url} was cancelled")
        try:
            self._loop.call_soon_threadsafe(self.deliver, None, None, error)
        except RuntimeError:
            logger.debug("Executor loop stopped before cancellation of %s was delivered", self.request.url)


class AiohttpExecutor:
    def __init__(
        self,
        *,
        session_timeout: float = 30,
        max_response_bytes: int = 10_000_000,
        headers: dict[str, str] | None = None,
    ):
        self.max_response_bytes = max_response_bytes
        self._session_timeout = session_timeout
        self._headers = dict(headers or {})
        self._session: aiohttp.ClientSession | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()

    def start(self, destination: Destination, completion: Completion) -> AiohttpTask:
        request = destination if isinstance(destination, Request) else Request(url=destination)
        loop = self._ensure_loop()
        task = AiohttpTask(request, completion, loop)
        future = asyncio.run_coroutine_threadsafe(self._perform(task), loop)
        task.attach(future)
        return task

    async def _perform(self, task: AiohttpTask) -> None:
        request = task.request
        meta: ResponseMeta | None = None
        try:
            session = self._get_session()
            async with session.request(
                request.method,
                request.url,
                headers=dict(request.headers) or None,
                data=request.body,
            ) as resp:
                meta = ResponseMeta(
                    url=str(resp.url),
                    status=resp.status,
                    reason=resp.reason,
                    headers=dict(resp.headers),
                )
                buffer = bytearray()
                async for chunk in resp.content.iter_chunked(CHUNK_SIZE):
                    buffer.extend(chunk)
                    if len(buffer) > self.max_response_bytes:
                        raise ResponseTooLarge(request.url, self.max_response_bytes)
        except asyncio.CancelledError:
            task.deliver(None, None, RequestCancelled(f"{request.method} {request.url} was cancelled"))
            raise
        except Exception as exc:
            logger.debug("Request %s %s failed: %r", request.method, request.url, exc)
            task.deliver(None, meta, exc)
            return
        task.deliver(bytes(buffer), meta, None)

    def _get_session(self) -> aiohttp.ClientSession:
        if not self._session or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self._session_timeout)
            self._session = aiohttp.ClientSession(timeout=timeout, headers=self._headers)
        return self._session

    def _ensure_loop(self) -> asyncio.AbstractEventLoop:
        with self._lock:
            if self._loop is None or self._loop.is_closed():
                loop = asyncio.new_event_loop()
                thread = threading.Thread(
                    target=self._run_loop,
                    args=(loop,),
                    name="tasksync-http",
                    daemon=True,
                )
                thread.start()
                self._loop = loop
                self._thread = thread
            return self._loop

    @staticmethod
    def _run_loop(loop: asyncio.AbstractEventLoop) -> None:
        asyncio.set_event_loop(loop)
        loop.run_forever()

    async def _close_session(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None

    def close(self, timeout: float = 5.0) -> None:
        with self._lock:
            loop, thread = self._loop, self._thread
            self._loop = None
            self._thread = None
        if loop is None or loop.is_closed():
            return
        try:
            asyncio.run_coroutine_threadsafe(self._close_session(), loop).result(timeout)
        except Exception:
            logger.warning("Failed to close HTTP session cleanly", exc_info=True)
        loop.call_soon_threadsafe(loop.stop)
        if thread is not None:
            thread.join(timeout)
        if not loop.is_running():
            loop.close()
