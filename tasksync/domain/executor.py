from __future__ import annotations

from typing import Callable, Protocol, Union

from .models import Request, ResponseMeta

Destination = Union[str, Request]
Completion = Callable[[bytes | None, ResponseMeta | None, BaseException | None], object]


class TaskHandle(Protocol):
    def cancel(self) -> None: ...


class NetworkExecutor(Protocol):
    def start(self, destination: Destination, completion: Completion) -> TaskHandle: ...

    def close(self) -> None: ...
