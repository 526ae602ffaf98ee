from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any, Iterator, Mapping


@dataclass(frozen=True)
class Token:
    value: str

    @classmethod
    def generate(cls) -> "Token":
        return cls(uuid.uuid4().hex)

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Request:
    url: str
    method: str = "GET"
    headers: Mapping[str, str] = field(default_factory=dict)
    body: bytes | None = None


@dataclass(frozen=True)
class ResponseMeta:
    url: str
    status: int
    reason: str | None = None
    headers: Mapping[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 400


@dataclass(frozen=True)
class TaskResult:
    data: bytes | None
    response: ResponseMeta | None
    error: BaseException | None

    def __iter__(self) -> Iterator[Any]:
        yield self.data
        yield self.response
        yield self.error

    @property
    def text(self) -> str | None:
        if self.data is None:
            return None
        return self.data.decode("utf-8", errors="replace")
