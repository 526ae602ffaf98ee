from __future__ import annotations

import logging
import os
import tempfile
import threading
import uuid
from pathlib import Path
from typing import Iterator

from ...domain import Token, TokenIssueError

logger = logging.getLogger(__name__)

REMOVE_ATTEMPTS = 10


class WorkingLocation:
    """
    Directory that holds the markers of one process.

    The directory name is a fresh UUID, regenerated until it does not clash with
    anything already present under ``base_dir``. It is created on first use and
    never removed. When creation fails the system temp directory is handed out
    instead, even if ``base_dir`` points elsewhere, and creation is retried on
    the next call.
    """

    def __init__(self, base_dir: Path | None = None):
        self._base_dir = Path(base_dir) if base_dir else None
        self._path: Path | None = None
        self._lock = threading.Lock()

    @property
    def base_dir(self) -> Path:
        return self._base_dir or Path(tempfile.gettempdir())

    def path(self) -> Path:
        if self._path is not None:
            return self._path
        with self._lock:
            if self._path is not None:
                return self._path
            return self._create()

    def _create(self) -> Path:
        base = self.base_dir
        candidate = base / uuid.uuid4().hex
        while candidate.exists():
            candidate = base / uuid.uuid4().hex
        try:
            candidate.mkdir(parents=True)
        except OSError:
            fallback = Path(tempfile.gettempdir())
            logger.warning(
                "Could not create working location '%s', falling back to '%s'",
                candidate,
                fallback,
                exc_info=True,
            )
            return fallback
        logger.debug("Working location created at %s", candidate)
        self._path = candidate
        return candidate


class MarkerTokenStore:
    def __init__(self, location: WorkingLocation | None = None, *, remove_attempts: int = REMOVE_ATTEMPTS):
        self._location = location or WorkingLocation()
        self._remove_attempts = remove_attempts

    def working_location(self) -> Path:
        return self._location.path()

    def new_token(self) -> Token:
        while True:
            token = Token.generate()
            if self.has_marker(token):
                continue
            path = self._marker_path(token)
            try:
                fd = os.open(path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o600)
            except FileExistsError:
                logger.debug("Token %s was claimed concurrently, regenerating", token)
                continue
            except OSError as exc:
                raise TokenIssueError(f"cannot create marker {path}: {exc}") from exc
            os.close(fd)
            logger.debug("Issued token %s", token)
            return token

    def has_marker(self, token: Token) -> bool:
        return self._marker_path(token).exists()

    def remove_marker(self, token: Token) -> None:
        path = self._marker_path(token)
        attempts = self._remove_attempts
        while path.exists() and attempts > 0:
            try:
                path.unlink()
            except FileNotFoundError:
                break
            except OSError:
                logger.debug("Failed to remove marker %s", path, exc_info=True)
            attempts -= 1
        if attempts == 0 and path.exists():
            logger.warning("Giving up on removing marker %s after %s attempts", path, self._remove_attempts)

    def live_tokens(self) -> Iterator[Token]:
        root = self.working_location()
        for entry in root.iterdir():
            name = entry.name
            if len(name) == 32 and entry.is_file() and _is_hex(name):
                yield Token(name)

    def _marker_path(self, token: Token) -> Path:
        return self.working_location() / token.value


def _is_hex(value: str) -> bool:
    try:
        int(value, 16)
    except ValueError:
        return False
    return True


_default_store: MarkerTokenStore | None = None
_default_store_lock = threading.Lock()


def default_store() -> MarkerTokenStore:
    global _default_store
    if _default_store is not None:
        return _default_store
    with _default_store_lock:
        if _default_store is None:
            _default_store = MarkerTokenStore()
        return _default_store
