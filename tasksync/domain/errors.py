from __future__ import annotations


class TaskSyncError(Exception):
    """Base class for errors raised by tasksync."""


class TokenIssueError(TaskSyncError):
    """A marker could not be created, so no token can be handed out."""


class RequestCancelled(TaskSyncError):
    """Delivered to a completion handler when its request was cancelled."""


class ResponseTooLarge(TaskSyncError):
    def __init__(self, url: str, limit: int):
        super().__init__(f"response from {url} exceeds {limit} bytes")
        self.url = url
        self.limit = limit
