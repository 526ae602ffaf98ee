from .models import Request, ResponseMeta, TaskResult, Token
from .errors import RequestCancelled, ResponseTooLarge, TaskSyncError, TokenIssueError
from .executor import Completion, Destination, NetworkExecutor, TaskHandle

__all__ = [
    "Token",
    "Request",
    "ResponseMeta",
    "TaskResult",
    "TaskSyncError",
    "TokenIssueError",
    "RequestCancelled",
    "ResponseTooLarge",
    "Completion",
    "Destination",
    "NetworkExecutor",
    "TaskHandle",
]
