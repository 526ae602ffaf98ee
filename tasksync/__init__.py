from .domain import Request, RequestCancelled, ResponseMeta, TaskResult, Token, TokenIssueError
from .application import SyncBridge, bootstrap_bridge, load_config, run_synchronously, wait_for
from .infrastructure.http import AiohttpExecutor
from .infrastructure.markers import MarkerTokenStore, WorkingLocation

__all__ = [
    "Token",
    "Request",
    "ResponseMeta",
    "TaskResult",
    "RequestCancelled",
    "TokenIssueError",
    "SyncBridge",
    "bootstrap_bridge",
    "load_config",
    "run_synchronously",
    "wait_for",
    "AiohttpExecutor",
    "MarkerTokenStore",
    "WorkingLocation",
]
