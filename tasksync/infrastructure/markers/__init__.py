from .store import REMOVE_ATTEMPTS, MarkerTokenStore, WorkingLocation, default_store

__all__ = [
    "REMOVE_ATTEMPTS",
    "MarkerTokenStore",
    "WorkingLocation",
    "default_store",
]
