from .executor import AiohttpExecutor, AiohttpTask

__all__ = ["AiohttpExecutor", "AiohttpTask"]
