from .requests_loader import load_requests_from_yaml

__all__ = ["load_requests_from_yaml"]
