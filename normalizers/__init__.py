from .base import DemoAllowList, is_valid_identifier, normalize_identifier

__all__ = ["DemoAllowList", "is_valid_identifier", "normalize_identifier"]
