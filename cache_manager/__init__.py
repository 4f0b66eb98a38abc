from .cache_operations import CacheManager

__all__ = ["CacheManager"]
