"""
Storage providers package.

This package provides a unified interface for cache file storage on the
local filesystem.
"""

from .base_provider import BaseStorageProvider
from .local_provider import LocalStorageProvider
from .factory import StorageProviderFactory

__all__ = [
    'BaseStorageProvider',
    'LocalStorageProvider',
    'StorageProviderFactory'
]
