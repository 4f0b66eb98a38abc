"""
Storage provider factory module.

This module provides a factory class to create storage provider instances
based on the cache section of the configuration.
"""

import logging
import os
from pathlib import Path
from typing import Dict, Any
from storage_providers.base_provider import BaseStorageProvider
from storage_providers.local_provider import LocalStorageProvider

logger = logging.getLogger(__name__)


class StorageProviderFactory:
    """Factory class for creating storage provider instances."""

    @staticmethod
    def create_provider(config: Dict[str, Any]) -> BaseStorageProvider:
        """
        Create and return appropriate storage provider based on configuration.

        Args:
            config (Dict[str, Any]): Cache configuration dictionary containing:
                - mode: Provider type (only 'local' is supported)
                - base_path: Cache root, relative paths resolve against the working directory

        Returns:
            BaseStorageProvider: Configured storage provider instance

        Raises:
            ValueError: If provider type is invalid
        """
        if not isinstance(config, dict):
            raise ValueError(f"Config must be a dictionary, got {type(config)}")

        provider_type = config.get('mode', 'local').lower()
        logger.info(f"Creating {provider_type} storage provider")

        if provider_type == 'local':
            return StorageProviderFactory._create_local_provider(config)
        raise ValueError(f"Invalid storage provider type: {provider_type}")

    @staticmethod
    def _create_local_provider(config: Dict[str, Any]) -> LocalStorageProvider:
        """Create and configure a local storage provider."""
        base_path = Path(config.get('base_path', 'cache'))
        if not base_path.is_absolute():
            base_path = Path(os.getcwd()) / base_path

        provider = LocalStorageProvider()
        provider.initialize({'base_path': str(base_path)})
        return provider
