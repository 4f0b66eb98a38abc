"""
Base storage provider interface.

This module defines the abstract base class for storage providers. The cache
layer talks to storage only through this interface, with paths relative to
the provider's base directory (e.g. "csu/all-registrants-data.json").
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
import logging

logger = logging.getLogger(__name__)


class BaseStorageProvider(ABC):
    """Interface for storage operations."""

    def __init__(self):
        """Initialize the storage provider."""
        self.logger = logging.getLogger(self.__class__.__name__)

    @abstractmethod
    def initialize(self, config: Dict[str, Any]):
        """Initialize with configuration dictionary."""
        pass

    @abstractmethod
    def read_file(self, path: str) -> str:
        """Read a text file.

        Args:
            path: Path relative to the base directory

        Returns:
            File contents

        Raises:
            FileNotFoundError: If the file does not exist.
            OSError: If the file exists but cannot be read.
        """
        pass

    @abstractmethod
    def write_file(self, path: str, content: str) -> bool:
        """
        Write a text file atomically.

        Readers see either the previous complete file or the new complete
        file, never a partial write.

        Args:
            path: Path relative to the base directory
            content: Text to write

        Returns:
            True if the write was successful.

        Raises:
            OSError: If the file cannot be written.
        """
        pass

    @abstractmethod
    def file_exists(self, path: str) -> bool:
        """Check if a file exists."""
        pass

    @abstractmethod
    def delete_file(self, path: str) -> bool:
        """Delete a file. Returns False if it did not exist."""
        pass

    @abstractmethod
    def list_files(self, directory: str = "", pattern: Optional[str] = None) -> List[str]:
        """List files in directory.

        Args:
            directory: Directory to list files from
            pattern: Optional glob pattern to filter files

        Returns:
            List of file paths relative to the base directory
        """
        pass

    @abstractmethod
    def get_file_size(self, path: str) -> int:
        """
        Get the size of a file in bytes.

        Raises:
            FileNotFoundError: If the file does not exist.
        """
        pass

    @abstractmethod
    def get_file_modified_time(self, path: str) -> float:
        """
        Get the last modified time of a file as a Unix timestamp.

        Raises:
            FileNotFoundError: If the file does not exist.
        """
        pass
