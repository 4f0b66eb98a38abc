"""
Local filesystem storage provider implementation.
"""
import os
import tempfile
import logging
from pathlib import Path
from typing import Optional, Dict, Any, List
from .base_provider import BaseStorageProvider

logger = logging.getLogger("LocalStorageProvider")


class LocalStorageProvider(BaseStorageProvider):
    """Storage provider that uses local filesystem."""

    def __init__(self):
        """Initialize local storage provider."""
        super().__init__()
        self.base_path: Optional[Path] = None

    def initialize(self, config: Dict[str, Any]):
        """Initialize with configuration dictionary.

        Args:
            config: Configuration dictionary
                Required keys:
                - base_path: Root directory for all cache files
        """
        if not isinstance(config, dict):
            raise ValueError("Configuration must be a dictionary")

        if 'base_path' not in config:
            raise ValueError("base_path is required in configuration")

        self.base_path = Path(config['base_path']).resolve()
        try:
            self.base_path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Error creating directory {self.base_path}: {str(e)}")
            raise

        logger.info(f"Initialized LocalStorageProvider with base_path: {self.base_path}")

    def _ensure_initialized(self):
        """Ensure provider is initialized before use."""
        if not self.base_path:
            raise RuntimeError("LocalStorageProvider not initialized - call initialize() first")

    def _get_full_path(self, path: str) -> Path:
        """Get the full filesystem path for a path relative to base_path.

        Raises:
            ValueError: If the path escapes the base directory.
        """
        self._ensure_initialized()
        normalized = str(path).replace('\\', '/').lstrip('/')
        full_path = (self.base_path / normalized).resolve()
        if full_path != self.base_path and self.base_path not in full_path.parents:
            raise ValueError(f"Path escapes storage root: {path}")
        return full_path

    def get_full_path(self, path: str) -> str:
        return str(self._get_full_path(path))

    def read_file(self, path: str) -> str:
        """Read content from a file."""
        full_path = self._get_full_path(path)
        if not full_path.exists():
            raise FileNotFoundError(f"File not found: {path}")
        try:
            return full_path.read_text(encoding='utf-8')
        except OSError as e:
            logger.error(f"Error reading file {path}: {str(e)}")
            raise

    def write_file(self, path: str, content: str) -> bool:
        """Write content to a temporary sibling file, then rename it into place."""
        full_path = self._get_full_path(path)
        full_path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=str(full_path.parent), prefix=f".{full_path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, full_path)
        except OSError as e:
            logger.error(f"Error writing file {path}: {str(e)}")
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
        logger.debug(f"Successfully wrote file: {full_path}")
        return True

    def file_exists(self, path: str) -> bool:
        return self._get_full_path(path).is_file()

    def delete_file(self, path: str) -> bool:
        """Delete a file."""
        full_path = self._get_full_path(path)
        if not full_path.exists():
            return False
        full_path.unlink()
        logger.debug(f"Successfully deleted file: {full_path}")
        return True

    def list_files(self, directory: str = "", pattern: Optional[str] = None) -> List[str]:
        """List files in directory."""
        full_path = self._get_full_path(directory) if directory else self.base_path
        if not full_path.exists():
            logger.debug(f"Directory does not exist: {full_path}")
            return []

        glob_pattern = pattern if pattern else '*'
        files = []
        for path in sorted(full_path.glob(glob_pattern)):
            if path.is_file():
                files.append(str(path.relative_to(self.base_path)).replace('\\', '/'))
        logger.debug(f"Found {len(files)} files matching pattern {glob_pattern} in {full_path}")
        return files

    def get_file_size(self, path: str) -> int:
        full_path = self._get_full_path(path)
        if not full_path.exists():
            raise FileNotFoundError(f"File not found: {path}")
        return full_path.stat().st_size

    def get_file_modified_time(self, path: str) -> float:
        full_path = self._get_full_path(path)
        if not full_path.exists():
            raise FileNotFoundError(f"File not found: {path}")
        return full_path.stat().st_mtime
