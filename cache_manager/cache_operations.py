# cache_operations.py
"""
Tenant-scoped cache store.

Each tenant owns one directory under the storage root and every entry is a JSON
document addressed by a logical name:

    cache/
      csu/
        all-registrants-data.json   {"fetched_at": ..., "global_timestamp": ..., "data": [[...], ...]}
        all-submissions-data.json
        registrations.json          [[...], ...]
        enrollments.json
        certificates.json

Reads of a missing entry return None ("never cached"). An entry holding invalid
JSON is also reported as a miss and logged. Any other storage failure is raised
as CacheReadError / CacheWriteError so an empty dataset is never confused with
one that could not be loaded.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from common_types import ALL_CACHE_NAMES
from exceptions import CacheReadError, CacheWriteError
from input_validator import validate_tenant_code
from storage_providers.base_provider import BaseStorageProvider
from .config import FETCHED_AT_KEY

logger = logging.getLogger("CacheOperations")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_fetched_at(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 fetched_at stamp; naive values are taken as UTC."""
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class CacheManager:
    """
    Reads and writes named JSON entries inside one tenant's cache directory.

    Attributes:
        provider (BaseStorageProvider): Storage backend; paths are "<tenant>/<name>".
        clock (Callable[[], datetime]): Source of the current UTC time.
    """

    def __init__(self, provider: BaseStorageProvider, clock: Callable[[], datetime] = utc_now):
        self.provider = provider
        self.clock = clock

    @staticmethod
    def _tenant_code(tenant) -> str:
        code = getattr(tenant, "code", tenant)
        return validate_tenant_code(code)

    @staticmethod
    def _check_name(name: str) -> str:
        if not name or "/" in name or "\\" in name or name.startswith("."):
            raise CacheReadError(f"Invalid cache entry name: {name!r}")
        return name

    def _path(self, tenant, name: str) -> str:
        return f"{self._tenant_code(tenant)}/{self._check_name(name)}"

    def tenant_cache_dir(self, tenant) -> str:
        """Filesystem location of the tenant's cache directory."""
        code = self._tenant_code(tenant)
        if hasattr(self.provider, "get_full_path"):
            return self.provider.get_full_path(code)
        return code

    def read(self, tenant, name: str) -> Optional[Any]:
        """
        Load and deserialize one entry.

        Returns:
            The decoded payload, or None if the entry was never written or
            does not contain valid JSON.

        Raises:
            CacheReadError: If the entry exists but cannot be read.
        """
        path = self._path(tenant, name)
        try:
            if not self.provider.file_exists(path):
                return None
            content = self.provider.read_file(path)
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.error(f"Failed to read cache entry {path}: {str(e)}",
                         extra={"tenant": self._tenant_code(tenant), "file": name})
            raise CacheReadError(f"Failed to read cache entry {name}: {str(e)}")

        try:
            return json.loads(content)
        except json.JSONDecodeError as e:
            logger.warning(f"Invalid JSON in cache entry {path}, treating as missing: {str(e)}",
                           extra={"tenant": self._tenant_code(tenant), "file": name})
            return None

    def write(self, tenant, name: str, payload: Any) -> bool:
        """
        Serialize and atomically persist one entry.

        Raises:
            CacheWriteError: If the payload cannot be serialized or stored.
        """
        path = self._path(tenant, name)
        try:
            content = json.dumps(payload, indent=2)
        except (TypeError, ValueError) as e:
            raise CacheWriteError(f"Cannot serialize cache entry {name}: {str(e)}")
        try:
            self.provider.write_file(path, content)
        except OSError as e:
            logger.error(f"Failed to write cache entry {path}: {str(e)}",
                         extra={"tenant": self._tenant_code(tenant), "file": name})
            raise CacheWriteError(f"Failed to write cache entry {name}: {str(e)}")
        logger.debug(f"Wrote cache entry {path} ({len(content)} bytes)")
        return True

    def exists(self, tenant, name: str) -> bool:
        return self.provider.file_exists(self._path(tenant, name))

    def fetched_at(self, tenant, name: str) -> Optional[datetime]:
        """
        Logical fetch time of an entry.

        Raw entries carry an explicit fetched_at stamp. Entries without one
        (derived arrays, files from older deployments) fall back to the file
        modification time.
        """
        path = self._path(tenant, name)
        if not self.provider.file_exists(path):
            return None
        payload = self.read(tenant, name)
        if isinstance(payload, dict):
            stamp = parse_fetched_at(payload.get(FETCHED_AT_KEY))
            if stamp is not None:
                return stamp
        try:
            mtime = self.provider.get_file_modified_time(path)
        except FileNotFoundError:
            return None
        return datetime.fromtimestamp(mtime, timezone.utc)

    def is_fresh(self, tenant, name: str, ttl_seconds: int) -> bool:
        """True iff the entry exists and was fetched less than ttl_seconds ago."""
        fetched = self.fetched_at(tenant, name)
        if fetched is None:
            return False
        age = (self.clock() - fetched).total_seconds()
        return age < ttl_seconds

    def metadata(self, tenant, name: str) -> Optional[Dict[str, Any]]:
        """Return {exists, size, mtime} for an entry, or None if it does not exist."""
        path = self._path(tenant, name)
        if not self.provider.file_exists(path):
            return None
        try:
            size = self.provider.get_file_size(path)
            mtime = self.provider.get_file_modified_time(path)
        except FileNotFoundError:
            return None
        return {
            "exists": True,
            "size": size,
            "mtime": datetime.fromtimestamp(mtime, timezone.utc).isoformat(),
        }

    def list_entries(self, tenant) -> List[str]:
        code = self._tenant_code(tenant)
        return [path.split("/", 1)[1] for path in self.provider.list_files(code, "*.json")]

    def clear_all(self, tenant) -> int:
        """
        Delete every named entry for a tenant.

        Returns:
            int: Number of entries deleted.
        """
        code = self._tenant_code(tenant)
        deleted = 0
        for name in ALL_CACHE_NAMES:
            path = f"{code}/{name}"
            try:
                if self.provider.delete_file(path):
                    deleted += 1
            except OSError as e:
                logger.error(f"Failed to delete cache entry {path}: {str(e)}", extra={"tenant": code})
                raise CacheWriteError(f"Failed to delete cache entry {name}: {str(e)}")
        logger.info(f"Cleared {deleted} cache entries", extra={"tenant": code})
        return deleted

    def status(self, tenant) -> Dict[str, Any]:
        """Operational view of a tenant's cache: directory, existence and per-file metadata."""
        code = self._tenant_code(tenant)
        files = {name: self.metadata(code, name) for name in ALL_CACHE_NAMES}
        return {
            "tenant": code,
            "cache_dir": self.tenant_cache_dir(code),
            "exists": any(meta is not None for meta in files.values()),
            "files": {name: meta or {"exists": False} for name, meta in files.items()},
        }


__all__ = ["CacheManager", "parse_fetched_at", "utc_now"]
