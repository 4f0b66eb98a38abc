"""
Per-tenant single-flight guards for refresh cycles.

Concurrent requests that find a tenant's cache stale around the same moment
must collapse into one external fetch. The guard is keyed by tenant code:

- LocalRefreshLock: threading.Lock for callers in this process plus an
  exclusive flock on <cache>/<tenant>/.refresh.lock for other worker processes
  sharing the cache directory.
- RedisRefreshLock: redis lock "reports:refresh:<tenant>" for deployments
  whose workers do not share a filesystem lock.

Both raise RefreshInProgress when the lock cannot be acquired within the
configured wait.
"""

import fcntl
import logging
import os
import threading
import time
from contextlib import contextmanager
from typing import Any, Dict, Optional

import redis

from cache_manager.config import LOCK_FILE_NAME
from exceptions import ConfigurationError, RefreshInProgress
from input_validator import validate_tenant_code

logger = logging.getLogger("refresh_locks")

POLL_INTERVAL = 0.1


class LocalRefreshLock:
    """Thread and process level lock per tenant, backed by flock on a lock file."""

    def __init__(self, base_path: str, wait_seconds: float = 60):
        self.base_path = base_path
        self.wait_seconds = wait_seconds
        self._guard = threading.Lock()
        self._locks: Dict[str, threading.Lock] = {}

    def _thread_lock(self, tenant_code: str) -> threading.Lock:
        with self._guard:
            return self._locks.setdefault(tenant_code, threading.Lock())

    @contextmanager
    def hold(self, tenant_code: str):
        validate_tenant_code(tenant_code)
        thread_lock = self._thread_lock(tenant_code)
        if not thread_lock.acquire(timeout=self.wait_seconds):
            raise RefreshInProgress(f"Timed out waiting for refresh lock for {tenant_code}")
        try:
            lock_dir = os.path.join(self.base_path, tenant_code)
            os.makedirs(lock_dir, exist_ok=True)
            with open(os.path.join(lock_dir, LOCK_FILE_NAME), "a") as lock_file:
                deadline = time.monotonic() + self.wait_seconds
                while True:
                    try:
                        fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
                        break
                    except BlockingIOError:
                        if time.monotonic() >= deadline:
                            raise RefreshInProgress(f"Timed out waiting for refresh lock for {tenant_code}")
                        time.sleep(POLL_INTERVAL)
                logger.debug("Acquired refresh lock", extra={"tenant": tenant_code})
                try:
                    yield
                finally:
                    fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)
        finally:
            thread_lock.release()


class RedisRefreshLock:
    """Distributed lock per tenant using redis-py's Lock."""

    KEY_PREFIX = "reports:refresh:"

    def __init__(self, client: redis.Redis, timeout_seconds: float = 120, wait_seconds: float = 60):
        self.client = client
        self.timeout_seconds = timeout_seconds
        self.wait_seconds = wait_seconds

    @contextmanager
    def hold(self, tenant_code: str):
        validate_tenant_code(tenant_code)
        lock = self.client.lock(f"{self.KEY_PREFIX}{tenant_code}",
                                timeout=self.timeout_seconds,
                                blocking_timeout=self.wait_seconds)
        if not lock.acquire():
            raise RefreshInProgress(f"Timed out waiting for refresh lock for {tenant_code}")
        logger.debug("Acquired redis refresh lock", extra={"tenant": tenant_code})
        try:
            yield
        finally:
            try:
                lock.release()
            except redis.exceptions.LockError as e:
                # lock expired while the refresh was still running
                logger.warning(f"Refresh lock for {tenant_code} was lost: {str(e)}")


def create_refresh_lock(lock_config: Dict[str, Any], cache_base_path: str,
                        redis_config: Optional[Dict[str, Any]] = None):
    """Build the refresh lock configured under locks.mode ('local' or 'redis')."""
    mode = lock_config.get("mode", "local").lower()
    wait_seconds = lock_config.get("wait_seconds", 60)
    if mode == "local":
        return LocalRefreshLock(cache_base_path, wait_seconds=wait_seconds)
    if mode == "redis":
        redis_config = redis_config or {}
        client = redis.Redis(
            host=redis_config.get("host", "localhost"),
            port=int(redis_config.get("port", 6379)),
            db=int(redis_config.get("db", 0)),
            decode_responses=True
        )
        return RedisRefreshLock(client, timeout_seconds=lock_config.get("timeout_seconds", 120),
                                wait_seconds=wait_seconds)
    raise ConfigurationError(f"Invalid lock mode: {mode}")
