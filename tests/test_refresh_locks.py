import threading
from unittest.mock import MagicMock

import pytest
import redis

from exceptions import ConfigurationError, InvalidTenantError, RefreshInProgress
from refresh_locks import LocalRefreshLock, RedisRefreshLock, create_refresh_lock


class TestLocalRefreshLock:
    def test_hold_creates_lock_file(self, temp_dir):
        lock = LocalRefreshLock(temp_dir, wait_seconds=1)
        with lock.hold("tst"):
            pass
        with lock.hold("tst"):
            pass

    def test_second_holder_times_out(self, temp_dir):
        lock = LocalRefreshLock(temp_dir, wait_seconds=0.2)
        acquired = threading.Event()
        release = threading.Event()

        def holder():
            with lock.hold("tst"):
                acquired.set()
                release.wait(5)

        thread = threading.Thread(target=holder)
        thread.start()
        try:
            assert acquired.wait(5)
            with pytest.raises(RefreshInProgress):
                with lock.hold("tst"):
                    pass
        finally:
            release.set()
            thread.join()

    def test_other_tenant_is_not_blocked(self, temp_dir):
        lock = LocalRefreshLock(temp_dir, wait_seconds=0.2)
        with lock.hold("tst"):
            with lock.hold("oth"):
                pass

    def test_rejects_invalid_tenant_code(self, temp_dir):
        lock = LocalRefreshLock(temp_dir)
        with pytest.raises(InvalidTenantError):
            with lock.hold("../x"):
                pass


class TestRedisRefreshLock:
    def test_acquire_and_release(self):
        client = MagicMock()
        client.lock.return_value.acquire.return_value = True
        lock = RedisRefreshLock(client, timeout_seconds=30, wait_seconds=2)

        with lock.hold("tst"):
            pass

        client.lock.assert_called_once_with("reports:refresh:tst", timeout=30, blocking_timeout=2)
        client.lock.return_value.release.assert_called_once()

    def test_timeout_raises(self):
        client = MagicMock()
        client.lock.return_value.acquire.return_value = False
        lock = RedisRefreshLock(client)
        with pytest.raises(RefreshInProgress):
            with lock.hold("tst"):
                pass

    def test_lost_lock_is_logged(self, caplog):
        client = MagicMock()
        client.lock.return_value.acquire.return_value = True
        client.lock.return_value.release.side_effect = redis.exceptions.LockError("expired")
        lock = RedisRefreshLock(client)
        with lock.hold("tst"):
            pass
        assert "was lost" in caplog.text


def test_create_refresh_lock(temp_dir):
    assert isinstance(create_refresh_lock({"mode": "local"}, temp_dir), LocalRefreshLock)
    assert isinstance(create_refresh_lock({"mode": "redis"}, temp_dir, {"host": "localhost"}), RedisRefreshLock)
    with pytest.raises(ConfigurationError):
        create_refresh_lock({"mode": "zookeeper"}, temp_dir)
