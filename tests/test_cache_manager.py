"""
Tests for the tenant-scoped cache store.
"""

import os
from unittest.mock import patch

import pytest

from exceptions import CacheReadError, CacheWriteError, InvalidTenantError


class TestCacheManager:
    def test_read_never_cached_returns_none(self, cache, tenant):
        assert cache.read(tenant, "all-registrants-data.json") is None

    def test_write_then_read(self, cache, tenant):
        cache.write(tenant, "registrations.json", [["a", "b"]])
        assert cache.read(tenant, "registrations.json") == [["a", "b"]]

    def test_empty_dataset_is_distinct_from_missing(self, cache, tenant):
        cache.write(tenant, "certificates.json", [])
        assert cache.read(tenant, "certificates.json") == []
        assert cache.read(tenant, "enrollments.json") is None

    def test_invalid_json_reads_as_miss(self, cache, provider, tenant):
        provider.write_file("tst/registrations.json", "{not json")
        assert cache.read(tenant, "registrations.json") is None

    def test_io_error_is_surfaced(self, cache, provider, tenant):
        cache.write(tenant, "registrations.json", [])
        with patch.object(provider, "read_file", side_effect=PermissionError("denied")):
            with pytest.raises(CacheReadError):
                cache.read(tenant, "registrations.json")

    def test_write_failure_raises(self, cache, provider, tenant):
        with patch.object(provider, "write_file", side_effect=OSError("disk full")):
            with pytest.raises(CacheWriteError):
                cache.write(tenant, "registrations.json", [])

    def test_freshness_uses_fetched_at(self, cache, clock, tenant):
        cache.write(tenant, "all-registrants-data.json",
                    {"fetched_at": clock().isoformat(), "global_timestamp": "x", "data": []})
        assert cache.is_fresh(tenant, "all-registrants-data.json", 60)
        clock.advance(61)
        assert not cache.is_fresh(tenant, "all-registrants-data.json", 60)

    def test_zero_ttl_is_never_fresh(self, cache, clock, tenant):
        cache.write(tenant, "all-registrants-data.json", {"fetched_at": clock().isoformat(), "data": []})
        assert not cache.is_fresh(tenant, "all-registrants-data.json", 0)

    def test_missing_entry_is_not_fresh(self, cache, tenant):
        assert not cache.is_fresh(tenant, "all-registrants-data.json", 3600)

    def test_metadata(self, cache, tenant):
        assert cache.metadata(tenant, "registrations.json") is None
        cache.write(tenant, "registrations.json", [["x"]])
        meta = cache.metadata(tenant, "registrations.json")
        assert meta["exists"] is True
        assert meta["size"] > 0
        assert "mtime" in meta

    def test_clear_all_counts_deleted_entries(self, cache, tenant):
        cache.write(tenant, "registrations.json", [])
        cache.write(tenant, "enrollments.json", [])
        assert cache.clear_all(tenant) == 2
        assert cache.read(tenant, "registrations.json") is None
        assert cache.clear_all(tenant) == 0

    def test_tenants_are_isolated(self, cache, tenant, other_tenant):
        cache.write(tenant, "registrations.json", [["mine"]])
        cache.write(other_tenant, "registrations.json", [["theirs"]])
        cache.clear_all(tenant)
        assert cache.read(other_tenant, "registrations.json") == [["theirs"]]
        assert cache.tenant_cache_dir(tenant) != cache.tenant_cache_dir(other_tenant)

    def test_status(self, cache, tenant):
        status = cache.status(tenant)
        assert status["tenant"] == "tst"
        assert status["exists"] is False
        cache.write(tenant, "registrations.json", [])
        status = cache.status(tenant)
        assert status["exists"] is True
        assert status["files"]["registrations.json"]["exists"] is True
        assert status["files"]["certificates.json"] == {"exists": False}
        assert status["cache_dir"].endswith(os.path.join("cache", "tst"))

    @pytest.mark.parametrize("code", ["", "AB", "../x", "toolong"])
    def test_rejects_bad_tenant_codes(self, cache, code):
        with pytest.raises(InvalidTenantError):
            cache.read(code, "registrations.json")

    def test_rejects_path_like_names(self, cache, tenant):
        with pytest.raises(CacheReadError):
            cache.read(tenant, "../other/registrations.json")
