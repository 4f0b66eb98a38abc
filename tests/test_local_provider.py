"""
Tests for the LocalStorageProvider implementation.
"""

import os
from pathlib import Path

import pytest

from storage_providers.factory import StorageProviderFactory
from storage_providers.local_provider import LocalStorageProvider


def test_provider_initialization(provider, temp_dir):
    """Test that the provider creates and resolves its base path."""
    assert isinstance(provider.base_path, Path)
    assert provider.base_path == Path(temp_dir, "cache").resolve()
    assert provider.base_path.is_dir()


def test_uninitialized_provider_raises():
    with pytest.raises(RuntimeError):
        LocalStorageProvider().read_file("x.json")


def test_write_and_read_file(provider):
    assert provider.write_file("tst/data.json", '{"a": 1}')
    assert provider.read_file("tst/data.json") == '{"a": 1}'
    assert provider.file_exists("tst/data.json")


def test_write_replaces_without_leaving_temp_files(provider):
    provider.write_file("tst/data.json", "first")
    provider.write_file("tst/data.json", "second")
    assert provider.read_file("tst/data.json") == "second"
    leftovers = [name for name in os.listdir(provider.base_path / "tst") if name.endswith(".tmp")]
    assert leftovers == []


def test_read_missing_file(provider):
    with pytest.raises(FileNotFoundError):
        provider.read_file("tst/missing.json")


def test_delete_file(provider):
    provider.write_file("tst/data.json", "x")
    assert provider.delete_file("tst/data.json")
    assert not provider.delete_file("tst/data.json")
    assert not provider.file_exists("tst/data.json")


def test_list_files(provider):
    provider.write_file("tst/a.json", "1")
    provider.write_file("tst/b.json", "2")
    provider.write_file("tst/c.txt", "3")
    assert provider.list_files("tst", "*.json") == ["tst/a.json", "tst/b.json"]
    assert provider.list_files("missing") == []


def test_size_and_mtime(provider):
    provider.write_file("tst/data.json", "12345")
    assert provider.get_file_size("tst/data.json") == 5
    assert provider.get_file_modified_time("tst/data.json") > 0
    with pytest.raises(FileNotFoundError):
        provider.get_file_size("tst/other.json")


def test_paths_cannot_escape_base(provider):
    with pytest.raises(ValueError):
        provider.write_file("../outside.json", "x")


def test_factory_creates_local_provider(temp_dir):
    provider = StorageProviderFactory.create_provider({"mode": "local", "base_path": os.path.join(temp_dir, "c")})
    assert isinstance(provider, LocalStorageProvider)
    assert provider.base_path.is_dir()


def test_factory_rejects_unknown_mode():
    with pytest.raises(ValueError):
        StorageProviderFactory.create_provider({"mode": "s3"})
