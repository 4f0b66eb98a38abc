import json
import os

import pytest

from exceptions import ConfigurationError
from main_config import DEFAULT_CONFIG, deep_merge, get_cache_config, get_lock_config, load_config


def test_defaults_when_file_missing(temp_dir):
    config = load_config(os.path.join(temp_dir, "missing.json"), environ={})
    assert config == DEFAULT_CONFIG
    assert config is not DEFAULT_CONFIG


def test_file_is_merged_over_defaults(temp_dir):
    path = os.path.join(temp_dir, "config.json")
    with open(path, "w") as f:
        json.dump({"cache": {"ttl_seconds": 60}, "locks": {"mode": "redis"}}, f)

    config = load_config(path, environ={})

    assert get_cache_config(config)["ttl_seconds"] == 60
    assert get_cache_config(config)["base_path"] == "cache"
    assert get_lock_config(config)["mode"] == "redis"
    assert DEFAULT_CONFIG["cache"]["ttl_seconds"] == 6 * 60 * 60


def test_environment_overrides(temp_dir):
    config = load_config(os.path.join(temp_dir, "missing.json"), environ={
        "REPORTS_CACHE_DIR": "/srv/cache",
        "REPORTS_CACHE_TTL": "120",
        "REPORTS_TENANTS_FILE": "/etc/tenants.json",
    })
    assert config["cache"]["base_path"] == "/srv/cache"
    assert config["cache"]["ttl_seconds"] == 120
    assert config["tenants_file"] == "/etc/tenants.json"


def test_invalid_environment_value(temp_dir):
    with pytest.raises(ConfigurationError):
        load_config(os.path.join(temp_dir, "missing.json"), environ={"REPORTS_CACHE_TTL": "soon"})


def test_invalid_json(temp_dir):
    path = os.path.join(temp_dir, "config.json")
    with open(path, "w") as f:
        f.write("{not json")
    with pytest.raises(ConfigurationError):
        load_config(path, environ={})


def test_deep_merge():
    assert deep_merge({"a": {"b": 1, "c": 2}}, {"a": {"c": 3}, "d": 4}) == {"a": {"b": 1, "c": 3}, "d": 4}
