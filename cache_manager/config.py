"""
Constants for the CacheManager package.

Import constants as needed:
    from cache_manager.config import DATA_KEY, FETCHED_AT_KEY
"""

LOCK_FILE_NAME = ".refresh.lock"  # per-tenant single-flight lock, never cleared with the cache

# Payload keys for raw dataset entries
FETCHED_AT_KEY = "fetched_at"  # ISO-8601 UTC, used for freshness
DISPLAY_TIMESTAMP_KEY = "global_timestamp"  # "MM-DD-YY at h:MM AM" in the tenant timezone
DATA_KEY = "data"
