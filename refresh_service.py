"""
Refresh service.

RefreshCoordinator is the only writer of cache entries. A refresh cycle:

1. fetches the registrants and submissions sheets for the tenant,
2. trims every cell, applies the demo relabelling, stamps fetched_at and
   persists each raw dataset,
3. derives registrations / enrollments / certificates from the raw rows and
   persists them as bare arrays.

The outcome is reported as exactly one of success, warning or error:

- ServiceUnavailable for a sheet that has a cached copy -> warning, the
  cached copy is used for derivation and left unchanged.
- ServiceUnavailable with no cached copy, AuthError, MalformedResponse or an
  unreadable cache entry -> error, derived entries are not rewritten.
- A cache write failure -> warning, the cycle continues with in-memory data.

Exceptions from the sheets agent and the cache never leave this module; they
come out as a RefreshResult.
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from zoneinfo import ZoneInfo

from cache_manager.cache_operations import CacheManager
from cache_manager.config import DATA_KEY, DISPLAY_TIMESTAMP_KEY, FETCHED_AT_KEY
from common_types import DatasetKind, DerivedDataset, RefreshStatus
from data_processor import derive_certificates, derive_enrollments, derive_registrations
from demo_transform import transform_rows
from exceptions import (
    TECHNICAL_DIFFICULTIES, CacheError, CacheWriteError, ServiceUnavailable, SheetFetchError,
)
from metrics import CACHE_WRITE_FAILURES, REFRESH_COUNTER, REFRESH_DURATION, SHEET_FETCH_COUNTER
from refresh_locks import LocalRefreshLock
from sheet_columns import Record, decode_rows, encode_record

logger = logging.getLogger("refresh_service")

DEFAULT_TIMEZONE = "America/Los_Angeles"
DEFAULT_TTL_SECONDS = 6 * 60 * 60

# Raw dataset each derived dataset is computed from
DERIVED_SOURCES = {
    DerivedDataset.REGISTRATIONS: DatasetKind.SUBMISSIONS,
    DerivedDataset.ENROLLMENTS: DatasetKind.REGISTRANTS,
    DerivedDataset.CERTIFICATES: DatasetKind.REGISTRANTS,
}


@dataclass
class RefreshResult:
    """Caller-visible outcome of ensure_fresh / force_refresh."""
    status: RefreshStatus
    message: str = ""
    refreshed: bool = False
    counts: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status is not RefreshStatus.ERROR

    def to_dict(self) -> Dict[str, Any]:
        """Exactly one of 'success', 'warning' or 'error', plus counts when data was derived."""
        if self.status is RefreshStatus.ERROR:
            return {"error": self.message, "refreshed": False}
        if self.status is RefreshStatus.WARNING:
            body: Dict[str, Any] = {"warning": self.message}
        else:
            body = {"success": True}
        body["refreshed"] = self.refreshed
        body.update(self.counts)
        return body


def trim_row(row: List[Any]) -> List[str]:
    """Stringify and strip every cell."""
    return ["" if value is None else str(value).strip() for value in row]


def format_display_timestamp(moment: datetime, tz_name: str = DEFAULT_TIMEZONE) -> str:
    """'MM-DD-YY at h:MM AM' in the given timezone."""
    local = moment.astimezone(ZoneInfo(tz_name))
    hour = local.hour % 12 or 12
    meridiem = "AM" if local.hour < 12 else "PM"
    return f"{local:%m-%d-%y} at {hour}:{local:%M} {meridiem}"


class RefreshCoordinator:
    """
    Keeps a tenant's cache in step with its spreadsheets.

    Args:
        cache: Tenant-scoped cache store.
        client: Sheets agent exposing fetch(workbook_id, sheet_name, start_row, api_key, tenant=...).
        lock: Single-flight guard exposing hold(tenant_code) as a context manager.
        default_ttl: TTL used when neither the caller nor the tenant supplies one.
        tz_name: Timezone of the display timestamp.
    """

    def __init__(self, cache: CacheManager, client, lock=None, default_ttl: int = DEFAULT_TTL_SECONDS,
                 tz_name: str = DEFAULT_TIMEZONE):
        self.cache = cache
        self.client = client
        self.lock = lock if lock is not None else LocalRefreshLock(str(cache.provider.base_path))
        self.default_ttl = default_ttl
        self.tz_name = tz_name

    def ttl_for(self, tenant, ttl: Optional[int] = None) -> int:
        if ttl is not None:
            return ttl
        if tenant.cache_ttl is not None:
            return tenant.cache_ttl
        return self.default_ttl

    def is_fresh(self, tenant, ttl: Optional[int] = None) -> bool:
        """True if every raw dataset was fetched less than ttl seconds ago."""
        ttl = self.ttl_for(tenant, ttl)
        return all(self.cache.is_fresh(tenant, kind.cache_name, ttl) for kind in DatasetKind)

    def needs_refresh(self, tenant, ttl: Optional[int] = None) -> bool:
        return not self.is_fresh(tenant, ttl)

    def ensure_fresh(self, tenant, ttl: Optional[int] = None) -> RefreshResult:
        """
        Refresh the tenant's cache only if a raw dataset is stale or missing.

        Concurrent callers for the same tenant wait on the tenant lock; whoever
        gets it second re-checks freshness and returns without fetching.

        Raises:
            RefreshInProgress: If the tenant lock could not be acquired in time.
        """
        ttl = self.ttl_for(tenant, ttl)
        try:
            fresh = self.is_fresh(tenant, ttl)
        except CacheError as e:
            return self._freshness_error(tenant, e)
        if fresh:
            logger.debug("Cache is fresh, no refresh needed", extra={"tenant": tenant.code})
            return RefreshResult(RefreshStatus.SUCCESS, "Cache is fresh", refreshed=False)

        with self.lock.hold(tenant.code):
            try:
                fresh = self.is_fresh(tenant, ttl)
            except CacheError as e:
                return self._freshness_error(tenant, e)
            if fresh:
                logger.info("Cache refreshed by a concurrent request", extra={"tenant": tenant.code})
                return RefreshResult(RefreshStatus.SUCCESS, "Cache is fresh", refreshed=False)
            return self._run_cycle(tenant)

    def _freshness_error(self, tenant, error: CacheError) -> RefreshResult:
        logger.error(f"Cache failure while checking freshness: {error.message}", extra={"tenant": tenant.code})
        REFRESH_COUNTER.labels(tenant=tenant.code, status=RefreshStatus.ERROR.value).inc()
        return RefreshResult(RefreshStatus.ERROR, TECHNICAL_DIFFICULTIES)

    def force_refresh(self, tenant) -> RefreshResult:
        """
        Refresh the tenant's cache regardless of freshness.

        Raises:
            RefreshInProgress: If the tenant lock could not be acquired in time.
        """
        with self.lock.hold(tenant.code):
            return self._run_cycle(tenant)

    def _run_cycle(self, tenant) -> RefreshResult:
        started = time.monotonic()
        try:
            result = self._refresh_cycle(tenant)
        except CacheError as e:
            logger.error(f"Cache failure during refresh: {e.message}", extra={"tenant": tenant.code})
            result = RefreshResult(RefreshStatus.ERROR, TECHNICAL_DIFFICULTIES)
        REFRESH_DURATION.labels(tenant=tenant.code).observe(time.monotonic() - started)
        REFRESH_COUNTER.labels(tenant=tenant.code, status=result.status.value).inc()
        log = logger.error if result.status is RefreshStatus.ERROR else logger.info
        log(f"Refresh finished with {result.status.value}", extra={"tenant": tenant.code, **result.counts})
        return result

    def _refresh_cycle(self, tenant) -> RefreshResult:
        warnings: List[str] = []
        raw_rows: Dict[DatasetKind, List[List[str]]] = {}
        fetched_at = self.cache.clock()

        for kind in DatasetKind:
            coords = tenant.sheet_for(kind)
            try:
                rows = self.client.fetch(coords.workbook_id, coords.sheet_name, coords.start_row,
                                         tenant.api_key, tenant=tenant.code)
            except ServiceUnavailable as e:
                SHEET_FETCH_COUNTER.labels(tenant=tenant.code, dataset=kind.value, outcome="unavailable").inc()
                cached = self.load_raw_rows(tenant, kind)
                if cached is None:
                    logger.error(f"{kind.value} fetch failed and no cached copy exists: {e.message}",
                                 extra={"tenant": tenant.code})
                    return RefreshResult(RefreshStatus.ERROR, e.user_message)
                logger.warning(f"{kind.value} fetch failed, keeping cached copy: {e.message}",
                               extra={"tenant": tenant.code})
                warnings.append(f"Could not refresh {kind.value}; showing previously cached data.")
                raw_rows[kind] = cached
                continue
            except SheetFetchError as e:
                SHEET_FETCH_COUNTER.labels(tenant=tenant.code, dataset=kind.value, outcome="error").inc()
                logger.error(f"{kind.value} fetch failed: {e.message}", extra={"tenant": tenant.code})
                return RefreshResult(RefreshStatus.ERROR, e.user_message)

            SHEET_FETCH_COUNTER.labels(tenant=tenant.code, dataset=kind.value, outcome="ok").inc()
            rows = transform_rows([trim_row(row) for row in rows], kind, tenant)
            raw_rows[kind] = rows
            payload = {
                FETCHED_AT_KEY: fetched_at.astimezone(timezone.utc).isoformat(),
                DISPLAY_TIMESTAMP_KEY: format_display_timestamp(fetched_at, self.tz_name),
                DATA_KEY: rows,
            }
            if not self._persist(tenant, kind.cache_name, payload):
                warnings.append(f"Fetched {kind.value} could not be saved to the cache.")

        registrants = decode_rows(raw_rows[DatasetKind.REGISTRANTS], DatasetKind.REGISTRANTS)
        submissions = decode_rows(raw_rows[DatasetKind.SUBMISSIONS], DatasetKind.SUBMISSIONS)
        derived = {
            DerivedDataset.REGISTRATIONS: derive_registrations(submissions),
            DerivedDataset.ENROLLMENTS: derive_enrollments(registrants),
            DerivedDataset.CERTIFICATES: derive_certificates(registrants),
        }
        for dataset, records in derived.items():
            source = DERIVED_SOURCES[dataset]
            rows = [encode_record(record, source) for record in records]
            if not self._persist(tenant, dataset.cache_name, rows):
                warnings.append(f"Derived {dataset.value} could not be saved to the cache.")

        counts = {dataset.value: str(len(records)) for dataset, records in derived.items()}
        if warnings:
            return RefreshResult(RefreshStatus.WARNING, " ".join(warnings), refreshed=True, counts=counts)
        return RefreshResult(RefreshStatus.SUCCESS, "Data refreshed", refreshed=True, counts=counts)

    def _persist(self, tenant, name: str, payload: Any) -> bool:
        try:
            self.cache.write(tenant, name, payload)
        except CacheWriteError as e:
            CACHE_WRITE_FAILURES.labels(tenant=tenant.code).inc()
            logger.warning(f"Cache write failed, continuing with in-memory data: {e.message}",
                           extra={"tenant": tenant.code, "file": name})
            return False
        return True

    # Read side

    def load_raw_rows(self, tenant, kind: DatasetKind) -> Optional[List[List[str]]]:
        """Positional rows of a cached raw dataset with the demo relabelling applied; None if never cached."""
        payload = self.cache.read(tenant, kind.cache_name)
        if not isinstance(payload, dict) or not isinstance(payload.get(DATA_KEY), list):
            return None
        return transform_rows(payload[DATA_KEY], kind, tenant)

    def load_raw(self, tenant, kind: DatasetKind) -> Optional[List[Record]]:
        rows = self.load_raw_rows(tenant, kind)
        if rows is None:
            return None
        return decode_rows(rows, kind)

    def load_derived(self, tenant, dataset: DerivedDataset) -> Optional[List[Record]]:
        """Decoded records of a derived dataset; None if it has not been generated yet."""
        source = DERIVED_SOURCES[dataset]
        payload = self.cache.read(tenant, dataset.cache_name)
        if not isinstance(payload, list):
            return None
        return decode_rows(transform_rows(payload, source, tenant), source)

    def display_timestamp(self, tenant) -> Optional[str]:
        payload = self.cache.read(tenant, DatasetKind.REGISTRANTS.cache_name)
        if isinstance(payload, dict):
            return payload.get(DISPLAY_TIMESTAMP_KEY)
        return None

    def cache_status(self, tenant, ttl: Optional[int] = None) -> Dict[str, Any]:
        """Display timestamp, whether a refresh is due, and the derived dataset sizes."""
        status: Dict[str, Any] = {
            "tenant": tenant.code,
            "timestamp": self.display_timestamp(tenant),
            "needs_refresh": self.needs_refresh(tenant, ttl),
        }
        for dataset in DerivedDataset:
            records = self.load_derived(tenant, dataset)
            status[f"{dataset.value}_count"] = len(records) if records is not None else 0
        return status
