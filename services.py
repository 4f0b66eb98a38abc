"""
Service wiring.

build_services() turns the loaded configuration into the object graph every
entry point shares: storage provider -> cache store -> sheets agent + refresh
lock -> refresh coordinator -> reports service. The API and the cache CLI both
go through here, and tests pass their own registry, client or lock.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from agents.google_sheets_agent import GoogleSheetsAgent
from cache_manager.cache_operations import CacheManager
from main_config import get_cache_config, get_lock_config, get_redis_config, get_sheets_config
from refresh_locks import create_refresh_lock
from refresh_service import DEFAULT_TIMEZONE, DEFAULT_TTL_SECONDS, RefreshCoordinator
from reports_service import ReportsService
from storage_providers.factory import StorageProviderFactory
from tenants import TenantRegistry

logger = logging.getLogger("services")


@dataclass
class Services:
    """Everything a request handler needs, built once at startup."""
    config: Dict[str, Any]
    registry: TenantRegistry
    cache: CacheManager
    coordinator: RefreshCoordinator
    reports: ReportsService


def build_services(config: Dict[str, Any], registry: Optional[TenantRegistry] = None,
                   client=None, lock=None) -> Services:
    """Wire storage, cache, sheets agent, lock and services from configuration."""
    cache_config = get_cache_config(config)
    provider = StorageProviderFactory.create_provider(cache_config)
    cache = CacheManager(provider)
    if registry is None:
        registry = TenantRegistry.from_file(config["tenants_file"])
    if client is None:
        client = GoogleSheetsAgent.from_config(get_sheets_config(config))
    if lock is None:
        lock = create_refresh_lock(get_lock_config(config), str(provider.base_path), get_redis_config(config))
    coordinator = RefreshCoordinator(
        cache, client, lock,
        default_ttl=cache_config.get("ttl_seconds", DEFAULT_TTL_SECONDS),
        tz_name=config.get("timezone", DEFAULT_TIMEZONE),
    )
    logger.debug(f"Services built with cache root {provider.base_path}")
    return Services(config=config, registry=registry, cache=cache, coordinator=coordinator,
                    reports=ReportsService(coordinator))
