"""
Prometheus metrics for refresh cycles and sheet fetches.

The metrics server only starts when ENABLE_PROMETHEUS=true.
"""

import logging
import os
import threading

from prometheus_client import Counter, Histogram, start_http_server

logger = logging.getLogger("metrics")

REFRESH_COUNTER = Counter(
    'reports_refresh_total',
    'Total number of refresh cycles by outcome',
    ['tenant', 'status']
)
REFRESH_DURATION = Histogram(
    'reports_refresh_seconds',
    'Time spent in a refresh cycle',
    ['tenant']
)
SHEET_FETCH_COUNTER = Counter(
    'reports_sheet_fetch_total',
    'Total number of sheet fetches by outcome',
    ['tenant', 'dataset', 'outcome']
)
CACHE_WRITE_FAILURES = Counter(
    'reports_cache_write_failures_total',
    'Cache entries that could not be persisted',
    ['tenant']
)


def metrics_enabled() -> bool:
    return os.environ.get("ENABLE_PROMETHEUS", "false").lower() == "true"


def start_metrics_server():
    """Start the Prometheus HTTP endpoint on a daemon thread if enabled."""
    if not metrics_enabled():
        return False
    prometheus_port = int(os.environ.get("PROMETHEUS_PORT", 8001))
    threading.Thread(target=start_http_server, args=(prometheus_port,), daemon=True).start()
    logger.info(f"Started Prometheus metrics server on port {prometheus_port}")
    return True
