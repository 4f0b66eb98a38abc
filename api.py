import os
from datetime import datetime, timezone
from typing import Optional

import redis
from fastapi import Depends, FastAPI, HTTPException
from pydantic import BaseModel, validator

from exceptions import (
    InvalidTenantError, RefreshInProgress, ReportsError, TenantNotFoundError, ValidationError,
)
from logger_config import setup_logging  # Import centralized logging config
from main_config import load_config
from metrics import start_metrics_server
from refresh_locks import RedisRefreshLock
from reports_service import ReportParams
from services import Services, build_services

# Setup logging
loggers = setup_logging(debug=os.environ.get("REPORTS_DEBUG", "false").lower() == "true")
logger = loggers["api"]


class ReportQuery(BaseModel):
    start_date: str
    end_date: str
    mode: str = "date"
    cohort: Optional[str] = None
    enrollment_mode: str = "tou_completion"
    organization_data: bool = False
    groups_data: bool = False

    @validator('start_date', 'end_date', pre=True, always=True)
    def strip_dates(cls, v):
        return v.strip() if isinstance(v, str) else v

    @validator('cohort', pre=True, always=True)
    def empty_cohort(cls, v):
        if v == "":
            return None
        return v


# Initialize FastAPI app
app = FastAPI(
    title="Enterprise Reports API",
    description="Per-tenant cached spreadsheet data, refresh control and report views",
    version="1.0.0"
)

# Global instances
services: Optional[Services] = None


def initialize_services() -> bool:
    """Initialize API services.

    Returns:
        bool: True if initialization was successful, False otherwise.
    """
    global services

    # Skip initialization if already done
    if services is not None:
        logger.debug("Services already initialized, skipping initialization")
        return True

    try:
        logger.info("Loading configuration...")
        config = load_config()
        services = build_services(config)
        logger.info(f"API services successfully initialized for tenants: {services.registry.codes()}")
        return True
    except ReportsError as e:
        logger.error(f"Failed to initialize services: {e.message}", exc_info=True)
        return False
    except (OSError, ValueError) as e:
        logger.error(f"Critical error during initialization: {str(e)}", exc_info=True)
        return False


def get_services() -> Services:
    if services is None and not initialize_services():
        raise HTTPException(status_code=503, detail="Service not initialized")
    return services


def to_http_error(error: ReportsError) -> HTTPException:
    """Map the exception taxonomy onto HTTP status codes."""
    if isinstance(error, (ValidationError, InvalidTenantError)):
        return HTTPException(status_code=400, detail=error.message)
    if isinstance(error, TenantNotFoundError):
        return HTTPException(status_code=404, detail=error.message)
    if isinstance(error, RefreshInProgress):
        return HTTPException(status_code=409, detail=error.message)
    return HTTPException(status_code=500, detail=error.message)


@app.on_event("startup")
async def startup_event():
    """Initialize API services on startup."""
    start_metrics_server()
    initialize_services()


@app.get("/tenants/{tenant}/reports/{report}")
def get_report(tenant: str, report: str, query: ReportQuery = Depends(), svc: Services = Depends(get_services)):
    """
    Report view for a tenant: registrations, enrollees, certificates or summary.

    The tenant's cache is refreshed first if it is older than its TTL.
    """
    try:
        context = svc.registry.get(tenant)
        params = ReportParams.from_request(
            report, query.start_date, query.end_date,
            mode=query.mode,
            cohort=query.cohort,
            enrollment_mode=query.enrollment_mode,
            organization_data=query.organization_data,
            groups_data=query.groups_data,
        )
        return svc.reports.build_report(context, params).to_dict()
    except ReportsError as e:
        logger.warning(f"Report request failed: {e.message}", extra={"tenant": tenant, "report": report})
        raise to_http_error(e)


@app.post("/tenants/{tenant}/refresh")
def refresh(tenant: str, force: bool = True, svc: Services = Depends(get_services)):
    """
    Refresh a tenant's cache.

    Always answers 200 with exactly one of success / warning / error in the body.
    """
    try:
        context = svc.registry.get(tenant)
        if force:
            result = svc.coordinator.force_refresh(context)
        else:
            result = svc.coordinator.ensure_fresh(context)
    except ReportsError as e:
        raise to_http_error(e)
    return result.to_dict()


@app.get("/tenants/{tenant}/cache")
def cache_status(tenant: str, svc: Services = Depends(get_services)):
    """Cache directory, per-file metadata, display timestamp and derived counts."""
    try:
        context = svc.registry.get(tenant)
        status = svc.cache.status(context)
        status.update(svc.coordinator.cache_status(context))
    except ReportsError as e:
        raise to_http_error(e)
    return status


@app.post("/tenants/{tenant}/cache/clear")
def clear_cache(tenant: str, svc: Services = Depends(get_services)):
    """Delete every cache entry for a tenant; the next request refreshes from the sheets."""
    try:
        context = svc.registry.get(tenant)
        cleared = svc.cache.clear_all(context)
    except ReportsError as e:
        raise to_http_error(e)
    logger.info(f"Cleared {cleared} cache entries", extra={"tenant": tenant})
    return {"tenant": tenant, "status": "success", "cleared": cleared,
            "message": f"Cleared {cleared} cache entries"}


@app.get("/health")
def health_check(svc: Services = Depends(get_services)):
    """
    Health check endpoint that verifies the cache root is writable and, when
    the redis lock mode is configured, that Redis answers.
    """
    health_status = {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "components": {}
    }

    cache_root = str(svc.cache.provider.base_path)
    writable = os.path.isdir(cache_root) and os.access(cache_root, os.W_OK)
    health_status["components"]["cache"] = {"status": "up" if writable else "down", "path": cache_root}
    if not writable:
        health_status["status"] = "degraded"

    lock = svc.coordinator.lock
    if isinstance(lock, RedisRefreshLock):
        try:
            health_status["components"]["redis"] = {"status": "up" if lock.client.ping() else "down"}
        except redis.exceptions.RedisError as e:
            health_status["components"]["redis"] = {"status": "down", "error": str(e)}
            health_status["status"] = "degraded"

    health_status["components"]["tenants"] = {"count": len(svc.registry.codes())}
    return health_status


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=int(os.environ.get("PORT", 8000)))
