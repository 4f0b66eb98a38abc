# exceptions.py

TECHNICAL_DIFFICULTIES = (
    "We are experiencing technical difficulties. Please close this browser window, "
    "wait a few minutes, and login again. If the problem persists, please contact support."
)
SHEETS_SERVICE_ISSUE = (
    "We are experiencing issues connecting to Google services. Please wait a few "
    "minutes and then retry. If problem persists, contact support."
)


class ReportsError(Exception):
    """Base class for every error raised by the reporting backend."""
    def __init__(self, message="Reporting operation failed"):
        self.message = message
        super().__init__(self.message)


# External sheet failures

class SheetFetchError(ReportsError):
    """Raised when the spreadsheet API cannot deliver rows."""
    retryable = False
    user_message = TECHNICAL_DIFFICULTIES

    def __init__(self, message="Failed to fetch data from Google Sheets", status_code=None):
        self.status_code = status_code
        super().__init__(message)


class ServiceUnavailable(SheetFetchError):
    """Raised on 5xx responses, timeouts and connection failures. Safe to retry later."""
    retryable = True
    user_message = SHEETS_SERVICE_ISSUE


class AuthError(SheetFetchError):
    """Raised when the API key is missing or rejected."""


class MalformedResponse(SheetFetchError):
    """Raised when the response is not JSON or has no 'values' array."""


# Cache failures

class CacheError(ReportsError):
    """Raised when there's an issue with cache operations."""
    def __init__(self, message="Cache operation failed"):
        super().__init__(message)


class CacheReadError(CacheError):
    """Raised when a cache entry exists but cannot be read or decoded."""


class CacheWriteError(CacheError):
    """Raised when a cache entry cannot be written."""


# Configuration, tenants and input

class ConfigurationError(ReportsError):
    """Raised when configuration files are missing required values or are malformed."""


class InvalidTenantError(ReportsError):
    """Raised when a tenant code is syntactically invalid."""


class TenantNotFoundError(ReportsError):
    """Raised when a tenant code is well formed but not configured."""


class ValidationError(ReportsError):
    """Raised when request input (dates, cohorts, modes) is invalid."""


class MissingDatasetError(ReportsError):
    """Raised when a dataset required for a computation is missing entirely."""


class RefreshInProgress(ReportsError):
    """Raised when the per-tenant refresh lock could not be acquired in time."""
    def __init__(self, message="A refresh is already in progress for this tenant"):
        super().__init__(message)
