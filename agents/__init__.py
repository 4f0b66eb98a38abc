from .google_sheets_agent import GoogleSheetsAgent, build_range, redact_key

__all__ = [
    'GoogleSheetsAgent',
    'build_range',
    'redact_key',
]
