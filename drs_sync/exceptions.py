"""Exceptions raised by the DRS sync pipeline."""
from typing import Any, Dict, List, Optional


class DRSSyncError(Exception):
    """Base class for all pipeline errors."""


class ConfigurationError(DRSSyncError):
    """Required configuration is absent or malformed. Nothing was attempted."""

    def __init__(self, message: str, missing: Optional[List[str]] = None):
        super().__init__(message)
        self.missing = missing or []


class AuthenticationError(DRSSyncError):
    """Every login candidate was tried and none produced a session."""

    def __init__(self, message: str, attempted: Optional[List[str]] = None):
        super().__init__(message)
        self.attempted = attempted or []


class ExtractionEmpty(DRSSyncError):
    """A table or JSON search produced no records."""

    def __init__(self, message: str, diagnostics: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.diagnostics = diagnostics or {}


class UpstreamError(DRSSyncError):
    """A data source answered with a non-2xx status or an unusable body."""

    def __init__(self, message: str, diagnostics: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.diagnostics = diagnostics or {}


class StoreWriteError(DRSSyncError):
    """The record store rejected a write."""

    def __init__(self, message: str, status: int = 0, body: str = ''):
        super().__init__(message)
        self.status = status
        self.body = body


class ExportError(DRSSyncError):
    """No CSV download arrived and no inline CSV could be read."""
