"""
Exception types for the refresh pipeline.
"""
from typing import Optional


class RefreshError(Exception):
    """Raised when a cache class refresher cannot complete."""
    pass


class ConfigurationError(RefreshError):
    """Raised when an upstream API credential is not configured."""
    pass


class UpstreamError(RefreshError):
    """Raised on a non-2xx response or network failure from an upstream API."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class UpstreamRateLimitError(UpstreamError):
    """Raised when an upstream API answers 429."""
    pass


class CacheReadError(Exception):
    """Raised when cache metadata cannot be read at all."""
    pass


class QueueFullError(Exception):
    """Raised when the request queue has no room for another task."""
    pass
