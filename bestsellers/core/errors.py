# bestsellers/core/errors.py
from typing import Any, Optional


class BestsellersError(Exception):
    """Base class for errors raised at the I/O boundaries of the service."""


class ValidationError(BestsellersError):
    """Malformed or missing request input. Raised before any cache or upstream I/O."""


class UnauthorizedError(BestsellersError):
    """Snapshot capability secret missing or mismatched."""


class UpstreamError(BestsellersError):
    """
    Transport failure, timeout, non-2xx status or GraphQL `errors` payload
    from the Shopify Admin API.
    """

    def __init__(self, message: str, *, status: Optional[int] = None, errors: Any = None):
        super().__init__(message)
        self.status = status
        self.errors = errors

    def __str__(self) -> str:
        base = super().__str__()
        return f"{base} (status={self.status})" if self.status is not None else base


class CacheError(BestsellersError):
    """Shared store unreachable or returned an unusable payload. Never leaves the cache layer."""
