"""Client-facing market errors.

Each error carries a short message safe to show to the caller and the HTTP
status the API layer answers with.
"""

from __future__ import annotations


class MarketError(Exception):
    """Base class for rejected market operations."""

    status_code = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(MarketError):
    """A listing, catalog item, group, buy order or contractor does not exist."""

    status_code = 404


class InvalidStateError(MarketError):
    """The target exists but is in the wrong state for the operation."""

    status_code = 409


class MarketValidationError(MarketError):
    """Out-of-range values, malformed input or grouping ownership mismatches."""

    status_code = 400


class PermissionDeniedError(MarketError):
    """Capability checks and self-dealing attempts."""

    status_code = 403


__all__ = [
    "InvalidStateError",
    "MarketError",
    "MarketValidationError",
    "NotFoundError",
    "PermissionDeniedError",
]
