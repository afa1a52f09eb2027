"""Exception hierarchy shared across quartermaster components."""

from __future__ import annotations


class QuartermasterError(RuntimeError):
    """Base class for all quartermaster failures."""


class NotFoundError(QuartermasterError, LookupError):
    """Raised when a doctrine name is not present in the store."""

    def __init__(self, name: str) -> None:
        super().__init__(f"doctrine not found: {name}")
        self.name = name


class ValidationError(QuartermasterError, ValueError):
    """Raised for user input that cannot be acted upon."""


class MigrationExpiredError(ValidationError):
    """Raised when a migration is confirmed after its validity window."""


class StoreError(QuartermasterError):
    """Raised when the persistent store cannot complete an operation."""


class ListingSourceError(QuartermasterError):
    """Raised when listings cannot be retrieved from the marketplace API."""


class ReconciliationError(QuartermasterError):
    """Raised when a stock report cannot be produced."""


class TransportError(QuartermasterError):
    """Raised when an outbound chat message cannot be delivered."""


__all__ = [
    "QuartermasterError",
    "NotFoundError",
    "ValidationError",
    "MigrationExpiredError",
    "StoreError",
    "ListingSourceError",
    "ReconciliationError",
    "TransportError",
]
