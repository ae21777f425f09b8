"""Custom exceptions for the HermitHome backend.

Every failure the request handlers and the fanout path can observe maps to
one of these, and each maps to exactly one outcome: a 503, a 400, a 500, or
a log line.
"""


class HermitError(Exception):
    """Base exception for all application errors."""


class StoreError(HermitError):
    """Base exception for storage-related errors."""


class StoreUnavailable(StoreError):
    """Raised when the storage connection is down.

    Transient. Handlers answer 503 and the reconnect routine takes over.
    """

    def __init__(self, message: str = "Database not connected") -> None:
        super().__init__(message)


class StorageOperationFailed(StoreError):
    """Raised when a reachable store rejects or fails an operation."""


class InvalidPayload(HermitError):
    """Raised when client input is missing, malformed or out of range.

    Attributes:
        field: Name of the offending field, when a single one is at fault.
    """

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class DeliveryFailed(HermitError):
    """Raised when a push frame cannot be written to a viewer channel."""

    def __init__(self, user_id: str, reason: str) -> None:
        super().__init__(f"Push to {user_id} failed: {reason}")
        self.user_id = user_id
