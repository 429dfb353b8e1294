"""
Exception handling utilities.

Defines categorized exception types for proper error handling.
"""

from sqlalchemy.exc import SQLAlchemyError
from web3.exceptions import Web3Exception


class NetflowError(Exception):
    """Base class for all monitor errors."""
    pass


class ConfigurationError(NetflowError):
    """Raised when configuration is malformed. Fatal at startup."""
    pass


class DecodeError(NetflowError):
    """Raised when a raw log cannot be decoded into a transfer event."""

    kind = "MalformedLog"

    def __init__(self, message: str, raw_log: object | None = None) -> None:
        super().__init__(message)
        self.raw_log = raw_log


class SubscriptionError(NetflowError):
    """Raised when a log subscription cannot be opened or ends abruptly."""
    pass


class StoreError(NetflowError):
    """Raised when a persistence operation fails."""
    pass


# Exception categories based on handling strategy

# Dropped connection - resubscribe with backoff
CONNECTION_ERRORS = (
    SubscriptionError,
    ConnectionError,
    OSError,
    TimeoutError,
    Web3Exception,
)

# Storage unavailable - the driver may raise a raw OSError on connect
STORAGE_ERRORS = (
    SQLAlchemyError,
    OSError,
)
