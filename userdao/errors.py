"""
Error taxonomy for the user data-access layer.

All failures propagate to the caller; nothing in the package logs an error and
carries on. `DataAccessError` keeps the failed query text and chains the
driver exception as `__cause__`.
"""

from __future__ import annotations

from typing import Optional


class UserDaoError(Exception):
    """Base class for every error raised by this package."""


class ConfigurationError(UserDaoError):
    """Connection settings are missing, malformed, or name an unusable driver."""


class InvalidArgument(UserDaoError, ValueError):
    """The caller passed an argument that fails a precondition (no I/O was done)."""


class DataAccessError(UserDaoError):
    """
    A query or the connection it ran on failed.

    Parameters
    ----------
    query : str
        The SQL text that was being executed.
    cause : Exception, optional
        The underlying driver error. Also set as `__cause__` when raised with
        `raise ... from cause`.
    """

    def __init__(self, query: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(f"Error executing query [{query}].")
        self.query = query
        self.cause = cause


class PoolExhausted(UserDaoError):
    """No connection became available within the acquisition timeout."""

    def __init__(self, timeout: float) -> None:
        super().__init__(f"No connection available from the pool after {timeout:g}s.")
        self.timeout = timeout


class DatabaseUnavailable(UserDaoError):
    """
    The pool could not open a connection to the database.

    Raised instead of PoolExhausted when an acquisition timed out while the
    pool still had spare capacity and its connection attempts were failing.
    """

    def __init__(self, timeout: float, failed_attempts: int) -> None:
        super().__init__(
            f"Could not connect to the database within {timeout:g}s "
            f"({failed_attempts} failed connection attempts)."
        )
        self.timeout = timeout
        self.failed_attempts = failed_attempts


class ProviderClosedError(UserDaoError):
    """A connection was requested from a provider that has been closed."""


__all__ = [
    "UserDaoError",
    "ConfigurationError",
    "InvalidArgument",
    "DataAccessError",
    "PoolExhausted",
    "DatabaseUnavailable",
    "ProviderClosedError",
]
