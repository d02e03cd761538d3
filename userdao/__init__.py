"""
userdao - a small read-only data-access layer for registered users.

A `ConnectionProvider` owns a psycopg connection pool; a `UserDao` borrows one
connection per call to look users up by id or find the last assigned id, and
maps rows to immutable `User` entities.
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from userdao.config import Settings, get_settings, load_settings
from userdao.dao import Err, Ok, Result, UserDao
from userdao.domain import User
from userdao.errors import (
    ConfigurationError,
    DataAccessError,
    InvalidArgument,
    PoolExhausted,
    ProviderClosedError,
    UserDaoError,
)
from userdao.infrastructure import ConnectionProvider
from userdao.utils.logging import configure_logging, get_logger

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "Settings",
    "get_settings",
    "load_settings",
    # Connections
    "ConnectionProvider",
    # Data access
    "UserDao",
    "User",
    "Ok",
    "Err",
    "Result",
    # Errors
    "UserDaoError",
    "ConfigurationError",
    "InvalidArgument",
    "DataAccessError",
    "PoolExhausted",
    "ProviderClosedError",
    # Logging
    "configure_logging",
    "get_logger",
]
