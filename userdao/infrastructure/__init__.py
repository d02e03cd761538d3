"""
Infrastructure package for the user data-access layer.

Centralizes database connectivity concerns (pooling, dedicated connections).
Keep this layer focused on I/O and resource management, decoupled from the
accessor's query and mapping logic.
"""

from userdao.infrastructure.db_factory import (
    ConnectionProvider,
    ProviderStats,
    open_connection,
)

__all__ = [
    "ConnectionProvider",
    "ProviderStats",
    "open_connection",
]
