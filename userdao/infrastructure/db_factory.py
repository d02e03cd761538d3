"""
Connection provider for the user data-access layer.

Builds and owns a psycopg `ConnectionPool`, configured either from Settings or
from explicit parameters, and lends out one validated connection at a time via
a context manager that always returns it to the pool.

Also exposes `open_connection` for tooling that needs a dedicated connection
(schema setup, seeding), with retry logic for transient failures using tenacity.
"""

from __future__ import annotations

import importlib
import threading
from contextlib import ExitStack, contextmanager
from typing import Any, Dict, Generator, Optional, Type, TypedDict

import psycopg
from psycopg import Connection
from psycopg.conninfo import conninfo_to_dict
from psycopg_pool import ConnectionPool, PoolClosed, PoolTimeout
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from userdao.config import Settings, get_settings
from userdao.errors import (
    ConfigurationError,
    DatabaseUnavailable,
    PoolExhausted,
    ProviderClosedError,
    UserDaoError,
)
from userdao.utils.logging import get_logger

log = get_logger(__name__)

_POSTGRES_SCHEMES = frozenset({"postgres", "postgresql"})


class ProviderStats(TypedDict):
    """Borrow counters kept by a ConnectionProvider."""

    borrowed: int
    borrows_total: int
    releases_total: int


def _validate_endpoint(endpoint: str) -> Dict[str, Any]:
    """Parse the endpoint so malformed strings fail at construction time."""
    try:
        return conninfo_to_dict(endpoint)
    except psycopg.Error as exc:
        raise ConfigurationError(f"Malformed endpoint: {exc}") from exc


def _resolve_connection_class(
    endpoint: str, driver_identifier: Optional[str]
) -> Type[Connection]:
    """
    Pick the connection class the pool will instantiate.

    An explicit identifier is a dotted path to a `psycopg.Connection` subclass
    (e.g. "psycopg.Connection"). Without one, the driver is inferred from the
    endpoint: PostgreSQL URLs and libpq key=value strings use psycopg.
    """
    if driver_identifier:
        module_name, _, attr = driver_identifier.rpartition(".")
        if not module_name:
            raise ConfigurationError(
                f"Driver identifier must be a dotted path, got '{driver_identifier}'"
            )
        try:
            candidate = getattr(importlib.import_module(module_name), attr)
        except (ImportError, AttributeError) as exc:
            raise ConfigurationError(f"Cannot load driver '{driver_identifier}'") from exc
        if not (isinstance(candidate, type) and issubclass(candidate, Connection)):
            raise ConfigurationError(
                f"Driver '{driver_identifier}' is not a psycopg Connection class"
            )
        return candidate

    scheme, sep, _ = endpoint.partition("://")
    if sep and scheme.lower() not in _POSTGRES_SCHEMES:
        raise ConfigurationError(
            f"Cannot infer a driver for endpoint scheme '{scheme}'. "
            f"Supported: {', '.join(sorted(_POSTGRES_SCHEMES))}"
        )
    return Connection


class ConnectionProvider:
    """
    Pooled source of database connections.

    Each `connection()` call borrows one handle, validated by the pool before
    it is handed out, and releases it when the block exits, whether normally
    or with an exception. Borrowing waits at most `timeout` seconds before
    failing with PoolExhausted, or with DatabaseUnavailable when the pool
    could not connect at all.

    Example
    -------
        with ConnectionProvider.create_from_settings() as provider:
            with provider.connection() as conn:
                conn.execute("SELECT 1")
    """

    def __init__(
        self,
        endpoint: str,
        username: str,
        password: str,
        driver_identifier: Optional[str] = None,
        *,
        database_name: Optional[str] = None,
        min_size: int = 1,
        max_size: int = 10,
        timeout: float = 30.0,
        wait: bool = False,
    ) -> None:
        connection_class = _resolve_connection_class(endpoint, driver_identifier)
        parsed = _validate_endpoint(endpoint)
        if max_size < min_size:
            raise ConfigurationError(f"max_size ({max_size}) must be >= min_size ({min_size})")

        connect_kwargs: Dict[str, Any] = {
            "user": username,
            "password": password,
            "autocommit": True,
        }
        if database_name and not parsed.get("dbname"):
            connect_kwargs["dbname"] = database_name

        self.timeout = timeout
        self.max_size = max_size
        self._lock = threading.Lock()
        self._borrowed = 0
        self._borrows_total = 0
        self._releases_total = 0
        self._closed = False
        self._pool = ConnectionPool(
            conninfo=endpoint,
            kwargs=connect_kwargs,
            connection_class=connection_class,
            min_size=min_size,
            max_size=max_size,
            timeout=timeout,
            check=ConnectionPool.check_connection,
            open=True,
            name="userdao",
        )
        log.info(
            "Connection pool created",
            extra={
                "host": parsed.get("host"),
                "port": parsed.get("port"),
                "dbname": connect_kwargs.get("dbname", parsed.get("dbname")),
                "min_size": min_size,
                "max_size": max_size,
            },
        )
        if wait:
            try:
                self._pool.wait(timeout=timeout)
            except PoolTimeout as exc:
                error = self._timeout_error()
                self._pool.close()
                self._closed = True
                raise error from exc

    @classmethod
    def create_from_settings(cls, settings: Optional[Settings] = None) -> "ConnectionProvider":
        """
        Build a provider from Settings (environment / `.env` by default).

        Raises
        ------
        ConfigurationError
            If the settings are missing or malformed.
        """
        settings = settings or get_settings()
        return cls(
            settings.endpoint,
            settings.username,
            settings.password,
            settings.driver_class_name,
            database_name=settings.database_name,
            min_size=settings.pool_min_size,
            max_size=settings.pool_max_size,
            timeout=settings.pool_timeout_seconds,
            wait=settings.pool_wait_on_open,
        )

    @classmethod
    def create_from_parameters(
        cls,
        endpoint: str,
        username: str,
        password: str,
        driver_identifier: Optional[str] = None,
        **pool_options: Any,
    ) -> "ConnectionProvider":
        """
        Build a provider from explicit values.

        Parameters
        ----------
        endpoint : str
            `postgresql://host:port/db` URL or libpq key=value string.
        username, password : str
            Credentials; they take precedence over any embedded in the endpoint.
        driver_identifier : str, optional
            Dotted path to the connection class. Inferred from the endpoint
            when omitted.
        **pool_options
            `database_name`, `min_size`, `max_size`, `timeout`, `wait`.
        """
        return cls(endpoint, username, password, driver_identifier, **pool_options)

    @contextmanager
    def connection(self) -> Generator[Connection, None, None]:
        """
        Borrow a connection for the duration of the block.

        Raises
        ------
        ProviderClosedError
            If the provider has been closed, including while waiting.
        PoolExhausted
            If no connection frees up within the acquisition timeout.
        DatabaseUnavailable
            If the timeout expired because the pool cannot reach the database.
        """
        with self._lock:
            if self._closed:
                raise ProviderClosedError("Connection provider is closed")
        with ExitStack() as stack:
            try:
                conn = stack.enter_context(self._pool.connection(timeout=self.timeout))
            except PoolTimeout as exc:
                raise self._timeout_error() from exc
            except PoolClosed as exc:
                raise ProviderClosedError("Connection provider is closed") from exc
            with self._lock:
                self._borrowed += 1
                self._borrows_total += 1
            try:
                yield conn
            finally:
                with self._lock:
                    self._borrowed -= 1
                    self._releases_total += 1

    def _timeout_error(self) -> UserDaoError:
        # The pool reports a refused or failing connect only as a timeout.
        # With capacity to spare and failed connects on record, the database
        # is the problem rather than contention.
        failed = self._pool.get_stats().get("connections_errors", 0)
        with self._lock:
            borrowed = self._borrowed
        if failed and borrowed < self.max_size:
            log.warning(
                "Database unreachable",
                extra={"connections_errors": failed, "timeout": self.timeout},
            )
            return DatabaseUnavailable(self.timeout, failed)
        return PoolExhausted(self.timeout)

    @property
    def borrowed(self) -> int:
        """Number of connections currently lent out."""
        with self._lock:
            return self._borrowed

    @property
    def closed(self) -> bool:
        return self._closed

    def stats(self) -> ProviderStats:
        with self._lock:
            return ProviderStats(
                borrowed=self._borrowed,
                borrows_total=self._borrows_total,
                releases_total=self._releases_total,
            )

    def close(self) -> None:
        """Close the pool and every connection it holds. Safe to call twice."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self._pool.close()
        log.info("Connection pool closed", extra=dict(self.stats()))

    def __enter__(self) -> "ConnectionProvider":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


@retry(
    stop=stop_after_attempt(5),
    wait=wait_exponential(multiplier=0.5, min=0.5, max=5),
    retry=retry_if_exception_type((psycopg.OperationalError, psycopg.InterfaceError)),
    reraise=True,
)
def open_connection(
    endpoint: str,
    username: str,
    password: str,
    database_name: Optional[str] = None,
    connect_timeout: int = 5,
) -> Connection:
    """
    Open a dedicated (unpooled) connection with automatic retry.

    Retries up to 5 times with exponential backoff for transient connection
    errors, e.g. while a freshly started server is still coming up. Intended
    for tooling such as schema setup and seeding; the accessor always goes
    through a ConnectionProvider.

    Raises
    ------
    psycopg.OperationalError
        If connection fails after all retry attempts.
    """
    parsed = _validate_endpoint(endpoint)
    kwargs: Dict[str, Any] = {"user": username, "password": password}
    if database_name and not parsed.get("dbname"):
        kwargs["dbname"] = database_name
    return psycopg.connect(endpoint, connect_timeout=connect_timeout, **kwargs)


__all__ = [
    "ConnectionProvider",
    "ProviderStats",
    "open_connection",
]
