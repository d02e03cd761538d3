"""
Pytest configuration for the user data-access layer.

Provides fixtures for:
- Isolating settings from the developer's environment
- Swapping the real connection pool for an in-memory fake (unit tests)
- Provisioning a disposable database and seeding users (integration tests)
"""

from __future__ import annotations

import os
from typing import Generator

import pytest

from tests.fakes import FakeConnectionPool
from tests.provisioning import TestDatabase, provisioner_from_env
from userdao.config import get_settings
from userdao.dao.user_dao import UserDao
from userdao.infrastructure.db_factory import ConnectionProvider

SETTINGS_ENV_VARS = (
    "DB_ENDPOINT",
    "DB_USERNAME",
    "DB_PASSWORD",
    "DB_DATABASE_NAME",
    "DB_DRIVER_CLASS_NAME",
    "DB_POOL_MIN_SIZE",
    "DB_POOL_MAX_SIZE",
    "DB_POOL_TIMEOUT_SECONDS",
    "DB_POOL_WAIT_ON_OPEN",
    "LOG_LEVEL",
    "LOG_JSON",
)


@pytest.fixture
def clean_env(monkeypatch, tmp_path) -> Generator[None, None, None]:
    """
    Remove settings variables and run from an empty directory (no `.env`).
    """
    for name in SETTINGS_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def fake_pool_class(monkeypatch) -> Generator[type[FakeConnectionPool], None, None]:
    """
    Replace psycopg_pool.ConnectionPool inside the provider with the fake.
    """
    FakeConnectionPool.reset()
    monkeypatch.setattr(
        "userdao.infrastructure.db_factory.ConnectionPool", FakeConnectionPool
    )
    yield FakeConnectionPool
    FakeConnectionPool.reset()


@pytest.fixture
def fake_provider(fake_pool_class) -> Generator[ConnectionProvider, None, None]:
    """
    Provider backed by a FakeConnectionPool holding Ada Lovelace (id 1) and
    Alan Turing (id 2).
    """
    fake_pool_class.default_users = {1: ("Ada", "Lovelace"), 2: ("Alan", "Turing")}
    provider = ConnectionProvider.create_from_parameters(
        "postgresql://db.example.com:5432/app", "app", "secret", timeout=0.5
    )
    try:
        yield provider
    finally:
        provider.close()


@pytest.fixture
def fake_pool(fake_provider) -> FakeConnectionPool:
    return fake_provider._pool


@pytest.fixture(scope="session")
def test_database() -> Generator[TestDatabase, None, None]:
    """
    Session-wide disposable database; provisioning strategy picked from
    TEST_DB_PROVISIONER (direct endpoint by default, or a container).
    """
    if os.getenv("RUN_INTEGRATION_TESTS", "0") != "1":
        pytest.skip("Integration tests require RUN_INTEGRATION_TESTS=1")
    database = TestDatabase(provisioner_from_env())
    try:
        yield database.start()
    finally:
        database.stop()


@pytest.fixture
def db_provider(test_database: TestDatabase) -> Generator[ConnectionProvider, None, None]:
    """Provider pointed at the test database, with an empty user table."""
    test_database.reset()
    provider = test_database.create_provider(min_size=1, max_size=4, timeout=10.0)
    try:
        yield provider
    finally:
        provider.close()


@pytest.fixture
def user_dao(db_provider: ConnectionProvider) -> UserDao:
    return UserDao(db_provider)
