from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

import psycopg
import pytest

from userdao.dao.result import Err, Ok
from userdao.dao.user_dao import FIND_LAST_USER_ID_SQL, FIND_USER_BY_ID_SQL, UserDao
from userdao.domain.models import User
from userdao.errors import (
    DataAccessError,
    DatabaseUnavailable,
    InvalidArgument,
    PoolExhausted,
    ProviderClosedError,
)
from userdao.infrastructure.db_factory import ConnectionProvider

EXPECTED_LAST_USER_ID = 5
CONCURRENT_CALLERS = 8
LOOKUPS_PER_CALLER = 25
SMALL_POOL_SIZE = 3


def test_requires_provider() -> None:
    with pytest.raises(InvalidArgument):
        UserDao(None)  # type: ignore[arg-type]


@pytest.mark.parametrize("user_id", [0, -1, -10_000])
def test_find_user_by_id_rejects_non_positive_ids_without_io(
    fake_provider, fake_pool, user_id
) -> None:
    dao = UserDao(fake_provider)

    with pytest.raises(InvalidArgument, match="greater than 0"):
        dao.find_user_by_id(user_id)

    assert fake_pool.checkouts == 0
    assert fake_pool.queries == []


@pytest.mark.parametrize("user_id", [True, 1.0, "1", None])
def test_find_user_by_id_rejects_non_integer_ids(fake_provider, fake_pool, user_id) -> None:
    with pytest.raises(InvalidArgument):
        UserDao(fake_provider).find_user_by_id(user_id)

    assert fake_pool.checkouts == 0


def test_find_user_by_id_maps_row(fake_provider, fake_pool) -> None:
    user = UserDao(fake_provider).find_user_by_id(1)

    assert user == User(id=1, first_name="Ada", last_name="Lovelace")
    assert fake_pool.queries == [(1, FIND_USER_BY_ID_SQL, (1,))]
    assert fake_provider.borrowed == 0


def test_find_user_by_id_returns_none_when_absent(fake_provider) -> None:
    assert UserDao(fake_provider).find_user_by_id(999) is None
    assert fake_provider.borrowed == 0


def test_find_user_by_id_wraps_driver_errors(fake_provider, fake_pool) -> None:
    failure = psycopg.OperationalError("server closed the connection unexpectedly")
    fake_pool.fail_with = failure

    with pytest.raises(DataAccessError) as excinfo:
        UserDao(fake_provider).find_user_by_id(1)

    assert excinfo.value.query == FIND_USER_BY_ID_SQL
    assert excinfo.value.cause is failure
    assert excinfo.value.__cause__ is failure
    assert FIND_USER_BY_ID_SQL in str(excinfo.value)
    # one attempt only, and the connection went back
    assert len(fake_pool.queries) == 1
    assert fake_provider.stats() == {"borrowed": 0, "borrows_total": 1, "releases_total": 1}


def test_non_driver_errors_are_not_wrapped(fake_provider, fake_pool) -> None:
    fake_pool.fail_with = KeyError("unexpected")

    with pytest.raises(KeyError):
        UserDao(fake_provider).find_user_by_id(1)

    assert fake_provider.borrowed == 0


def test_find_last_user_id(fake_provider, fake_pool) -> None:
    fake_pool.users = {1: ("a", "b"), 2: ("c", "d"), 5: ("e", "f")}

    assert UserDao(fake_provider).find_last_user_id() == EXPECTED_LAST_USER_ID
    assert fake_pool.queries[0][1] == FIND_LAST_USER_ID_SQL


def test_find_last_user_id_on_empty_table_is_zero(fake_provider, fake_pool) -> None:
    fake_pool.users = {}

    assert UserDao(fake_provider).find_last_user_id() == 0


def test_find_last_user_id_wraps_driver_errors(fake_provider, fake_pool) -> None:
    fake_pool.fail_with = psycopg.errors.UndefinedTable('relation "user" does not exist')

    with pytest.raises(DataAccessError) as excinfo:
        UserDao(fake_provider).find_last_user_id()

    assert excinfo.value.query == FIND_LAST_USER_ID_SQL
    assert fake_provider.borrowed == 0


def test_pool_exhausted_propagates(fake_provider, fake_pool_class) -> None:
    fake_pool_class.exhausted = True

    with pytest.raises(PoolExhausted):
        UserDao(fake_provider).find_user_by_id(1)


def test_try_variants_return_ok(fake_provider) -> None:
    dao = UserDao(fake_provider)

    found = dao.try_find_user_by_id(2)
    missing = dao.try_find_user_by_id(3)
    last = dao.try_find_last_user_id()

    assert found == Ok(User(id=2, first_name="Alan", last_name="Turing"))
    assert missing.is_ok and missing.unwrap() is None
    assert last == Ok(2)


def test_try_variants_return_err(fake_provider, fake_pool) -> None:
    fake_pool.fail_with = psycopg.OperationalError("connection lost")
    dao = UserDao(fake_provider)

    result = dao.try_find_user_by_id(1)

    assert isinstance(result, Err)
    assert not result.is_ok
    assert isinstance(result.error, DataAccessError)
    assert result.unwrap_or(None) is None
    with pytest.raises(DataAccessError):
        result.unwrap()
    assert isinstance(dao.try_find_last_user_id(), Err)


def test_try_variant_still_raises_invalid_argument(fake_provider) -> None:
    with pytest.raises(InvalidArgument):
        UserDao(fake_provider).try_find_user_by_id(0)


def test_concurrent_lookups_do_not_cross_contaminate(fake_provider, fake_pool) -> None:
    fake_pool.users = {n: (f"first{n}", f"last{n}") for n in range(1, CONCURRENT_CALLERS + 1)}
    dao = UserDao(fake_provider)

    def lookup(user_id: int) -> list[User]:
        return [dao.find_user_by_id(user_id) for _ in range(LOOKUPS_PER_CALLER)]

    with ThreadPoolExecutor(max_workers=CONCURRENT_CALLERS) as executor:
        results = dict(zip(fake_pool.users, executor.map(lookup, fake_pool.users)))

    for user_id, users in results.items():
        assert all(u == User(id=user_id, first_name=f"first{user_id}", last_name=f"last{user_id}") for u in users)

    total = CONCURRENT_CALLERS * LOOKUPS_PER_CALLER
    assert fake_pool.max_in_use <= CONCURRENT_CALLERS
    assert fake_pool.checkouts == fake_pool.returns == total
    assert fake_provider.stats() == {"borrowed": 0, "borrows_total": total, "releases_total": total}


def test_concurrent_lookups_share_a_bounded_pool(fake_pool_class) -> None:
    fake_pool_class.default_users = {n: (f"first{n}", f"last{n}") for n in range(1, CONCURRENT_CALLERS + 1)}
    provider = ConnectionProvider.create_from_parameters(
        "postgresql://db.example.com:5432/app", "app", "secret", max_size=SMALL_POOL_SIZE, timeout=5.0
    )
    (pool,) = fake_pool_class.instances
    dao = UserDao(provider)
    ids = list(pool.users) * LOOKUPS_PER_CALLER

    with ThreadPoolExecutor(max_workers=CONCURRENT_CALLERS) as executor:
        users = list(executor.map(dao.find_user_by_id, ids))
    provider.close()

    assert [u.id for u in users] == ids
    # callers outnumber connections, so handles were reused, never shared
    assert pool.max_in_use <= SMALL_POOL_SIZE
    assert {conn for conn, _, _ in pool.queries} <= set(range(1, SMALL_POOL_SIZE + 1))
    assert pool.checkouts == pool.returns == len(ids)


def test_unreachable_database_is_a_data_access_error(fake_provider, fake_pool_class) -> None:
    fake_pool_class.unreachable = True

    with pytest.raises(DataAccessError) as excinfo:
        UserDao(fake_provider).find_user_by_id(1)

    assert excinfo.value.query == FIND_USER_BY_ID_SQL
    assert isinstance(excinfo.value.cause, DatabaseUnavailable)
    assert isinstance(UserDao(fake_provider).try_find_last_user_id(), Err)


def test_refused_connection_with_real_pool_is_a_data_access_error() -> None:
    provider = ConnectionProvider.create_from_parameters(
        "postgresql://127.0.0.1:1/app", "app", "secret", timeout=1.0
    )
    try:
        with pytest.raises(DataAccessError) as excinfo:
            UserDao(provider).find_last_user_id()
    finally:
        provider.close()

    assert excinfo.value.query == FIND_LAST_USER_ID_SQL
    assert isinstance(excinfo.value.__cause__, DatabaseUnavailable)
    assert provider.stats()["borrows_total"] == 0


def test_lookup_on_closed_pool_is_provider_closed(fake_provider, fake_pool) -> None:
    fake_pool.close()

    with pytest.raises(ProviderClosedError):
        UserDao(fake_provider).find_user_by_id(1)
