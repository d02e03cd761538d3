"""
Data access object for users.

Translates the two supported lookups into parameterized queries against the
`"user"` table and maps result rows to `User` entities. Each call borrows one
connection from the ConnectionProvider and returns it before the call ends,
on success and on failure alike.
"""

from __future__ import annotations

from typing import Any, Callable, Optional, TypeVar

import psycopg
from psycopg.rows import dict_row

from userdao.dao.result import Err, Ok, Result
from userdao.domain.models import User
from userdao.errors import DataAccessError, DatabaseUnavailable, InvalidArgument, UserDaoError
from userdao.infrastructure.db_factory import ConnectionProvider
from userdao.utils.logging import get_logger

log = get_logger(__name__)

T = TypeVar("T")

FIND_USER_BY_ID_SQL = 'SELECT u.id, u.first_name, u.last_name FROM "user" u WHERE u.id = %s'
FIND_LAST_USER_ID_SQL = 'SELECT MAX(u.id) AS last_user_id FROM "user" u'


class UserDao:
    """
    Read-only access to stored users.

    Stateless between calls; all shared state lives in the provider's pool, so
    one instance can serve many threads at once.
    """

    def __init__(self, provider: ConnectionProvider) -> None:
        if provider is None:
            raise InvalidArgument("provider must not be None.")
        self._provider = provider

    def _fetch_one(self, sql: str, params: tuple[Any, ...] = ()) -> Optional[dict[str, Any]]:
        try:
            with self._provider.connection() as conn:
                with conn.cursor(row_factory=dict_row) as cur:
                    log.debug("Executing query", extra={"sql": sql, "params": params})
                    cur.execute(sql, params)
                    return cur.fetchone()
        except (psycopg.Error, DatabaseUnavailable) as exc:
            log.warning(
                "Query failed",
                extra={"sql": sql, "error_type": type(exc).__name__},
            )
            raise DataAccessError(sql, exc) from exc

    def find_user_by_id(self, user_id: int) -> Optional[User]:
        """
        Find a user by their unique id.

        Parameters
        ----------
        user_id : int
            The id of the user; must be greater than 0.

        Returns
        -------
        User or None
            None if `user_id` doesn't identify an existing user.

        Raises
        ------
        InvalidArgument
            If `user_id` is not a positive integer. No query is issued.
        DataAccessError
            If the query fails or the database cannot be reached.
        PoolExhausted
            If no connection frees up within the provider's timeout.
        """
        if isinstance(user_id, bool) or not isinstance(user_id, int):
            raise InvalidArgument(f"user_id must be an int, got {type(user_id).__name__}.")
        if user_id <= 0:
            raise InvalidArgument("user_id must be greater than 0.")

        row = self._fetch_one(FIND_USER_BY_ID_SQL, (user_id,))
        if row is None:
            return None
        return User.from_row(row)

    def find_last_user_id(self) -> int:
        """
        Return the id of the last (most recently created) user.

        An empty table yields 0. Ids are always positive, so 0 never names a
        real user; callers must not look it up.
        """
        row = self._fetch_one(FIND_LAST_USER_ID_SQL)
        if row is None or row["last_user_id"] is None:
            return 0
        return int(row["last_user_id"])

    def try_find_user_by_id(self, user_id: int) -> Result[Optional[User]]:
        """
        Like `find_user_by_id`, but data-access failures come back as `Err`.

        InvalidArgument is still raised: a bad id is a caller bug, not an
        outcome of the lookup.
        """
        return _capture(lambda: self.find_user_by_id(user_id))

    def try_find_last_user_id(self) -> Result[int]:
        """Like `find_last_user_id`, but data-access failures come back as `Err`."""
        return _capture(self.find_last_user_id)


def _capture(call: Callable[[], T]) -> Result[T]:
    try:
        return Ok(call())
    except InvalidArgument:
        raise
    except UserDaoError as exc:
        return Err(exc)


__all__ = [
    "UserDao",
    "FIND_USER_BY_ID_SQL",
    "FIND_LAST_USER_ID_SQL",
]
