"""
Data access package for the user data-access layer.

Re-exports the accessor and the tagged result types so downstream code can
import from `userdao.dao` directly.
"""

from userdao.dao.result import Err, Ok, Result
from userdao.dao.user_dao import UserDao

__all__ = [
    "Err",
    "Ok",
    "Result",
    "UserDao",
]
