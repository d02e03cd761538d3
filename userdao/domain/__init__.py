"""
Domain package for the user data-access layer.

Exports the entities returned by the accessor. Keep this package focused on
data definitions and validation concerns.
"""

from userdao.domain.models import User

__all__ = [
    "User",
]
