"""
Domain models for the user data-access layer.

Defines the `User` entity aligned with the `"user"` table in `db/init.sql`.
Instances are only built by mapping query rows; nothing in this package
persists them.
"""
from __future__ import annotations

from typing import Any, Mapping, Optional

from pydantic import BaseModel, Field


class User(BaseModel):
    """
    A registered user of the application.
    """

    id: int = Field(..., gt=0, description="Primary key, assigned by the store.")
    first_name: Optional[str] = Field(None, description="First name of the user.")
    last_name: Optional[str] = Field(None, description="Last name of the user.")

    model_config = {"frozen": True}

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "User":
        """Map a row keyed by column name (`id`, `first_name`, `last_name`)."""
        return cls(id=row["id"], first_name=row["first_name"], last_name=row["last_name"])


__all__ = ["User"]
