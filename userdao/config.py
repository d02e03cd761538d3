"""
Configuration settings for the user data-access layer.

Uses Pydantic Settings to load the connection parameters (endpoint, credentials,
optional database name and driver), pool sizing, and logging options from
environment variables or a `.env` file.
"""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Optional, Union

from pydantic import Field, ValidationError, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from userdao.errors import ConfigurationError


class Settings(BaseSettings):
    # Connection (mandatory)
    endpoint: str = Field(..., alias="DB_ENDPOINT", min_length=1)
    username: str = Field(..., alias="DB_USERNAME", min_length=1)
    password: str = Field(..., alias="DB_PASSWORD")

    # Connection (optional)
    database_name: Optional[str] = Field(None, alias="DB_DATABASE_NAME")
    driver_class_name: Optional[str] = Field(None, alias="DB_DRIVER_CLASS_NAME")

    # Pool
    pool_min_size: int = Field(1, alias="DB_POOL_MIN_SIZE", ge=0)
    pool_max_size: int = Field(10, alias="DB_POOL_MAX_SIZE", ge=1)
    pool_timeout_seconds: float = Field(30.0, alias="DB_POOL_TIMEOUT_SECONDS", gt=0)
    pool_wait_on_open: bool = Field(False, alias="DB_POOL_WAIT_ON_OPEN")

    # Application
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(False, alias="LOG_JSON")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    @model_validator(mode="after")
    def _check_pool_bounds(self) -> "Settings":
        if self.pool_max_size < self.pool_min_size:
            raise ValueError(
                f"DB_POOL_MAX_SIZE ({self.pool_max_size}) must be >= "
                f"DB_POOL_MIN_SIZE ({self.pool_min_size})"
            )
        return self

    def endpoint_for(self, host: str, port: int) -> str:
        """
        Build an endpoint for a server whose address is only known at run time.

        The configured `database_name` is kept so the same database is targeted
        whatever host and port the server ends up on.
        """
        database = self.database_name or ""
        return f"postgresql://{host}:{port}/{database}"


def load_settings(env_file: Optional[Union[str, Path]] = None) -> Settings:
    """
    Build Settings from the environment and an optional settings file.

    Parameters
    ----------
    env_file : str or Path, optional
        Explicit `.env`-style file to read. When given it must exist. When
        omitted, a `.env` in the working directory is read if present.

    Raises
    ------
    ConfigurationError
        If the named file is missing or any setting is missing or malformed.
    """
    try:
        if env_file is not None:
            path = Path(env_file)
            if not path.is_file():
                raise ConfigurationError(f"Settings file not found: {path}")
            return Settings(_env_file=path)
        return Settings()
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err['loc']) or 'settings'}: {err['msg']}"
            for err in exc.errors()
        )
        raise ConfigurationError(f"Invalid connection settings: {problems}") from exc


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Retrieve a cached instance of Settings to avoid repeated env parsing.
    """
    return load_settings()


__all__ = ["Settings", "get_settings", "load_settings"]
