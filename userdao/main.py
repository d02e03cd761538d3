from __future__ import annotations

import json
import sys
from contextlib import contextmanager
from typing import Iterator

import typer

from userdao.config import get_settings
from userdao.dao.user_dao import UserDao
from userdao.errors import UserDaoError
from userdao.infrastructure.db_factory import ConnectionProvider
from userdao.utils.logging import configure_logging

app = typer.Typer(help="Look up registered users.")

EXIT_NOT_FOUND = 1
EXIT_ERROR = 2


@contextmanager
def _user_dao() -> Iterator[UserDao]:
    """Yield a UserDao over a provider built from settings; report core errors."""
    try:
        settings = get_settings()
        configure_logging(level=settings.log_level, json_logs=settings.log_json)
        with ConnectionProvider.create_from_settings(settings) as provider:
            yield UserDao(provider)
    except UserDaoError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=EXIT_ERROR) from exc


@app.command()
def info() -> None:
    """
    Show effective configuration values.
    """
    try:
        settings = get_settings()
    except UserDaoError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=EXIT_ERROR) from exc
    typer.echo(
        f"endpoint={settings.endpoint} user={settings.username} password=*** "
        f"database={settings.database_name or '-'} "
        f"driver={settings.driver_class_name or 'inferred'} | "
        f"pool=({settings.pool_min_size},{settings.pool_max_size}) "
        f"timeout={settings.pool_timeout_seconds:g}s"
    )


@app.command("find-user")
def find_user(user_id: int = typer.Argument(..., help="Id of the user to look up.")) -> None:
    """
    Print the user with the given id as JSON.
    """
    with _user_dao() as dao:
        user = dao.find_user_by_id(user_id)
    if user is None:
        typer.echo(f"No user with id {user_id}.", err=True)
        raise typer.Exit(code=EXIT_NOT_FOUND)
    typer.echo(json.dumps(user.model_dump(), indent=2))


@app.command("last-user-id")
def last_user_id() -> None:
    """
    Print the id of the most recently created user (0 when there are none).
    """
    with _user_dao() as dao:
        typer.echo(str(dao.find_last_user_id()))


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
