"""
Schema setup and seeding script for the user data-access layer.

Applies `db/init.sql` and inserts deterministic pseudo-random users. The
helpers are also used by the integration test harness to prepare a freshly
provisioned database.
"""

from __future__ import annotations

import random
import sys
import time
from pathlib import Path
from typing import Iterable, Optional, Sequence, Tuple

import psycopg
import typer

from userdao.config import get_settings
from userdao.infrastructure.db_factory import open_connection

SCHEMA_PATH = Path(__file__).resolve().parent.parent / "db" / "init.sql"

FIRST_NAMES = ["Ada", "Alan", "Grace", "Edsger", "Barbara", "Donald", "Margaret", "Ken"]
LAST_NAMES = ["Lovelace", "Turing", "Hopper", "Dijkstra", "Liskov", "Knuth", "Hamilton", "Thompson"]

# (id or None to let the store assign one, first_name, last_name)
UserRow = Tuple[Optional[int], Optional[str], Optional[str]]

app = typer.Typer(help="Create the user table and load synthetic users into Postgres.")


def _generate_users(count: int, seed: int) -> list[UserRow]:
    rng = random.Random(seed)
    return [(None, rng.choice(FIRST_NAMES), rng.choice(LAST_NAMES)) for _ in range(count)]


def _apply_schema(conn: psycopg.Connection, schema_path: Path = SCHEMA_PATH) -> None:
    with conn.cursor() as cur:
        cur.execute(schema_path.read_text(encoding="utf-8"))
    conn.commit()


def _truncate_users(conn: psycopg.Connection) -> None:
    with conn.cursor() as cur:
        cur.execute('TRUNCATE TABLE "user" RESTART IDENTITY')
    conn.commit()


def _insert_users(conn: psycopg.Connection, users: Iterable[UserRow]) -> int:
    """
    Insert users, returning how many rows were written.

    Rows with an explicit id keep it; the identity sequence is then moved past
    the highest id so later store-assigned ids don't collide.
    """
    explicit: list[Sequence[object]] = []
    assigned: list[Sequence[object]] = []
    for user_id, first_name, last_name in users:
        if user_id is None:
            assigned.append((first_name, last_name))
        else:
            explicit.append((user_id, first_name, last_name))

    with conn.cursor() as cur:
        if explicit:
            cur.executemany(
                'INSERT INTO "user" (id, first_name, last_name) VALUES (%s, %s, %s)', explicit
            )
            cur.execute(
                "SELECT setval(pg_get_serial_sequence('\"user\"', 'id'), "
                'COALESCE((SELECT MAX(id) FROM "user"), 0) + 1, false)'
            )
        if assigned:
            cur.executemany(
                'INSERT INTO "user" (first_name, last_name) VALUES (%s, %s)', assigned
            )
    conn.commit()
    return len(explicit) + len(assigned)


@app.command()
def main(
    count: int = typer.Option(
        100,
        "--count",
        "-n",
        help="Number of users to generate.",
    ),
    seed: int = typer.Option(
        42,
        "--seed",
        help="Deterministic RNG seed.",
    ),
    truncate: bool = typer.Option(
        False,
        "--truncate",
        help="Empty the user table before loading.",
    ),
    endpoint: Optional[str] = typer.Option(
        None,
        "--endpoint",
        help="Optional endpoint override (defaults to DB_ENDPOINT).",
    ),
) -> None:
    """
    Create the schema if needed and load synthetic users.
    """
    settings = get_settings()
    start = time.perf_counter()
    with open_connection(
        endpoint or settings.endpoint,
        settings.username,
        settings.password,
        database_name=settings.database_name,
    ) as conn:
        _apply_schema(conn)
        if truncate:
            typer.echo('Truncating table "user".')
            _truncate_users(conn)
        inserted = _insert_users(conn, _generate_users(count, seed))
    typer.echo(f"Inserted {inserted:,} users in {time.perf_counter() - start:.2f}s (seed={seed}).")


if __name__ == "__main__":
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)
