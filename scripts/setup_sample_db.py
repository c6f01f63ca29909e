"""Launch a sample PostgreSQL container and seed it through dbreader."""

from __future__ import annotations

import argparse
import asyncio
import subprocess
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from dbreader import DatabaseReader, ReaderConfig, RetryPolicy
from dbreader.config import CONFIG_FILE

DEFAULT_CONTAINER = "dbreader-sample-db"
DEFAULT_PORT = 5543
DEFAULT_PASSWORD = "dbreader"
DEFAULT_DB = "dbreader_demo"
DEFAULT_USER = "dbreader"
DOCKER_IMAGE = "postgres:16-alpine"

SEED_STATEMENTS = (
    """
    CREATE TABLE IF NOT EXISTS accounts (
        id SERIAL PRIMARY KEY,
        email TEXT NOT NULL UNIQUE,
        created_at TIMESTAMPTZ DEFAULT now()
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS orders (
        id SERIAL PRIMARY KEY,
        account_id INTEGER REFERENCES accounts(id),
        total NUMERIC(10,2) NOT NULL,
        status TEXT NOT NULL DEFAULT 'pending'
    )
    """,
    """
    INSERT INTO accounts (email) VALUES
        ('anna@example.com'),
        ('ben@example.com'),
        ('cara@example.com')
    ON CONFLICT DO NOTHING
    """,
)


def run(cmd: list[str], *, check: bool = True, **kwargs) -> subprocess.CompletedProcess[str]:
    print("$", " ".join(cmd))
    return subprocess.run(cmd, check=check, text=True, **kwargs)


def container_exists(name: str) -> bool:
    result = subprocess.run(
        ["docker", "ps", "-a", "--filter", f"name={name}", "--format", "{{.ID}}"],
        text=True,
        capture_output=True,
    )
    return bool(result.stdout.strip())


def start_container(name: str, port: int, password: str, database: str, user: str) -> None:
    if container_exists(name):
        print(f"Container '{name}' already exists. Reusing it.")
        run(["docker", "start", name], check=False)
        return
    run(
        [
            "docker",
            "run",
            "-d",
            "--name",
            name,
            "-e",
            f"POSTGRES_PASSWORD={password}",
            "-e",
            f"POSTGRES_DB={database}",
            "-e",
            f"POSTGRES_USER={user}",
            "-p",
            f"{port}:5432",
            DOCKER_IMAGE,
        ]
    )


async def seed_data(options: dict[str, object]) -> list[dict[str, object]]:
    # The container needs a few seconds before accepting connections; the
    # query retries cover that window.
    config = ReaderConfig(retry=RetryPolicy(max_retries=10, min_delay=0.5, max_delay=2.0))
    async with DatabaseReader(config) as reader:
        connection_id = await _connect_with_retry(reader, options)
        for statement in SEED_STATEMENTS:
            await reader.query(connection_id, statement)
        return await reader.list_tables(connection_id)


async def _connect_with_retry(reader: DatabaseReader, options: dict[str, object], attempts: int = 15) -> str:
    for attempt in range(1, attempts + 1):
        try:
            return await reader.connect("postgres", options)
        except Exception:
            if attempt == attempts:
                raise
            await asyncio.sleep(1.0)
    raise AssertionError("unreachable")


def profile_snippet(port: int, user: str, database: str, password: str) -> str:
    return "\n".join(
        [
            "[[profiles]]",
            'name = "docker-sample"',
            'backend = "postgres"',
            'host = "localhost"',
            f"port = {port}",
            f'user = "{user}"',
            f'password = "{password}"',
            f'database = "{database}"',
        ]
    )


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--container", default=DEFAULT_CONTAINER, help="Docker container name")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT, help="Host port to expose Postgres on")
    parser.add_argument("--password", default=DEFAULT_PASSWORD, help="Postgres password")
    parser.add_argument("--database", default=DEFAULT_DB, help="Database name to create")
    parser.add_argument("--user", default=DEFAULT_USER, help="Database user")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv or sys.argv[1:])
    try:
        start_container(args.container, args.port, args.password, args.database, args.user)
    except FileNotFoundError:
        print("Docker is not installed or not on PATH.")
        return 1
    options = {
        "host": "localhost",
        "port": args.port,
        "user": args.user,
        "password": args.password,
        "database": args.database,
    }
    tables = asyncio.run(seed_data(options))
    print(f"Seeded tables: {', '.join(str(row['tablename']) for row in tables)}")
    print(f"Add this profile to {CONFIG_FILE}:\n")
    print(profile_snippet(args.port, args.user, args.database, args.password))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
