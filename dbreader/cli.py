"""Command line access to configured connection profiles."""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import json
import logging
import sys
from pathlib import Path
from typing import Any, Sequence

from .config import load_config
from .errors import DatabaseReaderError
from .reader import DatabaseReader

LOG = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="dbreader", description=__doc__)
    parser.add_argument("--config", type=Path, default=None, help="Path to config.toml")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log reader activity to stderr")
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("profiles", help="List configured profiles")

    tables = commands.add_parser("tables", help="List tables for a profile")
    tables.add_argument("profile")

    schema = commands.add_parser("schema", help="Describe a table")
    schema.add_argument("profile")
    schema.add_argument("table")

    query = commands.add_parser("query", help="Run a query against a profile")
    query.add_argument("profile")
    query.add_argument("query", help="SQL text, or a JSON object for document stores")
    query.add_argument("--param", dest="params", action="append", default=[], help="Positional parameter")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING, stream=sys.stderr)
    config = load_config(args.config)
    if args.command == "profiles":
        payload: Any = [
            {"name": profile.name, "backend": profile.backend} for profile in config.profiles
        ]
    else:
        try:
            payload = asyncio.run(_run(args, DatabaseReader(config)))
        except DatabaseReaderError as exc:
            print(f"error: {exc}", file=sys.stderr)
            return 1
        except Exception as exc:
            LOG.debug("Command failed", exc_info=True)
            print(f"error: {exc}", file=sys.stderr)
            return 1
    print(json.dumps(_jsonable(payload), indent=2, default=str))
    return 0


async def _run(args: argparse.Namespace, reader: DatabaseReader) -> Any:
    async with reader:
        connection_id = await reader.connect_profile(args.profile)
        if args.command == "tables":
            return await reader.list_tables(connection_id)
        if args.command == "schema":
            return await reader.table_schema(connection_id, args.table)
        return await reader.query(connection_id, _parse_query(args.query), args.params or None)


def _parse_query(raw: str) -> Any:
    text = raw.strip()
    if text.startswith("{"):
        return json.loads(text)
    return raw


def _jsonable(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    return value


__all__ = ["build_parser", "main"]
