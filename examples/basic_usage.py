"""Connect to an in-memory SQLite database, write a row, and read it back."""

from __future__ import annotations

import asyncio
import logging

from dbreader import DatabaseReader, ReaderConfig


async def main() -> None:
    logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    async with DatabaseReader(ReaderConfig(enable_cache=True, cache_ttl=30)) as reader:
        connection_id = await reader.connect("sqlite", {"filename": ":memory:"})
        await reader.query(
            connection_id,
            "CREATE TABLE users (id INTEGER PRIMARY KEY AUTOINCREMENT, name TEXT NOT NULL, email TEXT UNIQUE)",
        )
        inserted = await reader.query(
            connection_id,
            "INSERT INTO users (name, email) VALUES (?, ?)",
            ["John Doe", "john@example.com"],
        )
        print(f"Inserted user with ID: {inserted.inserted_id}")

        print("Users:", await reader.query(connection_id, "SELECT * FROM users"))
        print("Tables:", await reader.list_tables(connection_id))
        print("Schema:", await reader.table_schema(connection_id, "users"))

        # Second identical read is served from the cache.
        await reader.query(connection_id, "SELECT * FROM users")
        for info in reader.list_connections():
            print(f"{info.id}: {info.query_count} queries")


if __name__ == "__main__":
    asyncio.run(main())
