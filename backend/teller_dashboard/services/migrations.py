"""One-off schema fix: let manual rent-roll rows exist without an accounts row."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from psycopg import AsyncCursor

    from ..database import Database


async def _constraint_names(cursor: AsyncCursor, table: str) -> list[str]:
    await cursor.execute(
        "SELECT conname FROM pg_constraint WHERE conrelid = %s::regclass ORDER BY conname",
        (table,),
    )
    rows = await cursor.fetchall()
    return [row["conname"] for row in rows]


async def drop_manual_data_fk(database: Database, table: str = "manual_data") -> list[dict[str, Any]]:
    steps: list[dict[str, Any]] = []

    async with database.connection() as connection:
        async with connection.cursor() as cursor:
            steps.append({"step": "before", "constraints": await _constraint_names(cursor, table)})

            await cursor.execute(f"ALTER TABLE {table} DROP CONSTRAINT IF EXISTS {table}_account_id_fkey")
            steps.append({"step": "drop_fk", "status": "done"})

            await cursor.execute(f"CREATE INDEX IF NOT EXISTS idx_{table}_account_id ON {table}(account_id)")
            steps.append({"step": "create_index", "status": "done"})

            await cursor.execute(
                f"COMMENT ON TABLE {table} IS 'Manual rent-roll per account; FK to accounts is optional "
                "and may be enforced externally.'"
            )
            steps.append({"step": "add_comment", "status": "done"})

            steps.append({"step": "after", "constraints": await _constraint_names(cursor, table)})

    return steps
