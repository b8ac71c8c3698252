"""Rent-roll store backed by one PostgreSQL table keyed by account id."""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING, Any

from psycopg import errors as pg_errors

from ..errors import ForeignKeyViolationError
from .normalize import normalize_rent_roll
from .timestamps import to_iso

if TYPE_CHECKING:
    from ..database import Database


def _number(value: Decimal | None) -> float | None:
    return float(value) if value is not None else None


class PgRentRollStore:
    def __init__(self, database: Database, table: str = "manual_data"):
        self.database = database
        self.table = table

    async def init(self) -> None:
        async with self.database.connection() as connection:
            async with connection.cursor() as cursor:
                await cursor.execute(
                    f"""
                    CREATE TABLE IF NOT EXISTS {self.table} (
                        account_id TEXT PRIMARY KEY,
                        rent_roll NUMERIC NULL,
                        updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
                    )
                    """
                )

    def _row_to_payload(self, account_id: str, row: dict[str, Any] | None, currency: str | None) -> dict[str, Any]:
        if row is None:
            payload: dict[str, Any] = {"account_id": account_id, "rent_roll": None, "updated_at": None}
        else:
            payload = {
                "account_id": row["account_id"],
                "rent_roll": _number(row["rent_roll"]),
                "updated_at": to_iso(row["updated_at"]),
            }
        if currency:
            payload["currency"] = currency
        return payload

    async def get(self, account_id: str, currency: str | None = None) -> dict[str, Any]:
        async with self.database.connection() as connection:
            async with connection.cursor() as cursor:
                await cursor.execute(
                    f"""
                    SELECT account_id, rent_roll, updated_at
                    FROM {self.table}
                    WHERE account_id = %s
                    """,
                    (account_id,),
                )
                row = await cursor.fetchone()

        return self._row_to_payload(account_id, row, currency)

    async def _upsert(self, account_id: str, amount: Decimal | None) -> dict[str, Any]:
        try:
            async with self.database.connection() as connection:
                async with connection.cursor() as cursor:
                    await cursor.execute(
                        f"""
                        INSERT INTO {self.table} (account_id, rent_roll, updated_at)
                        VALUES (%s, %s, now())
                        ON CONFLICT (account_id) DO UPDATE
                        SET rent_roll = EXCLUDED.rent_roll, updated_at = now()
                        RETURNING account_id, rent_roll, updated_at
                        """,
                        (account_id, amount),
                    )
                    row = await cursor.fetchone()
        except pg_errors.ForeignKeyViolation as exc:
            raise ForeignKeyViolationError() from exc

        return row

    async def set(self, account_id: str, rent_roll: Any, currency: str | None = None) -> dict[str, Any]:
        amount = normalize_rent_roll(rent_roll)
        row = await self._upsert(account_id, amount)
        return self._row_to_payload(account_id, row, currency)

    async def clear(self, account_id: str, currency: str | None = None) -> dict[str, Any]:
        row = await self._upsert(account_id, None)
        return self._row_to_payload(account_id, row, currency)
