"""Named liabilities and the single named asset behind the equity rollup.

The set of slugs is closed: reads always return every known liability, and
writes for anything else are rejected before storage is touched.
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING, Any

from psycopg import errors as pg_errors

from .normalize import (
    LIABILITY_PERCENT,
    OUT_OF_RANGE,
    UnknownFieldError,
    UnknownSlugError,
    ValidationError,
    norm_currency,
    norm_int,
    norm_percent,
)
from .timestamps import now_iso, to_iso

if TYPE_CHECKING:
    from ..database import Database

LIABILITY_SLUGS: tuple[str, ...] = ("heloc_loan", "original_mortgage_loan_672", "roof_loan")
ASSET_SLUG = "property_672_elm_value"

DEFAULT_TERM_MONTHS: dict[str, int] = {
    "original_mortgage_loan_672": 360,
    "roof_loan": 120,
}

# wire name -> column
LIABILITY_COLUMNS: dict[str, str] = {
    "loanAmountUsd": "loan_amount_usd",
    "interestRatePct": "interest_rate_pct",
    "monthlyPaymentUsd": "monthly_payment_usd",
    "outstandingBalanceUsd": "outstanding_balance_usd",
    "termMonths": "term_months",
}

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS manual_liability (
    slug TEXT PRIMARY KEY,
    loan_amount_usd NUMERIC(14, 2) NULL,
    interest_rate_pct NUMERIC(7, 4) NULL,
    monthly_payment_usd NUMERIC(14, 2) NULL,
    outstanding_balance_usd NUMERIC(14, 2) NULL,
    term_months INTEGER NULL,
    updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
    updated_by TEXT NULL
);

CREATE TABLE IF NOT EXISTS manual_asset (
    slug TEXT PRIMARY KEY,
    value_usd NUMERIC(14, 2) NULL,
    updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
    updated_by TEXT NULL
);
"""


def _number(value: Any) -> float | None:
    return None if value is None else float(value)


def default_liability(slug: str) -> dict[str, Any]:
    return {
        "loanAmountUsd": None,
        "interestRatePct": None,
        "monthlyPaymentUsd": None,
        "outstandingBalanceUsd": None,
        "termMonths": DEFAULT_TERM_MONTHS.get(slug),
        "updatedAt": None,
        "updatedBy": None,
    }


def normalize_liability_fields(slug: str, fields: dict[str, Any]) -> dict[str, Any]:
    """Validate a partial liability update; returns only the supplied fields."""
    if slug not in LIABILITY_SLUGS:
        raise UnknownSlugError(slug)

    clean: dict[str, Any] = {}
    for name, value in fields.items():
        if name not in LIABILITY_COLUMNS:
            raise UnknownFieldError(name)

        if name == "interestRatePct":
            clean[name] = norm_percent(value, LIABILITY_PERCENT)
        elif name == "termMonths":
            clean[name] = norm_int(value, min_value=0)
        else:
            clean[name] = norm_currency(value)

    return clean


def _fill_missing(found: dict[str, dict[str, Any]]) -> dict[str, dict[str, Any]]:
    # Seeding normally creates every slug; never let a gap reach the frontend.
    return {slug: found.get(slug) or default_liability(slug) for slug in LIABILITY_SLUGS}


class PgSlugStore:
    def __init__(self, database: Database):
        self.database = database

    async def init(self) -> None:
        async with self.database.connection() as connection:
            async with connection.cursor() as cursor:
                await cursor.execute(SCHEMA_SQL)
                for slug in LIABILITY_SLUGS:
                    await cursor.execute(
                        """
                        INSERT INTO manual_liability (slug, term_months)
                        VALUES (%s, %s)
                        ON CONFLICT (slug) DO NOTHING
                        """,
                        (slug, DEFAULT_TERM_MONTHS.get(slug)),
                    )

    async def get_all_liabilities(self) -> dict[str, dict[str, Any]]:
        async with self.database.connection() as connection:
            async with connection.cursor() as cursor:
                await cursor.execute(
                    """
                    SELECT slug, loan_amount_usd, interest_rate_pct, monthly_payment_usd,
                           outstanding_balance_usd, term_months, updated_at, updated_by
                    FROM manual_liability
                    """
                )
                rows = await cursor.fetchall()

        found: dict[str, dict[str, Any]] = {}
        for row in rows:
            if row["slug"] not in LIABILITY_SLUGS:
                continue
            found[row["slug"]] = {
                "loanAmountUsd": _number(row["loan_amount_usd"]),
                "interestRatePct": _number(row["interest_rate_pct"]),
                "monthlyPaymentUsd": _number(row["monthly_payment_usd"]),
                "outstandingBalanceUsd": _number(row["outstanding_balance_usd"]),
                "termMonths": None if row["term_months"] is None else int(row["term_months"]),
                "updatedAt": to_iso(row["updated_at"]),
                "updatedBy": row["updated_by"] or None,
            }

        return _fill_missing(found)

    async def get_asset_value(self) -> dict[str, Any]:
        async with self.database.connection() as connection:
            async with connection.cursor() as cursor:
                await cursor.execute(
                    """
                    SELECT value_usd, updated_at, updated_by
                    FROM manual_asset
                    WHERE slug = %s
                    """,
                    (ASSET_SLUG,),
                )
                row = await cursor.fetchone()

        return {
            "slug": ASSET_SLUG,
            "valueUsd": _number(row["value_usd"]) if row else None,
            "updatedAt": to_iso(row["updated_at"]) if row else None,
            "updatedBy": (row["updated_by"] or None) if row else None,
        }

    async def update_liability(
        self,
        slug: str,
        fields: dict[str, Any],
        updated_by: str | None = None,
    ) -> dict[str, dict[str, Any]]:
        clean = normalize_liability_fields(slug, fields)
        if not clean:
            return await self.get_all_liabilities()

        columns = [LIABILITY_COLUMNS[name] for name in clean]
        values = list(clean.values())
        placeholders = ", ".join(["%s"] * len(columns))
        assignments = ", ".join(f"{column} = EXCLUDED.{column}" for column in columns)

        try:
            async with self.database.connection() as connection:
                async with connection.cursor() as cursor:
                    await cursor.execute(
                        f"""
                        INSERT INTO manual_liability (slug, {", ".join(columns)}, updated_at, updated_by)
                        VALUES (%s, {placeholders}, now(), %s)
                        ON CONFLICT (slug) DO UPDATE
                        SET {assignments}, updated_at = now(), updated_by = EXCLUDED.updated_by
                        """,
                        (slug, *values, updated_by or None),
                    )
        except pg_errors.NumericValueOutOfRange as exc:
            raise ValidationError(OUT_OF_RANGE) from exc

        return await self.get_all_liabilities()

    async def update_asset_value(self, value_usd: Any, updated_by: str | None = None) -> dict[str, Any]:
        value = norm_currency(value_usd)

        try:
            async with self.database.connection() as connection:
                async with connection.cursor() as cursor:
                    await cursor.execute(
                        """
                        INSERT INTO manual_asset (slug, value_usd, updated_at, updated_by)
                        VALUES (%s, %s, now(), %s)
                        ON CONFLICT (slug) DO UPDATE
                        SET value_usd = EXCLUDED.value_usd, updated_at = now(), updated_by = EXCLUDED.updated_by
                        """,
                        (ASSET_SLUG, value, updated_by or None),
                    )
        except pg_errors.NumericValueOutOfRange as exc:
            raise ValidationError(OUT_OF_RANGE) from exc

        return await self.get_asset_value()


class MemorySlugStore:
    """In-process stand-in used when no database is configured.

    Applies the same validation as the PostgreSQL store; contents are lost on
    restart.
    """

    def __init__(self) -> None:
        self._liabilities: dict[str, dict[str, Any]] = {}
        self._asset: dict[str, Any] = {"valueUsd": None, "updatedAt": None, "updatedBy": None}

    async def init(self) -> None:
        return None

    async def get_all_liabilities(self) -> dict[str, dict[str, Any]]:
        return _fill_missing({slug: dict(row) for slug, row in self._liabilities.items()})

    async def get_asset_value(self) -> dict[str, Any]:
        return {"slug": ASSET_SLUG, **self._asset}

    async def update_liability(
        self,
        slug: str,
        fields: dict[str, Any],
        updated_by: str | None = None,
    ) -> dict[str, dict[str, Any]]:
        clean = normalize_liability_fields(slug, fields)
        if not clean:
            return await self.get_all_liabilities()

        row = self._liabilities.setdefault(slug, default_liability(slug))
        for name, value in clean.items():
            row[name] = float(value) if isinstance(value, Decimal) else value
        row["updatedAt"] = now_iso()
        row["updatedBy"] = updated_by or None
        return await self.get_all_liabilities()

    async def update_asset_value(self, value_usd: Any, updated_by: str | None = None) -> dict[str, Any]:
        value = norm_currency(value_usd)
        self._asset = {
            "valueUsd": _number(value),
            "updatedAt": now_iso(),
            "updatedBy": updated_by or None,
        }
        return await self.get_asset_value()
