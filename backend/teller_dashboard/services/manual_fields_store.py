"""Typed per-account manual fields for the property, HELOC and mortgage cards.

Each domain owns one table with one row per natural key (account id, plus the
unit for property). Reads project a single column out of that row; writes
upsert a single column and leave the rest of the row alone.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from decimal import Decimal
from functools import partial
from typing import TYPE_CHECKING, Any, Literal

from psycopg import errors as pg_errors

from .normalize import (
    FIELD_PERCENT,
    OUT_OF_RANGE,
    UnknownFieldError,
    ValidationError,
    norm_currency,
    norm_int,
    norm_percent,
    norm_string,
)
from .timestamps import to_iso

if TYPE_CHECKING:
    from ..database import Database

Domain = Literal["property", "heloc", "mortgage"]


@dataclass(frozen=True)
class FieldSpec:
    normalize: Callable[[Any], Any]


@dataclass(frozen=True)
class DomainSpec:
    table: str
    key_columns: tuple[str, ...]
    fields: dict[str, FieldSpec]


_CURRENCY = FieldSpec(norm_currency)
_PERCENT = FieldSpec(partial(norm_percent, policy=FIELD_PERCENT))
_TERM = FieldSpec(partial(norm_int, min_value=1))

DOMAINS: dict[str, DomainSpec] = {
    "property": DomainSpec(
        table="manual_property",
        key_columns=("account_id", "unit"),
        fields={
            "rent_amount": _CURRENCY,
            "tenant_name": FieldSpec(norm_string),
        },
    ),
    "heloc": DomainSpec(
        table="manual_heloc",
        key_columns=("account_id",),
        fields={
            "amount": _CURRENCY,
            "interest_rate_pct": _PERCENT,
            "term_months": _TERM,
            "payment_amount": _CURRENCY,
        },
    ),
    "mortgage": DomainSpec(
        table="manual_mortgage",
        key_columns=("account_id",),
        fields={
            "principal_amount": _CURRENCY,
            "interest_rate_pct": _PERCENT,
            "term_months": _TERM,
            "payment_day": FieldSpec(partial(norm_int, min_value=1, max_value=28)),
            "payment_amount": _CURRENCY,
        },
    ),
}

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS manual_property (
    account_id TEXT NOT NULL,
    unit TEXT NOT NULL,
    rent_amount NUMERIC(12, 2) NULL,
    tenant_name TEXT NULL,
    updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
    updated_by TEXT NULL,
    PRIMARY KEY (account_id, unit)
);

CREATE TABLE IF NOT EXISTS manual_heloc (
    account_id TEXT PRIMARY KEY,
    amount NUMERIC(12, 2) NULL,
    interest_rate_pct NUMERIC(5, 2) NULL,
    term_months INTEGER NULL,
    payment_amount NUMERIC(12, 2) NULL,
    updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
    updated_by TEXT NULL
);

CREATE TABLE IF NOT EXISTS manual_mortgage (
    account_id TEXT PRIMARY KEY,
    principal_amount NUMERIC(12, 2) NULL,
    interest_rate_pct NUMERIC(5, 2) NULL,
    term_months INTEGER NULL,
    payment_day INTEGER NULL,
    payment_amount NUMERIC(12, 2) NULL,
    updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
    updated_by TEXT NULL
);
"""


def field_key(domain: str, field: str, unit: str | None = None) -> str:
    if domain == "property":
        return f"property.{unit}.{field}"
    return f"{domain}.{field}"


def _domain_spec(domain: str) -> DomainSpec:
    spec = DOMAINS.get(domain)
    if spec is None:
        raise ValidationError(f"unknown domain: {domain}")
    return spec


def _field_spec(domain: str, field: str) -> FieldSpec:
    spec = _domain_spec(domain).fields.get(field)
    if spec is None:
        raise UnknownFieldError(field)
    return spec


def _to_json(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    return value


def empty_field(domain: str, account_id: str, field: str, unit: str | None = None) -> dict[str, Any]:
    return {
        "account_id": account_id,
        "key": field_key(domain, field, unit),
        "value": None,
        "updated_at": None,
        "updated_by": None,
    }


def _key_values(domain: str, account_id: str, unit: str | None) -> tuple[str, ...]:
    if domain == "property":
        if not unit:
            raise ValidationError("unit is required for property fields")
        return (account_id, unit)
    return (account_id,)


class ManualFieldsStore:
    def __init__(self, database: Database):
        self.database = database

    async def init(self) -> None:
        async with self.database.connection() as connection:
            async with connection.cursor() as cursor:
                await cursor.execute(SCHEMA_SQL)

    @staticmethod
    def normalize(domain: str, field: str, value: Any) -> Any:
        """Validate one field value without touching storage."""
        return _to_json(_field_spec(domain, field).normalize(value))

    async def get(self, domain: str, account_id: str, field: str, unit: str | None = None) -> dict[str, Any]:
        spec = _domain_spec(domain)
        _field_spec(domain, field)
        keys = _key_values(domain, account_id, unit)
        where = " AND ".join(f"{column} = %s" for column in spec.key_columns)

        async with self.database.connection() as connection:
            async with connection.cursor() as cursor:
                await cursor.execute(
                    f"""
                    SELECT {field} AS value, updated_at, updated_by
                    FROM {spec.table}
                    WHERE {where}
                    """,
                    keys,
                )
                row = await cursor.fetchone()

        if row is None:
            return empty_field(domain, account_id, field, unit)

        return {
            "account_id": account_id,
            "key": field_key(domain, field, unit),
            "value": _to_json(row["value"]),
            "updated_at": to_iso(row["updated_at"]),
            "updated_by": row["updated_by"] or None,
        }

    async def set(
        self,
        domain: str,
        account_id: str,
        field: str,
        value: Any,
        *,
        unit: str | None = None,
        updated_by: str | None = None,
    ) -> dict[str, Any]:
        spec = _domain_spec(domain)
        normalized = _field_spec(domain, field).normalize(value)
        keys = _key_values(domain, account_id, unit)

        key_columns = ", ".join(spec.key_columns)
        placeholders = ", ".join(["%s"] * len(spec.key_columns))

        try:
            async with self.database.connection() as connection:
                async with connection.cursor() as cursor:
                    await cursor.execute(
                        f"""
                        INSERT INTO {spec.table} ({key_columns}, {field}, updated_at, updated_by)
                        VALUES ({placeholders}, %s, now(), %s)
                        ON CONFLICT ({key_columns}) DO UPDATE
                        SET {field} = EXCLUDED.{field},
                            updated_at = now(),
                            updated_by = EXCLUDED.updated_by
                        RETURNING {field} AS value, updated_at, updated_by
                        """,
                        (*keys, normalized, updated_by or None),
                    )
                    row = await cursor.fetchone()
        except pg_errors.NumericValueOutOfRange as exc:
            raise ValidationError(OUT_OF_RANGE) from exc

        return {
            "account_id": account_id,
            "key": field_key(domain, field, unit),
            "value": _to_json(row["value"]),
            "updated_at": to_iso(row["updated_at"]),
            "updated_by": row["updated_by"] or None,
        }
