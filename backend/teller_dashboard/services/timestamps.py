"""UTC timestamps rendered as ISO-8601 strings ending in ``Z``."""

from __future__ import annotations

from datetime import datetime, timezone


def to_iso(value: datetime | str | None) -> str | None:
    if value is None or isinstance(value, str):
        return value

    # TIMESTAMPTZ columns come back aware; a naive value is taken as UTC.
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def now_iso() -> str:
    return to_iso(datetime.now(timezone.utc))
