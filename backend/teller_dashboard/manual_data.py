"""Rent-roll endpoints (one manual value per account)."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, Query, Request
from psycopg import Error as DatabaseError

from .config import settings
from .errors import (
    ForeignKeyViolationError,
    InvalidInputError,
    ManualDataError,
    ReadOnlyModeError,
    StoreUnavailableError,
    get_request_id,
)
from .services.normalize import ValidationError, normalize_rent_roll
from .services.timestamps import now_iso
from .stores import ManualStores, get_manual_stores

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/db/accounts", tags=["manual-data"])

PERSIST_FAILED = "Failed to persist manual data"


def _log_failure(request: Request, op: str, account_id: str, exc: Exception, code: str | None = None) -> None:
    logger.error(
        "scope=manual-data op=%s account_id=%s request_id=%s code=%s message=%s",
        op,
        account_id,
        get_request_id(request),
        code or "-",
        exc,
    )


@router.get("/{account_id}/manual-data")
async def get_manual_data(
    account_id: str,
    request: Request,
    currency: str | None = Query(default=None),
    stores: ManualStores = Depends(get_manual_stores),
) -> dict[str, Any]:
    # The account does not have to exist yet; manual data may be entered first.
    if not settings.feature_manual_data or stores.rent_roll is None:
        payload: dict[str, Any] = {"account_id": account_id, "rent_roll": None, "updated_at": None}
        if currency:
            payload["currency"] = currency
        return payload

    try:
        return await stores.rent_roll.get(account_id, currency)
    except (DatabaseError, OSError) as exc:
        _log_failure(request, "GET", account_id, exc)
        raise ManualDataError(status_code=500, error="Failed to read manual data") from exc


@router.put("/{account_id}/manual-data")
async def put_manual_data(
    account_id: str,
    request: Request,
    body: Any = Body(default=None),
    stores: ManualStores = Depends(get_manual_stores),
) -> dict[str, Any]:
    payload = body if isinstance(body, dict) else {}
    if "rent_roll" not in payload:
        raise InvalidInputError("rent_roll is required (use null to clear)")

    if settings.manual_data_readonly:
        raise ReadOnlyModeError()
    if not settings.feature_manual_data or stores.rent_roll is None:
        raise StoreUnavailableError()

    rent_roll = payload["rent_roll"]
    currency = payload.get("currency") if isinstance(payload.get("currency"), str) else None

    try:
        # Both backends see the same canonical value; null and "" clear.
        normalized = normalize_rent_roll(rent_roll)
        if settings.manual_data_dry_run:
            return {
                "account_id": account_id,
                "rent_roll": None if normalized is None else float(normalized),
                "updated_at": now_iso(),
                "source": "dry-run",
            }

        if normalized is None:
            return await stores.rent_roll.clear(account_id, currency)
        return await stores.rent_roll.set(account_id, normalized, currency)
    except ValidationError as exc:
        _log_failure(request, "PUT", account_id, exc)
        raise InvalidInputError(PERSIST_FAILED, message=str(exc)) from exc
    except ForeignKeyViolationError as exc:
        _log_failure(request, "PUT", account_id, exc, code=exc.code)
        raise
    except (DatabaseError, OSError) as exc:
        _log_failure(request, "PUT", account_id, exc)
        raise ManualDataError(str(exc), status_code=500, error=PERSIST_FAILED) from exc
