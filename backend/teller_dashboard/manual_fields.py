"""Typed manual field endpoints for the property, HELOC and mortgage cards."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends

from .config import settings
from .errors import FeatureDisabledError, InvalidInputError, ReadOnlyModeError, StoreUnavailableError
from .services.manual_fields_store import ManualFieldsStore, empty_field, field_key
from .services.normalize import ValidationError
from .services.timestamps import now_iso
from .stores import ManualStores, get_manual_stores

router = APIRouter(prefix="/api/db/accounts", tags=["manual-fields"])


def _require_feature() -> None:
    if not settings.feature_manual_data:
        raise FeatureDisabledError("manual_data_disabled")


def _writable_store(stores: ManualStores) -> ManualFieldsStore:
    _require_feature()
    if settings.manual_data_readonly:
        raise ReadOnlyModeError()
    if stores.fields is None:
        raise StoreUnavailableError("manual_fields_store_unavailable")
    return stores.fields


async def _read_field(
    stores: ManualStores,
    domain: str,
    account_id: str,
    field: str,
    unit: str | None = None,
) -> dict[str, Any]:
    _require_feature()
    if stores.fields is None:
        return empty_field(domain, account_id, field, unit)

    try:
        return await stores.fields.get(domain, account_id, field, unit)
    except ValidationError as exc:
        raise InvalidInputError("validation_failed", reason=str(exc)) from exc


async def _write_field(
    stores: ManualStores,
    domain: str,
    account_id: str,
    field: str,
    body: Any,
    unit: str | None = None,
) -> dict[str, Any]:
    store = _writable_store(stores)
    payload = body if isinstance(body, dict) else {}
    if "value" not in payload:
        raise InvalidInputError("validation_failed", reason="value is required (use null to clear)")

    value = payload["value"]
    updated_by = payload.get("updated_by")
    updated_by = str(updated_by) if updated_by else None

    try:
        if settings.manual_data_dry_run:
            return {
                "account_id": account_id,
                "key": field_key(domain, field, unit),
                "value": store.normalize(domain, field, value),
                "updated_at": now_iso(),
                "updated_by": updated_by,
                "source": "dry-run",
            }
        return await store.set(domain, account_id, field, value, unit=unit, updated_by=updated_by)
    except ValidationError as exc:
        raise InvalidInputError("validation_failed", reason=str(exc)) from exc


@router.get("/{account_id}/manual/property/{unit}/{field}")
async def get_property_field(
    account_id: str,
    unit: str,
    field: str,
    stores: ManualStores = Depends(get_manual_stores),
) -> dict[str, Any]:
    return await _read_field(stores, "property", account_id, field, unit)


@router.put("/{account_id}/manual/property/{unit}/{field}")
async def put_property_field(
    account_id: str,
    unit: str,
    field: str,
    body: Any = Body(default=None),
    stores: ManualStores = Depends(get_manual_stores),
) -> dict[str, Any]:
    return await _write_field(stores, "property", account_id, field, body, unit)


@router.get("/{account_id}/manual/heloc/{field}")
async def get_heloc_field(
    account_id: str,
    field: str,
    stores: ManualStores = Depends(get_manual_stores),
) -> dict[str, Any]:
    return await _read_field(stores, "heloc", account_id, field)


@router.put("/{account_id}/manual/heloc/{field}")
async def put_heloc_field(
    account_id: str,
    field: str,
    body: Any = Body(default=None),
    stores: ManualStores = Depends(get_manual_stores),
) -> dict[str, Any]:
    return await _write_field(stores, "heloc", account_id, field, body)


@router.get("/{account_id}/manual/mortgage/{field}")
async def get_mortgage_field(
    account_id: str,
    field: str,
    stores: ManualStores = Depends(get_manual_stores),
) -> dict[str, Any]:
    return await _read_field(stores, "mortgage", account_id, field)


@router.put("/{account_id}/manual/mortgage/{field}")
async def put_mortgage_field(
    account_id: str,
    field: str,
    body: Any = Body(default=None),
    stores: ManualStores = Depends(get_manual_stores),
) -> dict[str, Any]:
    return await _write_field(stores, "mortgage", account_id, field, body)
