"""Named liabilities, the named property asset and the equity rollup."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any

from fastapi import APIRouter, Body, Depends

from .config import settings
from .errors import FeatureDisabledError, InvalidInputError, ManualDataError, ReadOnlyModeError
from .services.normalize import UnknownFieldError, UnknownSlugError, ValidationError, norm_currency
from .services.slug_store import ASSET_SLUG, normalize_liability_fields
from .stores import ManualStores, get_manual_stores

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/manual", tags=["manual-summary"])


def _body(body: Any) -> dict[str, Any]:
    return body if isinstance(body, dict) else {}


def _check_writable(flag: bool, disabled_error: str) -> None:
    if not settings.feature_manual_data or not flag:
        raise FeatureDisabledError(disabled_error, status_code=405)
    if settings.manual_data_readonly:
        raise ReadOnlyModeError()


@router.get("/summary")
async def manual_summary(stores: ManualStores = Depends(get_manual_stores)) -> dict[str, Any]:
    try:
        return await stores.summary()
    except Exception as exc:
        logger.exception("Manual summary failed")
        raise ManualDataError(status_code=500, error="failed_manual_summary") from exc


@router.put("/liabilities/{slug}")
async def update_liability(
    slug: str,
    body: Any = Body(default=None),
    stores: ManualStores = Depends(get_manual_stores),
) -> dict[str, Any]:
    _check_writable(settings.feature_manual_liabilities, "manual_liabilities_disabled")

    fields = dict(_body(body))
    updated_by = fields.pop("updatedBy", None) or None

    try:
        if settings.manual_data_dry_run:
            clean = normalize_liability_fields(slug, fields)
            liabilities = await stores.slugs.get_all_liabilities()
            preview = {**liabilities[slug]}
            preview.update({k: float(v) if isinstance(v, Decimal) else v for k, v in clean.items()})
            return {"ok": True, "liabilities": {**liabilities, slug: preview}, "source": "dry-run"}

        liabilities = await stores.slugs.update_liability(slug, fields, updated_by)
    except (UnknownSlugError, UnknownFieldError) as exc:
        raise InvalidInputError(str(exc)) from exc
    except ValidationError as exc:
        raise InvalidInputError("validation_failed", message=str(exc)) from exc

    return {"ok": True, "liabilities": liabilities}


@router.put(f"/assets/{ASSET_SLUG}")
async def update_asset_value(
    body: Any = Body(default=None),
    stores: ManualStores = Depends(get_manual_stores),
) -> dict[str, Any]:
    _check_writable(settings.feature_manual_assets, "manual_assets_disabled")

    payload = _body(body)
    updated_by = payload.get("updatedBy") or None

    try:
        if settings.manual_data_dry_run:
            value = norm_currency(payload.get("valueUsd"))
            current = await stores.slugs.get_asset_value()
            preview = {**current, "valueUsd": None if value is None else float(value)}
            return {"ok": True, "asset": preview, "source": "dry-run"}

        asset = await stores.slugs.update_asset_value(payload.get("valueUsd"), updated_by)
    except ValidationError as exc:
        raise InvalidInputError("validation_failed", message=str(exc)) from exc

    return {"ok": True, "asset": asset}
