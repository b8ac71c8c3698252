"""Runtime config, health and maintenance endpoints served by this proxy."""

from __future__ import annotations

import hmac
import logging
from typing import Any

import httpx
from fastapi import APIRouter, Depends, Header

from .config import settings
from .errors import FeatureDisabledError, ManualDataError
from .proxy import get_http_client
from .services.migrations import drop_manual_data_fk
from .services.runtime_config import fallback_config, fetch_backend_config
from .stores import ManualStores, get_manual_stores

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["system"])
migrate_router = APIRouter(prefix="/api/migrate", tags=["system"])


@router.get("/config")
async def runtime_config(client: httpx.AsyncClient = Depends(get_http_client)) -> dict[str, Any]:
    flags = {"manual_data": settings.feature_manual_data, "static_db": settings.feature_static_db}
    try:
        return await fetch_backend_config(
            client,
            settings.backend_url,
            timeout=settings.config_timeout_seconds,
            **flags,
        )
    except (httpx.HTTPError, ValueError) as exc:
        logger.error("Falling back to static config defaults: %s", exc)
        return fallback_config(**flags)


@router.get("/healthz")
async def healthz(stores: ManualStores = Depends(get_manual_stores)) -> dict[str, Any]:
    manual: dict[str, Any] = {
        "enabled": settings.feature_manual_data,
        "readonly": settings.manual_data_readonly,
        "dryRun": settings.manual_data_dry_run,
        "connected": None,
        "summary": None,
    }
    result: dict[str, Any] = {"ok": True, "backendUrl": settings.backend_url, "manualData": manual}

    if settings.feature_manual_data and stores.database is not None:
        try:
            await stores.database.ping()
            manual["connected"] = True
        except Exception as exc:
            result["ok"] = False
            manual["connected"] = False
            manual["error"] = str(exc)

    if settings.feature_manual_data:
        manual["summary"] = await stores.health_totals()

    return result


@migrate_router.post("/drop-manual-data-fk")
async def migrate_drop_manual_data_fk(
    secret: str | None = Header(default=None, alias="x-manual-data-migration-secret"),
    stores: ManualStores = Depends(get_manual_stores),
) -> dict[str, Any]:
    if not settings.feature_manual_data or stores.database is None:
        raise FeatureDisabledError("manual_data_not_enabled", status_code=503)

    expected = settings.manual_data_migration_secret
    if not secret or not expected or not hmac.compare_digest(secret.encode(), expected.encode()):
        raise ManualDataError(status_code=403, error="forbidden")

    try:
        steps = await drop_manual_data_fk(stores.database, settings.manual_data_table)
    except Exception as exc:
        logger.exception("Manual data FK migration failed")
        raise ManualDataError(str(exc), status_code=500, error="migration_failed") from exc

    return {"success": True, "steps": steps}
