"""Frontend runtime config: merge the upstream backend's flags with server guards."""

from __future__ import annotations

import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)

FLAG_KEYS = ("FEATURE_USE_BACKEND", "FEATURE_MANUAL_DATA", "FEATURE_STATIC_DB")


class ConfigPayloadError(ValueError):
    """Raised when the upstream config payload is unusable."""


def base_config(*, manual_data: bool, static_db: bool) -> dict[str, Any]:
    return {
        "apiBaseUrl": "/api",
        "FEATURE_USE_BACKEND": True,
        "FEATURE_MANUAL_DATA": manual_data,
        "FEATURE_STATIC_DB": static_db,
    }


def compute_backend_mode(config: dict[str, Any]) -> str:
    if config.get("FEATURE_STATIC_DB"):
        return "static"
    if not config.get("FEATURE_USE_BACKEND"):
        return "disabled"
    return "live"


def enforce_server_guards(config: dict[str, Any], *, manual_data: bool, static_db: bool) -> dict[str, Any]:
    merged = {**base_config(manual_data=manual_data, static_db=static_db), **config}

    # The environment has the final say on manual data.
    merged["FEATURE_MANUAL_DATA"] = bool(manual_data and merged["FEATURE_MANUAL_DATA"])

    merged["FEATURE_STATIC_DB"] = bool(static_db or merged["FEATURE_STATIC_DB"])
    if merged["FEATURE_STATIC_DB"]:
        merged["FEATURE_USE_BACKEND"] = False
    else:
        merged["FEATURE_USE_BACKEND"] = bool(merged["FEATURE_USE_BACKEND"])

    merged["backendMode"] = compute_backend_mode(merged)
    return merged


def fallback_config(*, manual_data: bool, static_db: bool) -> dict[str, Any]:
    return enforce_server_guards(
        base_config(manual_data=manual_data, static_db=static_db),
        manual_data=manual_data,
        static_db=static_db,
    )


def validate_config_payload(payload: Any, *, manual_data: bool, static_db: bool) -> dict[str, Any]:
    if not isinstance(payload, dict):
        raise ConfigPayloadError("Config payload is not an object")

    api_base_url = payload.get("apiBaseUrl")
    if not isinstance(api_base_url, str) or not api_base_url.strip():
        raise ConfigPayloadError("Config payload missing required apiBaseUrl string")

    sanitized = base_config(manual_data=manual_data, static_db=static_db)
    sanitized["apiBaseUrl"] = api_base_url.strip()

    for key in FLAG_KEYS:
        if key not in payload:
            continue
        if isinstance(payload[key], bool):
            sanitized[key] = payload[key]
        else:
            logger.warning("Ignoring invalid %s value from backend payload", key)

    if "backendMode" in payload:
        if isinstance(payload["backendMode"], str):
            sanitized["backendMode"] = payload["backendMode"]
        else:
            logger.warning("Ignoring invalid backendMode value from backend payload")

    return enforce_server_guards(sanitized, manual_data=manual_data, static_db=static_db)


async def fetch_backend_config(
    client: httpx.AsyncClient,
    backend_url: str,
    *,
    timeout: float,
    manual_data: bool,
    static_db: bool,
) -> dict[str, Any]:
    response = await client.get(
        f"{backend_url}/api/config",
        headers={"Accept": "application/json"},
        timeout=timeout,
    )
    if response.status_code >= 400:
        raise ConfigPayloadError(f"Backend config request failed with status {response.status_code}")

    try:
        payload = response.json()
    except ValueError as exc:
        raise ConfigPayloadError("Backend config response is not JSON") from exc

    return validate_config_payload(payload, manual_data=manual_data, static_db=static_db)
