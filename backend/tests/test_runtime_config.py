import asyncio

import httpx
import pytest

from teller_dashboard.services.runtime_config import (
    ConfigPayloadError,
    enforce_server_guards,
    fallback_config,
    fetch_backend_config,
    validate_config_payload,
)


def _run(coro):
    return asyncio.run(coro)


def _fetch(handler, **flags):
    async def scenario():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await fetch_backend_config(client, "https://bank.example", timeout=5, **flags)

    return _run(scenario())


def test_fallback_is_live_backend() -> None:
    assert fallback_config(manual_data=False, static_db=False) == {
        "apiBaseUrl": "/api",
        "FEATURE_USE_BACKEND": True,
        "FEATURE_MANUAL_DATA": False,
        "FEATURE_STATIC_DB": False,
        "backendMode": "live",
    }


def test_static_db_disables_backend() -> None:
    config = enforce_server_guards({"FEATURE_USE_BACKEND": True}, manual_data=False, static_db=True)

    assert config["FEATURE_STATIC_DB"] is True
    assert config["FEATURE_USE_BACKEND"] is False
    assert config["backendMode"] == "static"


def test_environment_wins_over_upstream_manual_flag() -> None:
    upstream = {"apiBaseUrl": "/api", "FEATURE_MANUAL_DATA": True}

    assert validate_config_payload(upstream, manual_data=False, static_db=False)["FEATURE_MANUAL_DATA"] is False
    assert validate_config_payload(upstream, manual_data=True, static_db=False)["FEATURE_MANUAL_DATA"] is True


def test_disabled_backend_mode() -> None:
    config = validate_config_payload(
        {"apiBaseUrl": "/api", "FEATURE_USE_BACKEND": False},
        manual_data=False,
        static_db=False,
    )

    assert config["backendMode"] == "disabled"


@pytest.mark.parametrize("payload", [None, [], {"apiBaseUrl": ""}, {"apiBaseUrl": 3}])
def test_invalid_payloads_are_rejected(payload) -> None:
    with pytest.raises(ConfigPayloadError):
        validate_config_payload(payload, manual_data=False, static_db=False)


def test_non_boolean_flags_are_ignored() -> None:
    config = validate_config_payload(
        {"apiBaseUrl": " /v2 ", "FEATURE_USE_BACKEND": "yes"},
        manual_data=False,
        static_db=False,
    )

    assert config["apiBaseUrl"] == "/v2"
    assert config["FEATURE_USE_BACKEND"] is True


def test_fetch_merges_upstream_payload() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        return httpx.Response(200, json={"apiBaseUrl": "/api", "FEATURE_MANUAL_DATA": True})

    config = _fetch(handler, manual_data=True, static_db=False)

    assert seen["url"] == "https://bank.example/api/config"
    assert config["FEATURE_MANUAL_DATA"] is True
    assert config["backendMode"] == "live"


def test_fetch_raises_on_error_status() -> None:
    with pytest.raises(ConfigPayloadError, match="503"):
        _fetch(lambda request: httpx.Response(503), manual_data=False, static_db=False)


def test_fetch_raises_on_non_json() -> None:
    with pytest.raises(ConfigPayloadError, match="not JSON"):
        _fetch(lambda request: httpx.Response(200, text="<html>"), manual_data=False, static_db=False)
