from __future__ import annotations

import json

import httpx

from teller_dashboard.stores import ManualStores


def test_forwards_method_path_query_and_body(configure, make_client, demo_dataset) -> None:
    configure(backend_url="https://bank.example")
    seen = {}

    def upstream(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["url"] = str(request.url)
        seen["body"] = request.content
        seen["auth"] = request.headers.get("authorization")
        return httpx.Response(201, json={"ok": True}, headers={"x-upstream": "yes"})

    with make_client(ManualStores(dataset=demo_dataset), upstream=upstream) as client:
        response = client.post(
            "/api/accounts/acc_1/payments?dry=1",
            json={"amount": 5},
            headers={"authorization": "Basic abc"},
        )

    assert response.status_code == 201
    assert response.json() == {"ok": True}
    assert response.headers["x-upstream"] == "yes"
    assert seen["method"] == "POST"
    assert seen["url"] == "https://bank.example/api/accounts/acc_1/payments?dry=1"
    assert json.loads(seen["body"]) == {"amount": 5}
    assert seen["auth"] == "Basic abc"


def test_upstream_status_is_passed_through(make_client, demo_dataset) -> None:
    def upstream(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, json={"error": "nope"})

    with make_client(ManualStores(dataset=demo_dataset), upstream=upstream) as client:
        response = client.get("/api/accounts/unknown")

    assert response.status_code == 404
    assert response.json() == {"error": "nope"}


def test_transport_error_is_bad_gateway(make_client, demo_dataset) -> None:
    with make_client(ManualStores(dataset=demo_dataset)) as client:
        response = client.get("/api/accounts")

    assert response.status_code == 502
    assert response.json()["error"] == "Backend proxy error"
    assert "upstream not configured" in response.json()["message"]


def test_local_routes_are_not_proxied(configure, make_client, demo_dataset) -> None:
    configure(feature_manual_data=False)

    def upstream(request: httpx.Request) -> httpx.Response:
        raise AssertionError(f"unexpected upstream call to {request.url}")

    with make_client(ManualStores(dataset=demo_dataset), upstream=upstream) as client:
        response = client.get("/api/db/accounts/acc_1/manual-data")

    assert response.status_code == 200
    assert response.json()["rent_roll"] is None
