"""Ledger API routes — auth, status codes and response shapes.

Invariants:
    - Every endpoint except health and /credits/rates requires a bearer session
    - Purchase declines surface as their error code and HTTP status
    - Admin settlement requires X-Admin-Token
"""

import logging

from httpx import ASGITransport, AsyncClient

from credit_ledger.config import Settings, get_settings
from credit_ledger.main import app
from credit_ledger.services.credit_service import CreditService

BOB_TOKEN = "bob-session-token-0002"


async def test_health(client):
    res = await client.get("/api/v1/health/")
    assert res.status_code == 200
    assert res.json()["status"] == "healthy"


async def test_readiness_reports_database(client):
    res = await client.get("/api/v1/health/ready")
    assert res.status_code == 200
    assert res.json()["checks"]["database"] == "healthy"


async def test_balance_requires_auth(client, alice):
    res = await client.get("/api/v1/credits")
    assert res.status_code == 401
    assert res.json()["error"]["code"] == "UNAUTHENTICATED"


async def test_unknown_token_is_rejected(client, alice, auth_headers):
    res = await client.get("/api/v1/credits", headers=auth_headers("nope"))
    assert res.status_code == 401


async def test_balance(client, alice, auth_headers):
    res = await client.get("/api/v1/credits", headers=auth_headers())
    assert res.status_code == 200
    assert res.json() == {"success": True, "credits": 100, "account_id": alice.id}


async def test_rates_are_public(client):
    res = await client.get("/api/v1/credits/rates")
    body = res.json()
    assert res.status_code == 200
    assert body["rates"]["credits_per_unit"] == 10
    assert [e["credits"] for e in body["examples"]] == [10, 100, 500, 1000]


async def test_purchase_then_already_owned(client, alice, auth_headers):
    first = await client.post("/api/v1/purchases/1", headers=auth_headers())
    assert first.status_code == 200
    assert first.json()["remaining_credits"] == 60
    assert first.json()["message"] == "Item purchased successfully!"

    second = await client.post("/api/v1/purchases/1", headers=auth_headers())
    assert second.status_code == 400
    assert second.json()["error"]["code"] == "ALREADY_OWNED"


async def test_purchase_insufficient_funds(client, alice, auth_headers):
    await client.post("/api/v1/purchases/1", headers=auth_headers())
    await client.post("/api/v1/purchases/4", headers=auth_headers())

    res = await client.post("/api/v1/purchases/3", headers=auth_headers())

    assert res.status_code == 400
    error = res.json()["error"]
    assert error["code"] == "INSUFFICIENT_FUNDS"
    assert error["details"] == {"required": 50, "available": 0, "shortfall": 50}


async def test_purchase_unavailable_items(client, alice, auth_headers):
    missing = await client.post("/api/v1/purchases/999", headers=auth_headers())
    draft = await client.post("/api/v1/purchases/5", headers=auth_headers())
    assert missing.status_code == 404
    assert draft.status_code == 404
    assert draft.json()["error"]["code"] == "ITEM_UNAVAILABLE"


async def test_purchase_requires_auth(client, alice):
    res = await client.post("/api/v1/purchases/1")
    assert res.status_code == 401


async def test_owned_and_eligibility(client, alice, auth_headers):
    await client.post("/api/v1/purchases/2", headers=auth_headers())

    owned = await client.get("/api/v1/purchases/owned", headers=auth_headers())
    assert owned.status_code == 200
    assert owned.json()["count"] == 1
    assert owned.json()["items"][0]["id"] == 2

    eligibility = await client.get(
        "/api/v1/purchases/2/eligibility", headers=auth_headers(),
    )
    assert eligibility.status_code == 200
    assert eligibility.json()["already_owned"] is True
    assert eligibility.json()["can_purchase"] is False


async def test_owned_items_are_per_account(client, alice, bob, auth_headers):
    await client.post("/api/v1/purchases/2", headers=auth_headers())

    res = await client.get("/api/v1/purchases/owned", headers=auth_headers(BOB_TOKEN))

    assert res.json()["count"] == 0


async def test_topup_request_and_settlement(client, alice, auth_headers):
    res = await client.post(
        "/api/v1/credits/top-up",
        json={"amount": "12.50", "method": "gcash", "reference": "  REF-9 "},
        headers=auth_headers(),
    )
    assert res.status_code == 201
    body = res.json()
    assert body["credits_requested"] == 125
    assert body["real_amount"] == "12.50"
    assert body["status"] == "pending"

    balance = await client.get("/api/v1/credits", headers=auth_headers())
    assert balance.json()["credits"] == 100

    path = f"/api/v1/admin/top-ups/{body['transaction_id']}/settle"
    denied = await client.post(path, json={"approved": True})
    assert denied.status_code == 401

    admin = {"X-Admin-Token": "test-admin-token"}
    settled = await client.post(path, json={"approved": True}, headers=admin)
    assert settled.status_code == 200
    assert settled.json()["status"] == "completed"

    again = await client.post(path, json={"approved": True}, headers=admin)
    assert again.status_code == 409

    balance = await client.get("/api/v1/credits", headers=auth_headers())
    assert balance.json()["credits"] == 225


async def test_topup_validation(client, alice, auth_headers):
    negative = await client.post(
        "/api/v1/credits/top-up",
        json={"amount": "-1", "method": "gcash"},
        headers=auth_headers(),
    )
    assert negative.status_code == 400
    assert negative.json()["error"]["code"] == "VALIDATION_ERROR"

    too_small = await client.post(
        "/api/v1/credits/top-up",
        json={"amount": "0.50", "method": "gcash"},
        headers=auth_headers(),
    )
    assert too_small.status_code == 400
    assert too_small.json()["error"]["code"] == "INVALID_AMOUNT"


async def test_transactions_and_stats(client, alice, auth_headers):
    await client.post("/api/v1/purchases/1", headers=auth_headers())
    await client.post(
        "/api/v1/credits/top-up",
        json={"amount": "3", "method": "bank"},
        headers=auth_headers(),
    )

    history = await client.get("/api/v1/transactions", headers=auth_headers())
    assert history.status_code == 200
    types = [t["type"] for t in history.json()["transactions"]]
    assert types == ["topup", "purchase"]

    stats = await client.get("/api/v1/transactions/stats", headers=auth_headers())
    assert stats.json()["stats"]["total_spent"] == 40
    assert stats.json()["stats"]["pending_count"] == 1


async def test_recommendations_limit_is_clamped(client, alice, auth_headers):
    many = await client.get(
        "/api/v1/recommendations?limit=500", headers=auth_headers(),
    )
    assert many.status_code == 200
    assert many.json()["count"] == 5

    one = await client.get("/api/v1/recommendations?limit=0", headers=auth_headers())
    assert one.json()["count"] == 1
    assert one.json()["recommendations"][0]["id"] == 6


async def test_recommendations_require_auth(client, alice):
    res = await client.get("/api/v1/recommendations")
    assert res.status_code == 401


async def test_settlement_refused_without_configured_admin_token(client, alice, auth_headers):
    created = await client.post(
        "/api/v1/credits/top-up",
        json={"amount": "5", "method": "bank"},
        headers=auth_headers(),
    )
    app.dependency_overrides[get_settings] = lambda: Settings(admin_token=None)

    res = await client.post(
        f"/api/v1/admin/top-ups/{created.json()['transaction_id']}/settle",
        json={"approved": True},
        headers={"X-Admin-Token": "change-me-admin-token"},
    )

    assert res.status_code == 401
    balance = await client.get("/api/v1/credits", headers=auth_headers())
    assert balance.json()["credits"] == 100


async def test_download_for_owner(client, alice, auth_headers):
    await client.post("/api/v1/purchases/1", headers=auth_headers())

    owned = await client.get("/api/v1/purchases/owned", headers=auth_headers())
    ref = owned.json()["items"][0]["download_ref"]
    res = await client.get(ref, headers=auth_headers())

    assert res.status_code == 200
    assert res.json()["file_ref"] == "files/algebra-basics.pdf"


async def test_download_refused_for_non_owner(client, alice, bob, auth_headers):
    await client.post("/api/v1/purchases/1", headers=auth_headers())

    res = await client.get("/api/v1/purchases/1/download", headers=auth_headers(BOB_TOKEN))

    assert res.status_code == 403
    assert res.json()["error"]["code"] == "NOT_ENTITLED"


async def test_download_requires_auth(client, alice):
    res = await client.get("/api/v1/purchases/1/download")
    assert res.status_code == 401


async def test_download_without_stored_file_is_404(client, alice, auth_headers):
    await client.post("/api/v1/purchases/2", headers=auth_headers())

    res = await client.get("/api/v1/purchases/2/download", headers=auth_headers())

    assert res.status_code == 404


async def test_unhandled_error_is_generic_and_logged_with_context(
    client, alice, auth_headers, monkeypatch, caplog,
):
    async def exploding_balance(self, account_id):
        raise RuntimeError("connection pool exhausted")

    monkeypatch.setattr(CreditService, "get_balance", exploding_balance)

    async with AsyncClient(
        transport=ASGITransport(app=app, raise_app_exceptions=False),
        base_url="http://test",
    ) as raw:
        with caplog.at_level(logging.ERROR):
            res = await raw.get("/api/v1/credits", headers=auth_headers())

    assert res.status_code == 500
    assert "pool" not in res.text
    [record] = [r for r in caplog.records if r.getMessage().startswith("Unhandled")]
    assert record.error_code == "INTERNAL_ERROR"
    assert record.path == "/api/v1/credits"
