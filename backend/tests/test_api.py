"""HTTP surface: envelopes, permissions and error mapping."""
import pytest
from httpx import ASGITransport, AsyncClient

from storefront.core.security import create_access_token
from storefront.db.session import get_db
from storefront.main import app


@pytest.fixture
async def client(session_maker):
    async def _get_test_db():
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = _get_test_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


def _auth(user) -> dict:
    token = create_access_token(user.id, user.tenant_id, user.role, email=user.email)
    return {"Authorization": f"Bearer {token}"}


def _cart_body(cart) -> dict:
    return {"items": [{"product_id": str(i["product_id"]), "quantity": i["quantity"]} for i in cart]}


async def _submitted_quotation(client, customer, body) -> str:
    res = await client.post("/api/v1/quotations", json=body, headers=_auth(customer))
    assert res.status_code == 201
    quotation_id = res.json()["data"]["id"]
    res = await client.post(f"/api/v1/quotations/{quotation_id}/submit", headers=_auth(customer))
    assert res.status_code == 200
    return quotation_id


async def test_health_is_public(client):
    res = await client.get("/health")
    assert res.status_code == 200
    assert res.json()["status"] == "ok"


async def test_requests_without_token_are_rejected(client):
    res = await client.get("/api/v1/quotations")
    assert res.status_code == 401


async def test_create_quotation_returns_envelope(client, customer, cart):
    res = await client.post("/api/v1/quotations", json=_cart_body(cart), headers=_auth(customer))

    assert res.status_code == 201
    body = res.json()
    assert body["error"] is None
    assert body["meta"]["message"] == "Quotation created"
    assert body["data"]["status"] == "DRAFT"
    assert body["data"]["total_amount"] == "148.75"
    assert len(body["data"]["items"]) == 2


async def test_create_quotation_with_empty_cart(client, customer):
    res = await client.post("/api/v1/quotations", json={"items": []}, headers=_auth(customer))
    assert res.status_code == 422


async def test_staff_cannot_create_quotations(client, admin, cart):
    res = await client.post("/api/v1/quotations", json=_cart_body(cart), headers=_auth(admin))
    assert res.status_code == 403


async def test_approve_flow(client, customer, admin, cart):
    quotation_id = await _submitted_quotation(client, customer, _cart_body(cart))

    res = await client.get(f"/api/v1/quotations/{quotation_id}/credit", headers=_auth(admin))
    assert res.status_code == 200
    assert res.json()["data"]["level"] == "WITHIN_LIMIT"

    res = await client.put(f"/api/v1/quotations/{quotation_id}/approve", headers=_auth(admin))
    assert res.status_code == 200
    body = res.json()
    assert body["meta"]["message"] == "Order created successfully"
    assert body["data"]["credit_warning"] is False
    assert body["data"]["order"]["quotation_id"] == quotation_id
    assert body["data"]["order"]["status"] == "PENDING"

    res = await client.get("/api/v1/orders", headers=_auth(customer))
    assert res.json()["meta"]["total_count"] == 1

    res = await client.get(f"/api/v1/quotations/{quotation_id}", headers=_auth(customer))
    assert res.json()["data"]["status"] == "CONVERTED_TO_ORDER"


async def test_approve_over_limit_reports_warning(client, customer, admin, products):
    body = {"items": [{"product_id": str(products["hammer"].id), "quantity": 10}]}
    quotation_id = await _submitted_quotation(client, customer, body)

    res = await client.put(f"/api/v1/quotations/{quotation_id}/approve", headers=_auth(admin))

    assert res.status_code == 200
    assert res.json()["meta"]["message"] == "Order created - Customer exceeds credit limit"
    assert res.json()["data"]["credit_warning"] is True
    assert res.json()["data"]["credit"]["over_amount"] == "395.00"


async def test_double_approve_is_a_conflict(client, customer, admin, cart):
    quotation_id = await _submitted_quotation(client, customer, _cart_body(cart))
    await client.put(f"/api/v1/quotations/{quotation_id}/approve", headers=_auth(admin))

    res = await client.put(f"/api/v1/quotations/{quotation_id}/approve", headers=_auth(admin))

    assert res.status_code == 409
    assert res.json()["error"]["code"] == "INVALID_TRANSITION"


async def test_customer_cannot_approve(client, customer, cart):
    quotation_id = await _submitted_quotation(client, customer, _cart_body(cart))
    res = await client.put(f"/api/v1/quotations/{quotation_id}/approve", headers=_auth(customer))
    assert res.status_code == 403


async def test_decline_with_blank_reason(client, customer, admin, cart):
    quotation_id = await _submitted_quotation(client, customer, _cart_body(cart))

    res = await client.put(
        f"/api/v1/quotations/{quotation_id}/decline", json={"reason": "  "}, headers=_auth(admin)
    )

    assert res.status_code == 422
    error = res.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert error["field_errors"][0]["field"] == "reason"


async def test_decline(client, customer, admin, cart):
    quotation_id = await _submitted_quotation(client, customer, _cart_body(cart))

    res = await client.put(
        f"/api/v1/quotations/{quotation_id}/decline", json={"reason": "Out of season"}, headers=_auth(admin)
    )

    assert res.status_code == 200
    assert res.json()["data"]["status"] == "DECLINED"
    assert res.json()["data"]["decline_reason"] == "Out of season"


async def test_unknown_quotation_is_not_found(client, admin):
    res = await client.get(
        "/api/v1/quotations/00000000-0000-0000-0000-000000000000", headers=_auth(admin)
    )
    assert res.status_code == 404
    assert res.json()["error"]["code"] == "RESOURCE_NOT_FOUND"


async def test_delete_draft(client, customer, cart):
    res = await client.post("/api/v1/quotations", json=_cart_body(cart), headers=_auth(customer))
    quotation_id = res.json()["data"]["id"]

    res = await client.delete(f"/api/v1/quotations/{quotation_id}", headers=_auth(customer))
    assert res.status_code == 200

    res = await client.get(f"/api/v1/quotations/{quotation_id}", headers=_auth(customer))
    assert res.status_code == 404


async def test_list_quotations_paginates(client, customer, cart):
    for _ in range(3):
        await client.post("/api/v1/quotations", json=_cart_body(cart), headers=_auth(customer))

    res = await client.get("/api/v1/quotations?page=1&page_size=2", headers=_auth(customer))

    body = res.json()
    assert len(body["data"]) == 2
    assert body["meta"]["total_count"] == 3


async def test_expire_endpoint_with_nothing_stale(client, admin):
    res = await client.post("/api/v1/quotations/expire", headers=_auth(admin))
    assert res.status_code == 200
    assert res.json()["data"]["expired"] == 0


async def test_order_status_and_cancel(client, customer, admin, cart):
    quotation_id = await _submitted_quotation(client, customer, _cart_body(cart))
    res = await client.put(f"/api/v1/quotations/{quotation_id}/approve", headers=_auth(admin))
    order_id = res.json()["data"]["order"]["id"]

    res = await client.put(
        f"/api/v1/orders/{order_id}/status", json={"status": "PROCESSING"}, headers=_auth(customer)
    )
    assert res.status_code == 403

    res = await client.put(
        f"/api/v1/orders/{order_id}/status", json={"status": "PROCESSING"}, headers=_auth(admin)
    )
    assert res.status_code == 200
    assert res.json()["data"]["status"] == "PROCESSING"

    res = await client.put(
        f"/api/v1/orders/{order_id}/cancel", json={"reason": "Changed plans"}, headers=_auth(customer)
    )
    assert res.status_code == 200
    assert res.json()["data"]["status"] == "CANCELLED"
    assert [h["status"] for h in res.json()["data"]["status_history"]] == ["PENDING", "PROCESSING", "CANCELLED"]
