# tests/test_backend.py
import uuid
from decimal import Decimal

import httpx
import pytest

from storefront.auth_agent import AuthAgent
from storefront.backend import BackendError, BackendTimeout, BackendUnavailable, describe_failure
from storefront.base_agent import Task
from storefront.catalog_agent import CatalogAgent
from storefront.models import Product
from storefront.schemas import CreatedResponse
from storefront.transaction_agent import TransactionAgent


def make_task(agent, type, payload=None, user_id=None, credential=None):
    return Task(task_id=str(uuid.uuid4()), agent=agent, type=type, request_id="req-1",
                user_id=user_id, credential=credential, payload=payload or {})


# -------------------------
# BackendClient
# -------------------------

@pytest.mark.asyncio
async def test_request_returns_json_and_sends_bearer(backend, fake_backend):
    fake_backend.on("GET", "/api/ping", 200, {"data": "pong"})
    body = await backend.request("GET", "/api/ping", credential="abc")
    assert body == {"data": "pong"}
    sent = fake_backend.requests[0]
    assert sent.headers["Authorization"] == "Bearer abc"
    assert str(sent.url) == "http://backend.test/api/ping"


@pytest.mark.asyncio
async def test_request_without_credential_has_no_auth_header(backend, fake_backend):
    fake_backend.on("GET", "/api/ping", 200, {"data": "pong"})
    await backend.request("GET", "/api/ping")
    assert "Authorization" not in fake_backend.requests[0].headers


@pytest.mark.asyncio
async def test_error_status_raises_backend_error_with_message(backend, fake_backend):
    fake_backend.on("POST", "/api/orders", 401, {"error": {"status": 401, "message": "Missing or invalid credentials"}})
    with pytest.raises(BackendError) as info:
        await backend.request("POST", "/api/orders", json={"data": {}})
    assert info.value.status_code == 401
    assert info.value.message == "Missing or invalid credentials"
    assert info.value.cause == "rejected"


@pytest.mark.asyncio
async def test_error_status_without_json_body(backend, fake_backend):
    fake_backend.on("POST", "/api/orders", 502, None)
    with pytest.raises(BackendError) as info:
        await backend.request("POST", "/api/orders")
    assert info.value.message is None
    assert describe_failure(info.value, "fallback")[0] == "fallback"


@pytest.mark.asyncio
async def test_timeout_and_transport_errors(backend, fake_backend):
    fake_backend.on("GET", "/api/slow", raises=httpx.ReadTimeout)
    fake_backend.on("GET", "/api/down", raises=httpx.ConnectError)
    with pytest.raises(BackendTimeout):
        await backend.request("GET", "/api/slow")
    with pytest.raises(BackendUnavailable) as info:
        await backend.request("GET", "/api/down")
    assert not isinstance(info.value, BackendTimeout)
    assert info.value.cause == "transport"


@pytest.mark.asyncio
async def test_fetch_validates_body(backend, fake_backend):
    fake_backend.on("POST", "/api/orders", 201, {"data": {"id": 5, "documentId": "d5"}})
    created = await backend.fetch(CreatedResponse, "POST", "/api/orders", json={})
    assert created.data.id == 5
    assert created.data.document_id == "d5"

    fake_backend.on("POST", "/api/orders", 201, {"data": []})
    with pytest.raises(BackendError) as info:
        await backend.fetch(CreatedResponse, "POST", "/api/orders", json={})
    assert info.value.cause == "invalid_response"


def test_describe_failure_reraises_unknown_exceptions():
    with pytest.raises(RuntimeError):
        describe_failure(RuntimeError("boom"), "fallback")


# -------------------------
# CatalogAgent
# -------------------------

@pytest.mark.asyncio
async def test_catalog_list_builds_snapshot(backend, fake_backend, listing):
    fake_backend.on("GET", "/api/products", 200, listing)
    res = await CatalogAgent(backend).handle(make_task("catalog", "CATALOG_LIST"))
    assert res.ok
    snapshot = res.payload["snapshot"]
    assert list(snapshot) == [
        Product(id=1, name="Product A", price=Decimal("3.5")),
        Product(id=2, name="Product B", price=Decimal("5")),
    ]
    assert fake_backend.requests[0].url.params["populate"] == "*"


@pytest.mark.asyncio
async def test_catalog_list_rejects_negative_price(backend, fake_backend):
    fake_backend.on("GET", "/api/products", 200, {"data": [{"id": 1, "name": "Bad", "price": -2}]})
    res = await CatalogAgent(backend).handle(make_task("catalog", "CATALOG_LIST"))
    assert not res.ok
    assert res.errors[0].code == "BACKEND_ERROR"
    assert res.errors[0].details["cause"] == "invalid_response"


@pytest.mark.asyncio
async def test_catalog_create_update_delete(backend, fake_backend):
    fake_backend.on("POST", "/api/products", 200, {"data": {"id": 9, "name": "New", "price": 1.25}})
    fake_backend.on("PUT", "/api/products/9", 200, {"data": {"id": 9, "name": "Renamed", "price": 1.25}})
    fake_backend.on("DELETE", "/api/products/9", 200, {"data": {"id": 9, "name": "Renamed", "price": 1.25}})
    agent = CatalogAgent(backend)

    created = await agent.handle(make_task("catalog", "PRODUCT_CREATE", {"name": "New", "price": Decimal("1.25")}))
    assert created.ok
    assert fake_backend.body(fake_backend.requests[0]) == {"data": {"name": "New", "price": 1.25}}

    updated = await agent.handle(make_task("catalog", "PRODUCT_UPDATE", {"product_id": 9, "name": "Renamed"}))
    assert updated.payload["product"].name == "Renamed"
    assert fake_backend.body(fake_backend.requests[1]) == {"data": {"name": "Renamed"}}

    deleted = await agent.handle(make_task("catalog", "PRODUCT_DELETE", {"product_id": 9}))
    assert deleted.payload == {"deleted": 9}


@pytest.mark.asyncio
async def test_catalog_missing_fields_and_unsupported(backend, fake_backend):
    agent = CatalogAgent(backend)
    res = await agent.handle(make_task("catalog", "PRODUCT_CREATE", {"name": "No price"}))
    assert res.errors[0].code == "MISSING_FIELDS"
    res = await agent.handle(make_task("catalog", "PRODUCT_ARCHIVE"))
    assert res.errors[0].code == "UNSUPPORTED_TASK"
    assert fake_backend.requests == []


# -------------------------
# AuthAgent
# -------------------------

@pytest.mark.asyncio
async def test_login_returns_identity(backend, fake_backend):
    fake_backend.on("POST", "/api/auth/local", 200,
                    {"jwt": "tok", "user": {"id": 7, "username": "alice", "email": "alice@example.com"}})
    res = await AuthAgent(backend).handle(make_task("auth", "AUTH_LOGIN", {"username": "alice", "password": "pw"}))
    assert res.ok
    identity = res.payload["identity"]
    assert identity.user_id == 7
    assert identity.credential == "tok"
    assert identity.is_complete
    assert fake_backend.body(fake_backend.requests[0]) == {"identifier": "alice", "password": "pw"}


@pytest.mark.asyncio
async def test_login_failure_surfaces_backend_message(backend, fake_backend):
    fake_backend.on("POST", "/api/auth/local", 400,
                    {"error": {"status": 400, "message": "Invalid identifier or password"}})
    res = await AuthAgent(backend).handle(make_task("auth", "AUTH_LOGIN", {"username": "alice", "password": "x"}))
    assert res.errors[0].code == "UNAUTHENTICATED"
    assert res.errors[0].message == "Invalid identifier or password"


@pytest.mark.asyncio
async def test_register_derives_email(backend, fake_backend):
    fake_backend.on("POST", "/api/auth/local/register", 200, {"jwt": "tok", "user": {"id": 8, "username": "bob"}})
    res = await AuthAgent(backend).handle(make_task("auth", "AUTH_REGISTER", {"username": "bob", "password": "pw"}))
    assert res.ok
    assert fake_backend.body(fake_backend.requests[0]) == {
        "username": "bob", "email": "bob@example.com", "password": "pw",
    }


# -------------------------
# TransactionAgent history
# -------------------------

@pytest.mark.asyncio
async def test_history_filters_by_user(backend, settings, fake_backend):
    fake_backend.on("GET", "/api/transactions", 200, {"data": [{
        "id": 3,
        "documentId": "t3",
        "orderDate": "2026-10-18T09:30:00.000Z",
        "orderItems": [{"product": {"id": 1, "name": "Product A", "price": 3.5}, "quantity": 2}],
        "totalAmount": 7,
        "totalQuantity": 2,
    }]})
    agent = TransactionAgent(backend, settings)
    res = await agent.handle(make_task("transaction", "TRANSACTION_HISTORY", user_id="7", credential="tok"))
    assert res.ok
    record = res.payload["transactions"][0]
    assert record.total_amount == Decimal("7")
    assert record.order_items[0].quantity == 2
    params = fake_backend.requests[0].url.params
    assert params["filters[user][id][$eq]"] == "7"
    assert params["sort[0]"] == "createdAt:desc"


@pytest.mark.asyncio
async def test_history_requires_identity(backend, settings, fake_backend):
    res = await TransactionAgent(backend, settings).handle(make_task("transaction", "TRANSACTION_HISTORY"))
    assert res.errors[0].code == "UNAUTHENTICATED"
    assert fake_backend.requests == []
