import asyncio

import httpx
import pytest
from fastapi.testclient import TestClient

from storefront.core import PreferenceRequest
from storefront.errors import ExternalServiceError
from storefront.main import app
from storefront.payments import MercadoPagoClient, get_payments_client

client = TestClient(app)


class FakePayments:
    def __init__(self, pref_id="pref-123", fail=False):
        self.pref_id = pref_id
        self.fail = fail
        self.calls = []

    async def create_preference(self, body):
        self.calls.append(body)
        if self.fail:
            raise ExternalServiceError("Payment service error")
        return self.pref_id


def _use(fake):
    app.dependency_overrides[get_payments_client] = lambda: fake
    return fake


def _item(pid="1", price=10.5, qty=2, title="Reishi"):
    return {"id": pid, "title": title, "unit_price": price, "quantity": qty, "currency_id": "ARS"}


def test_preference_created_for_valid_items(seeded):
    fake = _use(FakePayments())
    r = client.post("/create_preference", json={"items": [_item(), _item("7", 22.0, 1)], "payer": {"email": "a@b.c"}})
    assert r.status_code == 200
    assert r.json() == {"id": "pref-123"}

    body = fake.calls[0]
    assert [i["id"] for i in body["items"]] == ["1", "7"]
    assert body["payer"] == {"email": "a@b.c"}
    assert body["back_urls"]["success"].endswith("/success")
    assert body["back_urls"]["failure"].endswith("/failure")
    assert body["back_urls"]["pending"].endswith("/pending")
    assert body["auto_return"] == "approved"
    assert body["payment_methods"] == {"installments": 12, "default_installments": 1}
    assert "timestamp" in body["metadata"]


def test_price_within_tolerance_accepted(seeded):
    fake = _use(FakePayments())
    r = client.post("/create_preference", json={"items": [_item(price=10.505)]})
    assert r.status_code == 200
    assert len(fake.calls) == 1


def test_tampered_price_rejected_before_payment_call(seeded):
    fake = _use(FakePayments())
    r = client.post("/create_preference", json={"items": [_item(price=1.0)]})
    assert r.status_code == 400
    assert r.json()["error"] == "Invalid product price"
    assert fake.calls == []


def test_unknown_product_rejected(seeded):
    fake = _use(FakePayments())
    r = client.post("/create_preference", json={"items": [_item("99", title="Ghost")]})
    assert r.status_code == 400
    assert "Ghost" in r.json()["error"]
    assert fake.calls == []


def test_empty_and_oversized_item_lists_rejected(seeded):
    fake = _use(FakePayments())
    assert client.post("/create_preference", json={"items": []}).status_code == 400
    assert client.post("/create_preference", json={}).status_code == 400
    many = [_item() for _ in range(51)]
    assert client.post("/create_preference", json={"items": many}).status_code == 400
    assert fake.calls == []


def test_unconfigured_payments_is_500(seeded):
    app.dependency_overrides[get_payments_client] = lambda: None
    r = client.post("/create_preference", json={"items": [_item()]})
    assert r.status_code == 500
    assert r.json()["error"] == "Payment system not configured"


def test_external_failure_is_generic_500(seeded):
    _use(FakePayments(fail=True))
    r = client.post("/create_preference", json={"items": [_item()]})
    assert r.status_code == 500
    assert r.json() == {"error": "Payment service error"}


def test_client_posts_to_preferences_endpoint():
    seen = {}

    def handler(request: httpx.Request):
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["authorization"]
        return httpx.Response(201, json={"id": "123-abc", "init_point": "https://example/pay"})

    mp = MercadoPagoClient("APP_USR-token", base_url="https://mp.test", transport=httpx.MockTransport(handler))
    pref_id = asyncio.run(mp.create_preference({"items": []}))
    assert pref_id == "123-abc"
    assert seen["url"] == "https://mp.test/checkout/preferences"
    assert seen["auth"] == "Bearer APP_USR-token"


@pytest.mark.parametrize("response", [
    httpx.Response(401, json={"message": "invalid token"}),
    httpx.Response(200, json={"no_id": True}),
    httpx.Response(200, text="not json"),
])
def test_client_errors_become_external_service_errors(response):
    mp = MercadoPagoClient("t", base_url="https://mp.test", transport=httpx.MockTransport(lambda req: response))
    with pytest.raises(ExternalServiceError):
        asyncio.run(mp.create_preference({}))


def test_preference_request_accepts_numeric_ids():
    req = PreferenceRequest(items=[{"id": 3, "unit_price": 1.0}])
    assert req.items[0].id == "3"


@pytest.mark.parametrize("raw_price", ["NaN", "Infinity", "-Infinity"])
def test_non_finite_price_rejected_before_payment_call(seeded, raw_price):
    fake = _use(FakePayments())
    body = '{"items": [{"id": "1", "title": "Reishi", "unit_price": %s, "quantity": 1}]}' % raw_price
    r = client.post("/create_preference", content=body, headers={"content-type": "application/json"})
    assert r.status_code == 400
    assert fake.calls == []
