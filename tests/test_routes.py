from fastapi.testclient import TestClient

import storefront.main as main
from storefront import security
from storefront.config import settings
from storefront.main import app
from conftest import ADMIN

client = TestClient(app)


def test_health_reports_config_flags(monkeypatch):
    monkeypatch.setattr(settings, "mercadopago_access_token", "TEST-TOKEN")
    monkeypatch.setattr(settings, "email_user", None)
    r = client.get("/health")
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "OK"
    assert body["target"] == "local"
    assert body["env"] == {"hasPayments": False, "hasEmail": False, "hasAdmin": True, "hasWhatsapp": True}


def test_unknown_route_lists_available_routes():
    r = client.get("/nope")
    assert r.status_code == 404
    body = r.json()
    assert body["error"] == "Route not found"
    assert "GET /api/products" in body["availableRoutes"]
    assert "DELETE /admin/products/:id" in body["availableRoutes"]


def test_payment_return_redirects():
    for status in ("success", "failure", "pending"):
        r = client.get(f"/{status}", follow_redirects=False)
        assert r.status_code == 302
        assert r.headers["location"] == f"/?status={status}"


def test_index_fallback_and_static_file(store):
    r = client.get("/")
    assert r.status_code == 200
    assert "Test Shop" in r.text

    (store / "index.html").write_text("<html><body>shop front</body></html>", encoding="utf-8")
    r = client.get("/")
    assert "shop front" in r.text


def test_admin_page_served_when_present(store):
    assert client.get("/admin.html").status_code == 404
    (store / "admin.html").write_text("<html>admin</html>", encoding="utf-8")
    r = client.get("/admin.html")
    assert r.status_code == 200
    assert "admin" in r.text


def test_uploaded_images_are_served(seeded):
    r = client.get("/img/lion.png")
    assert r.status_code == 200
    assert r.content.startswith(b"\x89PNG")
    assert client.get("/img/missing.png").status_code == 404


def test_security_headers_present():
    r = client.get("/api/products")
    assert r.headers["x-content-type-options"] == "nosniff"
    assert r.headers["x-frame-options"] == "DENY"
    assert r.headers["x-xss-protection"] == "1; mode=block"


def test_cors_preflight_allowed():
    r = client.options(
        "/api/products",
        headers={"Origin": "http://localhost:3000", "Access-Control-Request-Method": "GET"},
    )
    assert r.status_code == 200
    assert r.headers["access-control-allow-origin"] in ("*", "http://localhost:3000")


def test_login_rate_limited_when_hardened(monkeypatch):
    monkeypatch.setattr(settings, "hardened", True)
    monkeypatch.setattr(settings, "login_rate_limit", 3)
    bad = {"username": "admin", "password": "guess"}
    codes = [client.post("/admin/login", json=bad).status_code for _ in range(3)]
    assert codes == [401, 401, 401]
    r = client.post("/admin/login", json=ADMIN)
    assert r.status_code == 429
    assert r.headers["x-frame-options"] == "DENY"
    # other routes still use the general budget
    assert client.get("/api/products").status_code == 200


def test_general_rate_limit(monkeypatch):
    monkeypatch.setattr(settings, "hardened", True)
    monkeypatch.setattr(settings, "rate_limit_requests", 2)
    assert client.get("/health").status_code == 200
    assert client.get("/health").status_code == 200
    r = client.get("/health")
    assert r.status_code == 429
    assert r.json() == {"error": "Too many requests"}


def test_unhandled_error_is_generic_in_production(monkeypatch):
    async def broken():
        raise RuntimeError("disk on fire")

    monkeypatch.setattr(main, "list_products_logic", broken)
    quiet = TestClient(app, raise_server_exceptions=False)

    monkeypatch.setattr(settings, "environment", "production")
    r = quiet.get("/api/products")
    assert r.status_code == 500
    assert r.json() == {"error": "Internal server error"}

    monkeypatch.setattr(settings, "environment", "development")
    r = quiet.get("/api/products")
    assert r.status_code == 500
    assert r.json()["detail"] == "disk on fire"


def test_rate_limiter_forgets_idle_clients(monkeypatch):
    clock = [1000.0]
    monkeypatch.setattr(security.time, "monotonic", lambda: clock[0])
    limiter = security.RateLimiter()
    for i in range(20):
        assert limiter.allow("all", f"10.0.0.{i}", 5, 60)
    assert len(limiter._hits) == 20

    clock[0] += 61
    assert limiter.allow("all", "10.0.0.99", 5, 60)
    assert list(limiter._hits) == [("all", "10.0.0.99")]
