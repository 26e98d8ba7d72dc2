import json

import pytest

from storefront import database, security
from storefront.config import settings
from storefront.main import app

ADMIN = {"username": "admin", "password": "s3cret"}

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64
JPEG_BYTES = b"\xff\xd8\xff\xe0" + b"\x00" * 64


@pytest.fixture(autouse=True)
def store(tmp_path, monkeypatch):
    """Point the app at a throwaway catalog and image dir with known admin credentials."""
    catalog = tmp_path / "products.json"
    images = tmp_path / "img"
    monkeypatch.setattr(settings, "static_root", tmp_path)
    monkeypatch.setattr(settings, "catalog_path", catalog)
    monkeypatch.setattr(settings, "image_dir", images)
    monkeypatch.setattr(settings, "deploy_target", "local")
    monkeypatch.setattr(settings, "environment", "development")
    monkeypatch.setattr(settings, "admin_username", ADMIN["username"])
    monkeypatch.setattr(settings, "admin_password", ADMIN["password"])
    monkeypatch.setattr(settings, "hardened", False)
    monkeypatch.setattr(settings, "whatsapp_number", "5491112345678")
    monkeypatch.setattr(settings, "store_name", "Test Shop")
    security.limiter.reset()
    database._LOCKS.clear()
    yield tmp_path
    app.dependency_overrides.clear()
    security.limiter.reset()


def seed(path, products):
    path.write_text(json.dumps(products, indent=2), encoding="utf-8")


@pytest.fixture
def seeded(store):
    products = {
        "1": {"name": "Reishi", "price": 10.5, "size": "100g", "description": "mushrooms", "image": "img/reishi.jpg"},
        "7": {"name": "Lion's Mane", "price": 22.0, "size": "60 caps", "description": "supplements", "image": "img/lion.png"},
    }
    seed(settings.catalog_path, products)
    settings.image_dir.mkdir(parents=True, exist_ok=True)
    (settings.image_dir / "reishi.jpg").write_bytes(JPEG_BYTES)
    (settings.image_dir / "lion.png").write_bytes(PNG_BYTES)
    return products
