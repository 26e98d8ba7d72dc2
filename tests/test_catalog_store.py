import json
from pathlib import Path

from storefront import database
from storefront.config import settings
from conftest import seed


def test_missing_file_reads_as_empty():
    assert database.read_catalog() == {}


def test_invalid_json_reads_as_empty():
    settings.catalog_path.write_text("{not json", encoding="utf-8")
    assert database.read_catalog() == {}


def test_non_object_json_reads_as_empty():
    settings.catalog_path.write_text("[1, 2, 3]", encoding="utf-8")
    assert database.read_catalog() == {}


def test_write_then_read_whole_catalog():
    catalog = {"3": {"name": "Maitake", "price": 8.0, "size": "50g", "description": "mushrooms", "image": "img/m.jpg"}}
    assert database.write_catalog(catalog) is True
    assert json.loads(settings.catalog_path.read_text(encoding="utf-8")) == catalog
    assert database.read_catalog() == catalog
    leftovers = [p.name for p in settings.catalog_path.parent.iterdir() if p.name.startswith(".products-")]
    assert leftovers == []


def test_write_failure_returns_false(tmp_path, monkeypatch):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("x")
    monkeypatch.setattr(settings, "catalog_path", blocker / "products.json")
    assert database.write_catalog({"1": {}}) is False


def test_next_id_ignores_non_numeric_keys():
    assert database.next_product_id({}) == "1"
    assert database.next_product_id({"2": {}, "10": {}, "draft": {}}) == "11"


def test_serverless_target_looks_in_extra_locations(monkeypatch):
    monkeypatch.setattr(settings, "deploy_target", "serverless")
    paths = database.catalog_candidates()
    assert paths[0] == settings.catalog_path
    assert Path("/var/task/api/products.json") in paths

    monkeypatch.setattr(settings, "deploy_target", "local")
    assert database.catalog_candidates() == [settings.catalog_path]


def test_serverless_falls_back_to_cwd_api_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "deploy_target", "serverless")
    monkeypatch.setattr(settings, "catalog_path", tmp_path / "missing" / "products.json")
    (tmp_path / "api").mkdir()
    seed(tmp_path / "api" / "products.json", {"1": {"name": "A", "price": 1.0}})
    monkeypatch.chdir(tmp_path)
    assert database.read_catalog() == {"1": {"name": "A", "price": 1.0}}


def test_write_refuses_non_finite_numbers():
    seed(settings.catalog_path, {"1": {"name": "Reishi", "price": 10.5, "size": "100g", "description": "m", "image": "img/r.jpg"}})
    before = settings.catalog_path.read_bytes()
    bad = {"1": {"name": "Reishi", "price": float("inf"), "size": "100g", "description": "m", "image": "img/r.jpg"}}
    assert database.write_catalog(bad) is False
    assert settings.catalog_path.read_bytes() == before
    leftovers = [p.name for p in settings.catalog_path.parent.iterdir() if p.name.startswith(".products-")]
    assert leftovers == []
