import asyncio
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Dict, Any, List

from .config import settings

# This file holds the JSON catalog store and the locks that serialize writes to it.

logger = logging.getLogger(__name__)

Catalog = Dict[str, Dict[str, Any]]

_LOCKS: Dict[str, asyncio.Lock] = {}


def _get_lock(key: str) -> asyncio.Lock:
    if key not in _LOCKS:
        _LOCKS[key] = asyncio.Lock()
    return _LOCKS[key]


def catalog_lock() -> asyncio.Lock:
    return _get_lock("catalog")


def catalog_candidates() -> List[Path]:
    paths = [settings.catalog_path]
    if settings.is_serverless:
        paths += [Path.cwd() / "api" / "products.json", Path("/var/task/api/products.json")]
    return paths


def read_catalog() -> Catalog:
    """Load the whole catalog. A missing or unreadable file yields an empty catalog."""
    path = next((p for p in catalog_candidates() if p.is_file()), None)
    if path is None:
        logger.error("Catalog file not found, tried: %s", ", ".join(str(p) for p in catalog_candidates()))
        return {}

    try:
        with open(path, "r", encoding="utf-8") as fh:
            data = json.load(fh)
    except (OSError, ValueError) as e:
        logger.error("Could not read catalog %s: %s", path, e)
        return {}

    if not isinstance(data, dict):
        logger.error("Catalog %s is not a JSON object (got %s)", path, type(data).__name__)
        return {}

    logger.debug("Loaded %d products from %s", len(data), path)
    return data


def write_catalog(catalog: Catalog) -> bool:
    path = settings.catalog_path
    tmp_name = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=".products-", suffix=".json", dir=str(path.parent))
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump(catalog, fh, indent=2, ensure_ascii=False, allow_nan=False)
        os.replace(tmp_name, path)
        return True
    except (OSError, ValueError) as e:
        logger.error("Could not write catalog %s: %s", path, e)
        if tmp_name and os.path.exists(tmp_name):
            try:
                os.unlink(tmp_name)
            except OSError:
                pass
        return False


def next_product_id(catalog: Catalog) -> str:
    numeric = [int(k) for k in catalog.keys() if str(k).isdigit()]
    return str(max(numeric, default=0) + 1)
