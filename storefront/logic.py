import logging
from typing import Optional, Dict, Any

import pydantic
from fastapi import UploadFile

from .auth import check_admin
from .config import settings
from .core import (
    Credentials, ProductIn, ProductReplaceIn, OrderIn, PreferenceRequest,
    _make_product_dict, _with_id,
)
from .database import catalog_lock, read_catalog, write_catalog, next_product_id
from .errors import AuthError, ExternalServiceError, NotFoundError, PersistenceError, ValidationError
from .notify import Mailer, compose_order_message, render_receipt_html, whatsapp_link
from .payments import MercadoPagoClient, build_preference, order_total, validate_items
from .uploads import delete_image, save_image

# This file contains the core logic for all API endpoints.

logger = logging.getLogger(__name__)


def _validation_details(e: pydantic.ValidationError):
    return [{"field": ".".join(str(p) for p in err["loc"]), "msg": err["msg"]} for err in e.errors()]


def _persist(catalog: Dict[str, Any], action: str) -> None:
    if not write_catalog(catalog):
        raise PersistenceError(f"Error {action} product", path=str(settings.catalog_path))


# Catalog endpoints
async def list_products_logic() -> Dict[str, Any]:
    catalog = read_catalog()
    logger.info("Serving %d products", len(catalog))
    return catalog


# Admin endpoints
async def login_logic(creds: Credentials, client_ip: str = "unknown"):
    try:
        check_admin(creds.username, creds.password)
    except AuthError:
        logger.warning("Failed admin login from %s", client_ip)
        raise
    logger.info("Admin login from %s", client_ip)
    return {"success": True, "message": "Login successful"}


async def create_product_logic(
    name: Optional[str],
    price: Optional[str],
    size: Optional[str],
    description: Optional[str],
    username: Optional[str],
    password: Optional[str],
    image: Optional[UploadFile],
):
    check_admin(username, password)

    try:
        fields = ProductIn(name=name, price=price, size=size, description=description)
    except pydantic.ValidationError as e:
        raise ValidationError("Invalid product data", details=_validation_details(e)) from e

    if image is None or not image.filename:
        raise ValidationError("Product image is required")

    image_rel = await save_image(image)

    async with catalog_lock():
        catalog = read_catalog()
        pid = next_product_id(catalog)
        catalog[pid] = _make_product_dict(fields, image_rel)
        if not write_catalog(catalog):
            delete_image(image_rel)
            raise PersistenceError("Error saving product", path=str(settings.catalog_path))

    logger.info("Product created: %s (id=%s)", fields.name, pid)
    return {"success": True, "id": pid, "product": _with_id(pid, catalog[pid])}


async def replace_product_logic(product_id: str, payload: ProductReplaceIn):
    check_admin(payload.username, payload.password)

    async with catalog_lock():
        catalog = read_catalog()
        current = catalog.get(product_id)
        if current is None:
            raise NotFoundError("Product not found")
        catalog[product_id] = _make_product_dict(payload, current.get("image", ""))
        _persist(catalog, "updating")

    logger.info("Product replaced: %s (id=%s)", payload.name, product_id)
    return {"success": True, "id": product_id, "product": _with_id(product_id, catalog[product_id])}


async def delete_product_logic(product_id: str, creds: Credentials):
    check_admin(creds.username, creds.password)

    async with catalog_lock():
        catalog = read_catalog()
        product = catalog.get(product_id)
        if product is None:
            raise NotFoundError("Product not found")
        del catalog[product_id]
        _persist(catalog, "deleting")
        delete_image(product.get("image"))

    logger.info("Product deleted: %s (id=%s)", product.get("name"), product_id)
    return {"success": True, "message": "Product deleted"}


# Checkout endpoints
async def create_preference_logic(
    req: PreferenceRequest,
    client: Optional[MercadoPagoClient],
    client_ip: Optional[str] = None,
):
    validate_items(req, read_catalog())
    if client is None:
        logger.error("Payment preference requested but MERCADOPAGO_ACCESS_TOKEN is not configured")
        raise ExternalServiceError("Payment system not configured")

    body = build_preference(req, client_ip)
    logger.info("Creating payment preference: %d items, total %.2f", len(req.items), order_total(req))
    pref_id = await client.create_preference(body)
    logger.info("Payment preference created: %s", pref_id)
    return {"id": pref_id}


async def whatsapp_logic(order: OrderIn):
    url = whatsapp_link(order)
    logger.info("WhatsApp link prepared, total %.2f", order.total)
    return {"success": True, "whatsappUrl": url, "message": "WhatsApp message ready"}


async def confirmation_email_logic(order: OrderIn, mailer: Optional[Mailer]):
    if mailer is None:
        raise ExternalServiceError("Email service not configured")
    html_body = render_receipt_html(order, settings.store_name)
    text_body = compose_order_message(order, settings.store_name)
    await mailer.send(
        order.buyer.email,
        f"Order confirmation - {settings.store_name}",
        html_body,
        text_body,
    )
    logger.info("Confirmation email sent to %s, total %.2f", order.buyer.email, order.total)
    return {"success": True, "message": "Confirmation email sent"}
