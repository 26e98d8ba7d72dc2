# storefront/payments.py
import logging
from datetime import datetime, timezone
from typing import Optional, Dict, Any

import httpx

from .config import settings
from .core import MAX_PREFERENCE_ITEMS, PreferenceRequest
from .database import Catalog
from .errors import ExternalServiceError, ValidationError

logger = logging.getLogger(__name__)

PRICE_TOLERANCE = 0.01


class MercadoPagoClient:
    """Thin async client for the Checkout Pro preferences endpoint."""

    def __init__(self, access_token: str, base_url: str = "https://api.mercadopago.com",
                 timeout: float = 10.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._token = access_token
        self._transport = transport

    async def create_preference(self, body: Dict[str, Any]) -> str:
        headers = {"Authorization": f"Bearer {self._token}", "Content-Type": "application/json"}
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                r = await client.post(f"{self.base_url}/checkout/preferences", json=body, headers=headers)
                r.raise_for_status()
                data = r.json()
        except httpx.HTTPStatusError as e:
            logger.error("Payments API rejected preference: %s %s", e.response.status_code, e.response.text[:500])
            raise ExternalServiceError("Payment service error") from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Payments API call failed: %s", e)
            raise ExternalServiceError("Payment service error") from e

        pref_id = data.get("id") if isinstance(data, dict) else None
        if not pref_id:
            logger.error("Payments API returned no preference id: %s", data)
            raise ExternalServiceError("Payment service error")
        return str(pref_id)


def get_payments_client() -> Optional[MercadoPagoClient]:
    if not settings.has_payments:
        return None
    return MercadoPagoClient(
        settings.mercadopago_access_token,
        base_url=settings.mercadopago_api_url,
        timeout=settings.outbound_timeout_sec,
    )


def validate_items(req: PreferenceRequest, catalog: Catalog) -> None:
    if not req.items:
        raise ValidationError("Invalid product data")
    if len(req.items) > MAX_PREFERENCE_ITEMS:
        raise ValidationError(f"Too many items (max {MAX_PREFERENCE_ITEMS})")

    for item in req.items:
        product = catalog.get(item.id)
        if product is None:
            raise ValidationError(f"Product {item.title or item.id} not available")
        try:
            listed = float(product.get("price"))
        except (TypeError, ValueError):
            raise ValidationError(f"Product {item.title or item.id} not available")
        if abs(listed - item.unit_price) > PRICE_TOLERANCE:
            raise ValidationError("Invalid product price")


def build_preference(req: PreferenceRequest, client_ip: Optional[str] = None) -> Dict[str, Any]:
    base = settings.public_base_url.rstrip("/")
    return {
        "items": [item.model_dump() for item in req.items],
        "payer": req.payer or {},
        "back_urls": {
            "success": f"{base}/success",
            "failure": f"{base}/failure",
            "pending": f"{base}/pending",
        },
        "auto_return": "approved",
        "payment_methods": {"installments": 12, "default_installments": 1},
        "metadata": {
            "ip": client_ip,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    }


def order_total(req: PreferenceRequest) -> float:
    return round(sum(i.unit_price * i.quantity for i in req.items), 2)
