# storefront/main.py
import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Depends, File, Form, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.responses import FileResponse, HTMLResponse, JSONResponse, RedirectResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import security
from .config import settings
from .core import Credentials, OrderIn, PreferenceRequest, ProductReplaceIn
from .errors import ExternalServiceError, PersistenceError, StoreError
from .logic import (
    list_products_logic, login_logic, create_product_logic, replace_product_logic,
    delete_product_logic, create_preference_logic, whatsapp_logic, confirmation_email_logic,
)
from .notify import Mailer, get_mailer
from .payments import MercadoPagoClient, get_payments_client
from .uploads import image_path

logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="storefront")
security.install(app)

AVAILABLE_ROUTES = [
    "GET /",
    "GET /health",
    "GET /api/products",
    "POST /admin/login",
    "GET /admin/products",
    "POST /admin/products",
    "PUT /admin/products/:id",
    "DELETE /admin/products/:id",
    "POST /create_preference",
    "POST /send-whatsapp-notification",
    "POST /send-confirmation-email",
]

_FALLBACK_INDEX = """<!DOCTYPE html>
<html>
<head><title>{name}</title></head>
<body style="font-family: Arial, sans-serif; text-align: center; padding: 50px;">
  <h1>{name}</h1>
  <p>Store is running ({target}).</p>
</body>
</html>
"""


# ---------------------------
# Error handlers
# ---------------------------
@app.exception_handler(StoreError)
async def _store_error(request: Request, exc: StoreError):
    if isinstance(exc, PersistenceError):
        logger.error("Persistence failure on %s %s: %s (path=%s)", request.method, request.url.path, exc.message, exc.path)
    elif isinstance(exc, ExternalServiceError):
        logger.error("External service failure on %s %s: %s", request.method, request.url.path, exc.message)
    body = {"error": exc.message}
    if exc.details:
        body["details"] = exc.details
    return JSONResponse(body, status_code=exc.status_code)


@app.exception_handler(RequestValidationError)
async def _request_invalid(request: Request, exc: RequestValidationError):
    details = [{"field": ".".join(str(p) for p in e.get("loc", ())), "msg": e.get("msg", "")} for e in exc.errors()]
    return JSONResponse({"error": "Invalid request data", "details": details}, status_code=400)


@app.exception_handler(StarletteHTTPException)
async def _http_error(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        logger.warning("Route not found: %s %s", request.method, request.url.path)
        detail = exc.detail if exc.detail != "Not Found" else "Route not found"
        return JSONResponse({"error": detail, "availableRoutes": AVAILABLE_ROUTES}, status_code=404)
    return JSONResponse({"error": exc.detail}, status_code=exc.status_code, headers=getattr(exc, "headers", None))


@app.exception_handler(Exception)
async def _unhandled(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    body = {"error": "Internal server error"}
    if not settings.is_production:
        body["detail"] = str(exc)
    return JSONResponse(body, status_code=500)


# ---------------------------
# Pages and health
# ---------------------------
@app.get("/", include_in_schema=False)
async def index():
    page = settings.static_root / "index.html"
    if page.is_file():
        return FileResponse(page)
    return HTMLResponse(_FALLBACK_INDEX.format(name=settings.store_name, target=settings.deploy_target))


@app.get("/admin.html", include_in_schema=False)
async def admin_page():
    page = settings.static_root / "admin.html"
    if not page.is_file():
        raise StarletteHTTPException(status_code=404, detail="Admin page not found")
    return FileResponse(page)


@app.get("/img/{filename}", include_in_schema=False)
async def product_image(filename: str):
    path = image_path(filename)
    if not path.is_file():
        raise StarletteHTTPException(status_code=404, detail="Image not found")
    return FileResponse(path)


@app.get("/health")
async def health():
    return {
        "status": "OK",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": settings.environment,
        "target": settings.deploy_target,
        "env": {
            "hasPayments": settings.has_payments,
            "hasEmail": settings.has_email,
            "hasAdmin": settings.has_admin,
            "hasWhatsapp": settings.has_whatsapp,
        },
    }


# ---------------------------
# Catalog endpoints
# ---------------------------
@app.get("/api/products")
async def list_products():
    return await list_products_logic()


# ---------------------------
# Admin endpoints
# ---------------------------
@app.post("/admin/login")
async def admin_login(creds: Credentials, request: Request):
    return await login_logic(creds, security.client_ip(request))


@app.get("/admin/products")
async def admin_list_products():
    return await list_products_logic()


@app.post("/admin/products")
async def admin_create_product(
    name: Optional[str] = Form(None),
    price: Optional[str] = Form(None),
    size: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    username: Optional[str] = Form(None),
    password: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
):
    return await create_product_logic(name, price, size, description, username, password, image)


@app.put("/admin/products/{product_id}")
async def admin_replace_product(product_id: str, payload: ProductReplaceIn):
    return await replace_product_logic(product_id, payload)


@app.delete("/admin/products/{product_id}")
async def admin_delete_product(product_id: str, creds: Optional[Credentials] = None):
    return await delete_product_logic(product_id, creds or Credentials())


# ---------------------------
# Checkout endpoints
# ---------------------------
@app.post("/create_preference")
async def create_preference(
    req: PreferenceRequest,
    request: Request,
    client: Optional[MercadoPagoClient] = Depends(get_payments_client),
):
    return await create_preference_logic(req, client, security.client_ip(request))


@app.post("/send-whatsapp-notification")
async def send_whatsapp_notification(order: OrderIn):
    return await whatsapp_logic(order)


@app.post("/send-confirmation-email")
async def send_confirmation_email(order: OrderIn, mailer: Optional[Mailer] = Depends(get_mailer)):
    return await confirmation_email_logic(order, mailer)


# ---------------------------
# Payment return URLs
# ---------------------------
@app.get("/success", include_in_schema=False)
async def payment_success():
    return RedirectResponse("/?status=success", status_code=302)


@app.get("/failure", include_in_schema=False)
async def payment_failure():
    return RedirectResponse("/?status=failure", status_code=302)


@app.get("/pending", include_in_schema=False)
async def payment_pending():
    return RedirectResponse("/?status=pending", status_code=302)


def run() -> None:
    import uvicorn

    logger.info("Starting storefront on port %d (%s, %s)", settings.port, settings.environment, settings.deploy_target)
    logger.info("Catalog: %s, images: %s", settings.catalog_path, settings.image_dir)
    uvicorn.run("storefront.main:app", host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    run()
