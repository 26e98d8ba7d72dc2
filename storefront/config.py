# storefront/config.py
import os
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel

# Values are read once at import; handlers read them through `settings` at call time.
load_dotenv()

_REPO_ROOT = Path(__file__).resolve().parent.parent
PLACEHOLDER_TOKEN = "TEST-TOKEN"


def _bool_env(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _int_env(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except (TypeError, ValueError):
        return default


def _float_env(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except (TypeError, ValueError):
        return default


class Settings(BaseModel):
    environment: str = "development"
    deploy_target: str = "local"
    port: int = 8085
    public_base_url: str = "http://localhost:8085"

    static_root: Path = _REPO_ROOT
    catalog_path: Path = _REPO_ROOT / "products.json"
    image_dir: Path = _REPO_ROOT / "img"

    mercadopago_access_token: Optional[str] = None
    mercadopago_api_url: str = "https://api.mercadopago.com"

    admin_username: Optional[str] = None
    admin_password: Optional[str] = None

    email_user: Optional[str] = None
    email_pass: Optional[str] = None
    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 587

    whatsapp_number: Optional[str] = None
    store_name: str = "Storefront"

    allowed_origins: List[str] = ["*"]
    hardened: bool = False
    rate_limit_requests: int = 100
    rate_limit_window_sec: int = 900
    login_rate_limit: int = 5

    log_level: str = "INFO"
    outbound_timeout_sec: float = 10.0

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def is_serverless(self) -> bool:
        return self.deploy_target.lower() == "serverless"

    @property
    def has_payments(self) -> bool:
        token = (self.mercadopago_access_token or "").strip()
        return bool(token) and token != PLACEHOLDER_TOKEN

    @property
    def has_email(self) -> bool:
        return bool(self.email_user and self.email_pass)

    @property
    def has_admin(self) -> bool:
        return bool(self.admin_username and self.admin_password)

    @property
    def has_whatsapp(self) -> bool:
        return bool(self.whatsapp_number)

    @classmethod
    def from_env(cls) -> "Settings":
        default_target = "serverless" if os.getenv("VERCEL") else "local"
        target = os.getenv("DEPLOY_TARGET", default_target).strip().lower()
        port = _int_env("PORT", 8085)

        static_root = Path(os.getenv("STATIC_ROOT", str(_REPO_ROOT))).expanduser()
        catalog_path = Path(os.getenv("CATALOG_PATH", str(static_root / "products.json"))).expanduser()
        default_images = Path("/tmp/img") if target == "serverless" else static_root / "img"
        image_dir = Path(os.getenv("IMAGE_DIR", str(default_images))).expanduser()

        origins = [o.strip() for o in os.getenv("ALLOWED_ORIGINS", "*").split(",") if o.strip()]

        return cls(
            environment=os.getenv("ENVIRONMENT", "development").strip().lower(),
            deploy_target=target,
            port=port,
            public_base_url=os.getenv("PUBLIC_BASE_URL", f"http://localhost:{port}").rstrip("/"),
            static_root=static_root,
            catalog_path=catalog_path,
            image_dir=image_dir,
            mercadopago_access_token=os.getenv("MERCADOPAGO_ACCESS_TOKEN") or None,
            mercadopago_api_url=os.getenv("MERCADOPAGO_API_URL", "https://api.mercadopago.com").rstrip("/"),
            admin_username=os.getenv("ADMIN_USERNAME") or None,
            admin_password=os.getenv("ADMIN_PASSWORD") or None,
            email_user=os.getenv("EMAIL_USER") or None,
            email_pass=os.getenv("EMAIL_PASS") or None,
            smtp_host=os.getenv("SMTP_HOST", "smtp.gmail.com"),
            smtp_port=_int_env("SMTP_PORT", 587),
            whatsapp_number=os.getenv("WHATSAPP_NUMBER") or None,
            store_name=os.getenv("STORE_NAME", "Storefront"),
            allowed_origins=origins or ["*"],
            hardened=_bool_env("HARDENED"),
            rate_limit_requests=_int_env("RATE_LIMIT_REQUESTS", 100),
            rate_limit_window_sec=_int_env("RATE_LIMIT_WINDOW_SEC", 900),
            login_rate_limit=_int_env("LOGIN_RATE_LIMIT", 5),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            outbound_timeout_sec=_float_env("OUTBOUND_TIMEOUT_SEC", 10.0),
        )


settings = Settings.from_env()
