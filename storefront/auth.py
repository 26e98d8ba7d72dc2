# storefront/auth.py
import hmac
import logging
from typing import Optional

from .config import settings
from .errors import AuthError

logger = logging.getLogger(__name__)


def _same(a: Optional[str], b: Optional[str]) -> bool:
    return hmac.compare_digest((a or "").encode("utf-8"), (b or "").encode("utf-8"))


def check_admin(username: Optional[str], password: Optional[str]) -> None:
    """Raise AuthError unless the pair matches the configured admin credentials.

    Credentials travel with every privileged request; nothing is issued back.
    """
    if not settings.has_admin:
        logger.warning("Admin credentials are not configured; rejecting privileged request")
        raise AuthError("Invalid credentials")
    user_ok = _same(username, settings.admin_username)
    pass_ok = _same(password, settings.admin_password)
    if not (user_ok and pass_ok):
        raise AuthError("Invalid credentials")
