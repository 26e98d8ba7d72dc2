# storefront/errors.py
from typing import Any, List, Optional


class StoreError(Exception):
    """Base error; handlers render it as {"error": message} with `status_code`."""

    status_code = 500

    def __init__(self, message: str, details: Optional[List[Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(StoreError):
    status_code = 400


class AuthError(StoreError):
    status_code = 401


class NotFoundError(StoreError):
    status_code = 404


class ExternalServiceError(StoreError):
    status_code = 500


class PersistenceError(StoreError):
    status_code = 500

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path
