# app/domain/errors.py
from typing import Any, Dict


class StoreError(Exception):
    """Bazowy blad domeny - tlumaczony na odpowiedz HTTP w routerach."""

    status_code = 400

    def __init__(self, message: str, details: Dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(StoreError):
    status_code = 422


class NotFoundError(StoreError):
    status_code = 404


class EmptyCartError(StoreError):
    status_code = 400


class ConflictError(StoreError):
    status_code = 409
