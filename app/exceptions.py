# app/exceptions.py
from typing import Any, Optional


class AppError(Exception):
    """Base error; carries the HTTP status the handlers report it with"""

    status_code = 500

    def __init__(self, message: str, detail: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail


class ValidationError(AppError):
    """Missing or invalid client input"""

    status_code = 400


class NotFoundError(AppError):
    status_code = 404


class ConflictError(AppError):
    """Duplicate email"""

    status_code = 400


class StoreError(AppError):
    """Underlying persistence failure"""

    status_code = 500


class DuplicateKeyError(StoreError):
    """A unique index rejected the write"""
