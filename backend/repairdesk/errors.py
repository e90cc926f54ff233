"""Error taxonomy shared by the store adapters, the repair system and the HTTP layer.

Every store operation fails with a ``StoreError`` (or one of its variants); the repair
system re-raises them unchanged and the app factory maps them onto the JSON error shape.
"""
from __future__ import annotations
from typing import Optional


class StoreError(Exception):
    """Generic data store failure."""
    http_status = 500
    title = 'Store Error'

    def __init__(self, message: str, *, entity: Optional[str] = None, operation: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.entity = entity
        self.operation = operation


class NotFoundError(StoreError):
    http_status = 404
    title = 'Not Found'


class ConstraintError(StoreError):
    http_status = 409
    title = 'Constraint Violation'


class ConnectivityError(StoreError):
    http_status = 503
    title = 'Store Unavailable'


class FormError(ValueError):
    """A submitted draft failed a native input constraint (e.g. a non numeric cost)."""

    def __init__(self, field: str, message: str):
        super().__init__(f"{field}: {message}")
        self.field = field


__all__ = ['StoreError', 'NotFoundError', 'ConstraintError', 'ConnectivityError', 'FormError']
