# Overview: Error taxonomy shared by services and routes.

"""
Typed errors raised by the cashier core.

Every service failure surfaces as one of these. Routes translate them to
JSON responses with `json_error`; database errors are converted by the
transaction guard in `services/concurrency.py`.
"""
from __future__ import annotations

from flask import jsonify


class CashierError(Exception):
    """Base class for errors surfaced to the caller."""
    status_code = 500

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(CashierError):
    """Malformed input or a business rule rejected the request."""
    status_code = 400


class InsufficientPaymentError(ValidationError):
    """Payment is below the invoice total."""


class InsufficientStockError(ValidationError):
    """A sale would drive a product's stock below zero."""


class InvoiceAlreadyExistsError(ValidationError):
    """The sale already has an invoice."""


class NotFoundError(CashierError):
    """A referenced product, sale, invoice or settings row does not exist."""
    status_code = 404


class ConcurrencyError(CashierError):
    """A conflicting concurrent writer was detected; the caller may retry."""
    status_code = 409


class PersistenceError(CashierError):
    """Connection, transaction or constraint failure in the database."""
    status_code = 503


def json_error(exc: CashierError):
    body = {"error": exc.message}
    if exc.details:
        body["details"] = exc.details
    return jsonify(body), exc.status_code
