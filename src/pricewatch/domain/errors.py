# src/pricewatch/domain/errors.py
"""
Domain Errors - Business Logic Exceptions

This module defines domain-specific exceptions that represent
business rule violations and pipeline failures.
"""
from typing import Optional


class DomainError(Exception):
    """Base exception for domain errors."""
    pass


class InvalidQuoteError(DomainError):
    """Raised when a quote value is invalid (e.g., negative, zero or not finite)."""
    pass


class SourceUnavailableError(DomainError):
    """Raised by a source adapter when it cannot produce a usable quote."""
    pass


class PersistenceError(DomainError):
    """Raised when a record or query against the document store fails."""
    pass


class DeliveryTransientError(DomainError):
    """Raised when a notification could not be delivered but may succeed later."""

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.code = code
