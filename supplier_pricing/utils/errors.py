"""
Custom Exception Classes
========================

Application-specific exceptions for proper error handling.
"""

from typing import Any


class SupplierPricingError(Exception):
    """Base exception for the supplier pricing service."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ParsingError(SupplierPricingError):
    """Raised when an uploaded table cannot be read."""

    pass


class UnsupportedFileError(ParsingError):
    """Raised when the upload is not a supported spreadsheet format."""

    pass


class MissingHeaderError(ParsingError):
    """
    Raised when required column headers are absent from the header row.

    Aborts the whole run before any data row is processed. Usually means
    the caller uploaded a price request file to the ingestion endpoint or
    the other way round.
    """

    def __init__(self, missing: list[str], expected_for: str) -> None:
        super().__init__(
            f"Required columns not found: {', '.join(missing)}. "
            f"Make sure the file is intended for {expected_for}.",
            details={"missing_columns": missing, "expected_for": expected_for},
        )
        self.missing = missing


class RowError(SupplierPricingError):
    """Raised for a single bad data row. Counted, never surfaced."""

    pass


class DatabaseError(SupplierPricingError):
    """Raised when database operations fail."""

    pass


class ValidationError(SupplierPricingError):
    """Raised when input validation fails."""

    pass


class FileSizeError(SupplierPricingError):
    """Raised when a file exceeds the maximum allowed size."""

    pass


class AuthenticationError(SupplierPricingError):
    """Raised when the caller identity is missing."""

    pass


class SubscriptionInactiveError(SupplierPricingError):
    """Raised when the caller's subscription is not active."""

    pass
