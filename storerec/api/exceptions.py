"""Custom exceptions for the StoreRec API.

Defines specific exception types for better error handling and reporting.
Each exception carries the HTTP status code the API answers with.
"""

from typing import Any, Dict, Optional


class StoreRecException(Exception):
    """Base exception for StoreRec errors."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None,
    ):
        """Initialize exception.

        Args:
            message: Human-readable error message
            status_code: HTTP status code for API responses
            details: Additional error details for debugging
        """
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.details = details or {}


class ValidationError(StoreRecException):
    """Raised when a behavior event input is malformed."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, status_code=400, details=details)


class DataUnavailable(StoreRecException):
    """Raised when the store cannot return a behavior or catalog snapshot."""

    def __init__(self, source: str, error: Exception):
        message = f"Failed to read {source}: {str(error)}"
        super().__init__(
            message=message,
            status_code=503,
            details={
                "source": source,
                "error": str(error),
                "error_type": type(error).__name__,
            },
        )


class ProductNotFoundError(StoreRecException):
    """Raised when a product id is not in the catalog."""

    def __init__(self, product_id: str):
        message = f"Product '{product_id}' not found."
        super().__init__(
            message=message,
            status_code=404,
            details={"product_id": product_id},
        )
