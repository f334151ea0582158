"""
Base exception classes for the order and inventory core.
"""

from enums.error_category import ErrorCategory


class ShopException(Exception):
    """
    Base exception for all shop errors.

    All custom exceptions inherit from this class, so callers (request
    handlers) can catch every business error with a single handler and map
    it by ``category``.

    Attributes:
        message: Human-readable error message
        details: Optional dict with additional context (entity IDs, states, etc.)
        category: Stable error class (NOT_FOUND, BAD_REQUEST, FORBIDDEN, CONFLICT)
    """

    category: ErrorCategory = ErrorCategory.BAD_REQUEST

    def __init__(self, message: str, details: dict | None = None):
        """
        Initialize base exception.

        Args:
            message: Human-readable error message
            details: Optional dict with additional context
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    @property
    def retryable(self) -> bool:
        """Only conflicts caused by concurrent writers can succeed on retry."""
        return self.category == ErrorCategory.CONFLICT

    def __str__(self) -> str:
        """Return the error message."""
        return self.message

    def __repr__(self) -> str:
        """Return detailed representation with context."""
        if self.details:
            details_str = ', '.join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.__class__.__name__}('{self.message}', {details_str})"
        return f"{self.__class__.__name__}('{self.message}')"


class ConcurrencyConflictException(ShopException):
    """Raised when a concurrent transaction won a race for the same rows (lock timeout, serialization failure)."""

    category = ErrorCategory.CONFLICT

    def __init__(self, operation: str, reason: str):
        super().__init__(
            f"Concurrent update conflict during {operation}: {reason}",
            details={'operation': operation, 'reason': reason}
        )
        self.operation = operation
        self.reason = reason
