from enum import Enum


class ErrorCategory(Enum):
    """
    Stable, machine-checkable error classes exposed to callers.

    NOT_FOUND, BAD_REQUEST and FORBIDDEN will fail again on retry;
    CONFLICT was caused by concurrent writers and may succeed on retry.
    """
    NOT_FOUND = "NOT_FOUND"
    BAD_REQUEST = "BAD_REQUEST"
    FORBIDDEN = "FORBIDDEN"
    CONFLICT = "CONFLICT"
