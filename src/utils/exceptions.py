"""
Indexer exception types and error classification helpers
"""

from sqlalchemy.exc import IntegrityError

# SQLSTATE for unique_violation
PG_UNIQUE_VIOLATION = "23505"


class IndexerError(Exception):

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ConfigurationError(IndexerError):
    """Raised at startup when a required setting is missing or invalid"""

    pass


class ReceiptFetchError(IndexerError):

    def __init__(self, block_number: int, failures: dict):
        self.block_number = block_number
        self.failures = failures
        super().__init__(
            f"Failed to fetch {len(failures)} receipt(s) for block {block_number}"
        )


class MaxReconnectAttemptsExceeded(IndexerError):

    def __init__(self, attempts: int, last_error: Exception = None):
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"Max reconnection attempts reached ({attempts}): {last_error}"
        )


def is_unique_violation(error: Exception) -> bool:
    """Return True when a persistence error is a duplicate-key conflict."""
    if not isinstance(error, IntegrityError):
        return False

    orig = getattr(error, "orig", None)
    if getattr(orig, "pgcode", None) == PG_UNIQUE_VIOLATION:
        return True

    error_str = str(error).lower()
    return (
        "unique constraint failed" in error_str
        or "uniqueviolation" in error_str
        or "duplicate key" in error_str
    )
