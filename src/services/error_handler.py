"""
Error handling for the indexer.

Centralizes how RPC, persistence and per-transaction failures are logged,
and decides whether the poller may keep reconnecting.
"""

from typing import Any, Dict

import structlog

from src.config import settings
from src.utils.exceptions import ReceiptFetchError


class ErrorHandler:
    """Handle indexing errors and recovery"""

    def __init__(self, max_reconnect_attempts: int = None, reconnect_delay_ms: int = None):
        self.logger = structlog.get_logger()
        self.max_reconnect_attempts = (
            settings.MAX_RECONNECT_ATTEMPTS if max_reconnect_attempts is None else max_reconnect_attempts
        )
        self.reconnect_delay_ms = settings.RECONNECT_DELAY_MS if reconnect_delay_ms is None else reconnect_delay_ms

    def handle_rpc_error(self, error: Exception, context: Dict[str, Any]) -> None:
        """
        Log an error that stopped forward progress (tip query, block fetch, receipts).

        Args:
            error: The exception that occurred
            context: Additional context about the error
        """
        if isinstance(error, ReceiptFetchError):
            self.logger.error(
                "Receipt fetch failed",
                block=error.block_number,
                failures={tx_hash: str(exc) for tx_hash, exc in error.failures.items()},
                context=context,
            )
            return

        self.logger.error("Poll error", error=str(error), error_type=type(error).__name__, context=context)

    def handle_persistence_error(self, error: Exception, context: Dict[str, Any]) -> None:
        self.logger.error("Database error occurred", error=str(error), context=context)

    def handle_transaction_error(self, error: Exception, tx_hash: str, block_number: int) -> None:
        """
        Log a failure confined to one transaction.

        Args:
            error: The exception that occurred
            tx_hash: Hash of the transaction being handled
            block_number: Block containing the transaction
        """
        self.logger.error(
            "Error handling transaction",
            tx_hash=tx_hash,
            block=block_number,
            error=str(error),
            error_type=type(error).__name__,
        )

    def should_retry(self, attempt: int) -> bool:
        """
        Whether another reconnect is allowed after `attempt` consecutive failures.

        Args:
            attempt: Consecutive failures so far, including the current one

        Returns:
            True while the attempt budget is not exceeded
        """
        return attempt <= self.max_reconnect_attempts

    def get_retry_delay(self, attempt: int) -> float:
        """
        Fixed reconnect delay in seconds.

        Args:
            attempt: The current retry attempt number

        Returns:
            The delay in seconds
        """
        delay = self.reconnect_delay_ms / 1000.0
        self.logger.warning(
            "Reconnecting",
            attempt=attempt,
            max_attempts=self.max_reconnect_attempts,
            delay=delay,
        )
        return delay
