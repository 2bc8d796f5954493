"""
EVM JSON-RPC service for blockchain interaction.
"""

import time
import random
from typing import Dict, Any, Optional
from functools import wraps
from enum import Enum

import structlog
from hexbytes import HexBytes
from web3 import Web3
from web3.datastructures import AttributeDict
from web3.exceptions import BlockNotFound, TransactionNotFound
from web3.middleware import ExtraDataToPOAMiddleware

from src.config import settings
from src.utils.exceptions import ConfigurationError

logger = structlog.get_logger()


class ConnectionState(Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    FAILED = "failed"


def retry_on_rpc_error(max_retries: int = 2, base_delay: float = 0.5, max_delay: float = 10.0):
    """
    Decorator for automatic retry with exponential backoff on RPC errors.

    Args:
        max_retries: Maximum number of retry attempts
        base_delay: Base delay in seconds between retries
        max_delay: Maximum delay in seconds between retries
    """

    def decorator(func):
        @wraps(func)
        def wrapper(self, *args, **kwargs):
            last_exception = None

            for attempt in range(max_retries + 1):
                try:
                    result = func(self, *args, **kwargs)
                    self._consecutive_failures = 0
                    self._connection_state = ConnectionState.HEALTHY
                    return result
                except Exception as e:
                    last_exception = e
                    self._consecutive_failures += 1

                    if self._is_connection_error(e):
                        logger.warning(
                            "RPC connection error detected, forcing reconnection",
                            error=str(e),
                            attempt=attempt + 1,
                            max_retries=max_retries,
                        )
                        self._force_reconnect()
                        self._connection_state = ConnectionState.DEGRADED

                    if attempt == max_retries:
                        logger.error(
                            "RPC call failed after all retries",
                            function=func.__name__,
                            error=str(e),
                            attempts=attempt + 1,
                        )
                        break

                    delay = min(base_delay * (2**attempt), max_delay)
                    jitter = random.uniform(0, delay * 0.1)  # nosec B311
                    actual_delay = delay + jitter

                    logger.info(
                        "RPC call failed, retrying",
                        function=func.__name__,
                        error=str(e),
                        attempt=attempt + 1,
                        max_retries=max_retries,
                        retry_delay=actual_delay,
                    )

                    time.sleep(actual_delay)

            self._connection_state = ConnectionState.FAILED
            raise last_exception

        return wrapper

    return decorator


def normalize_rpc_value(value: Any) -> Any:
    """Convert web3 results (AttributeDict, HexBytes) into plain dicts and 0x-hex strings."""
    if isinstance(value, (AttributeDict, dict)):
        return {key: normalize_rpc_value(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [normalize_rpc_value(item) for item in value]
    if isinstance(value, (HexBytes, bytes, bytearray)):
        return "0x" + bytes(value).hex()
    return value


class ChainRPCService:
    """
    JSON-RPC client for an EVM chain (BNB Smart Chain by default) with retry,
    connection state tracking and normalized return values.

    Lookups that the node cannot answer yet (block or transaction not indexed)
    return None instead of raising, so callers can skip and retry next tick.
    """

    def __init__(self, rpc_url: str = None, timeout: int = None, web3: Optional[Web3] = None):
        """
        Initialize the RPC service.

        Args:
            rpc_url: JSON-RPC endpoint (default from settings)
            timeout: HTTP request timeout in seconds (default from settings)
            web3: Pre-built Web3 instance, mainly for tests

        Raises:
            ConfigurationError: If no endpoint is configured
        """
        self.rpc_url = rpc_url or settings.RPC_ENDPOINT
        self.timeout = timeout or settings.RPC_TIMEOUT

        if not self.rpc_url:
            raise ConfigurationError("RPC_ENDPOINT environment variable is required")

        self._w3 = web3
        self._connection_state = ConnectionState.HEALTHY
        self._last_health_check = 0
        self._health_check_interval = 30
        self._consecutive_failures = 0
        self._max_consecutive_failures = 5

        logger.info(
            "Chain RPC service initialized",
            rpc_url=self.rpc_url,
            connection_state=self._connection_state.value,
        )

    def _is_connection_error(self, error: Exception) -> bool:
        """Check if an error is connection-related and should trigger reconnection."""
        if isinstance(error, (ConnectionError, TimeoutError)):
            return True
        error_str = str(error).lower()
        connection_error_indicators = [
            "connection refused",
            "connection reset",
            "connection aborted",
            "timeout",
            "timed out",
            "max retries exceeded",
            "remote end closed",
            "connection closed",
            "too many requests",
        ]
        return any(indicator in error_str for indicator in connection_error_indicators)

    def _force_reconnect(self):
        """Drop the current provider so the next call builds a fresh one."""
        if self._w3 is not None:
            self._w3 = None
            logger.info("Forced RPC reconnection")

    def _get_web3(self) -> Web3:
        if self._connection_state == ConnectionState.FAILED:
            self._force_reconnect()

        if self._w3 is None:
            logger.info("Creating new RPC connection", rpc_url=self.rpc_url)
            w3 = Web3(Web3.HTTPProvider(self.rpc_url, request_kwargs={"timeout": self.timeout}))
            # BSC block headers carry extra-data beyond the 32-byte limit
            w3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)
            self._w3 = w3
            self._connection_state = ConnectionState.HEALTHY

        return self._w3

    def _health_check(self) -> bool:
        """
        Perform health check on RPC connection.

        Returns:
            bool: True if connection is healthy
        """
        current_time = time.time()

        if current_time - self._last_health_check < self._health_check_interval:
            return self._connection_state == ConnectionState.HEALTHY

        try:
            self._get_web3().eth.block_number

            self._connection_state = ConnectionState.HEALTHY
            self._consecutive_failures = 0
            self._last_health_check = current_time

            logger.debug("RPC health check passed")
            return True

        except Exception as e:
            self._consecutive_failures += 1

            if self._consecutive_failures >= self._max_consecutive_failures:
                self._connection_state = ConnectionState.FAILED
                logger.error(
                    "RPC health check failed, connection marked as failed",
                    error=str(e),
                    consecutive_failures=self._consecutive_failures,
                )
            else:
                self._connection_state = ConnectionState.DEGRADED
                logger.warning(
                    "RPC health check failed, connection degraded",
                    error=str(e),
                    consecutive_failures=self._consecutive_failures,
                )

            self._last_health_check = current_time
            return False

    def get_connection_status(self) -> Dict[str, Any]:
        return {
            "state": self._connection_state.value,
            "consecutive_failures": self._consecutive_failures,
            "last_health_check": self._last_health_check,
            "connection_url": self.rpc_url,
            "healthy": self._connection_state == ConnectionState.HEALTHY,
        }

    @retry_on_rpc_error(max_retries=settings.RPC_MAX_RETRIES)
    def get_block_number(self) -> int:
        """Current chain tip height."""
        return int(self._get_web3().eth.block_number)

    @retry_on_rpc_error(max_retries=settings.RPC_MAX_RETRIES)
    def get_block(self, height: int, full_transactions: bool = True) -> Optional[Dict[str, Any]]:
        """
        Get block by height.

        Args:
            height: Block height to retrieve
            full_transactions: Embed transaction objects instead of hashes

        Returns:
            Block dict, or None when the node does not have the block yet
        """
        try:
            block = self._get_web3().eth.get_block(height, full_transactions=full_transactions)
        except BlockNotFound:
            return None
        return normalize_rpc_value(block) if block is not None else None

    @retry_on_rpc_error(max_retries=settings.RPC_MAX_RETRIES)
    def get_transaction_receipt(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        """Receipt for a transaction, or None when not indexed yet."""
        try:
            receipt = self._get_web3().eth.get_transaction_receipt(tx_hash)
        except TransactionNotFound:
            return None
        return normalize_rpc_value(receipt) if receipt is not None else None

    @retry_on_rpc_error(max_retries=settings.RPC_MAX_RETRIES)
    def get_transaction(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        """Transaction details (value, input, nonce, gasPrice), or None when not indexed yet."""
        try:
            tx = self._get_web3().eth.get_transaction(tx_hash)
        except TransactionNotFound:
            return None
        return normalize_rpc_value(tx) if tx is not None else None

    def test_connection(self) -> bool:
        try:
            return self._health_check()
        except Exception:
            return False

    def close(self):
        """Close RPC connection and reset state."""
        if self._w3 is not None:
            self._w3 = None
            self._connection_state = ConnectionState.HEALTHY
            self._consecutive_failures = 0
            logger.info("RPC connection closed")
