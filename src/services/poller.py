"""
Poll scheduler and cursor manager.

Drives the block processor over every block between the cursor and the chain
tip, in ascending order, then sleeps until the next tick. RPC or processing
failures move the scheduler into a reconnecting state with a fixed delay and a
bounded number of attempts; the failing block is retried, never skipped.
"""

import threading
from enum import Enum
from typing import Optional

import structlog

from src.config import settings
from src.utils.exceptions import MaxReconnectAttemptsExceeded
from .block_processor import BlockProcessor
from .chain_rpc import ChainRPCService
from .error_handler import ErrorHandler
from .monitoring import MonitoringService
from .persistence import PersistenceGateway


class PollerState(Enum):
    IDLE = "idle"
    POLLING = "polling"
    RECONNECTING = "reconnecting"


class PollScheduler:
    """Single-worker poll loop. The cursor has exactly one writer: this object."""

    def __init__(
        self,
        rpc: ChainRPCService,
        processor: BlockProcessor,
        gateway: PersistenceGateway,
        poll_interval_ms: int = None,
        chain: str = None,
        resume_from_persisted: bool = None,
        error_handler: ErrorHandler = None,
        monitoring: MonitoringService = None,
    ):
        self.rpc = rpc
        self.processor = processor
        self.gateway = gateway
        self.poll_interval = (settings.POLL_INTERVAL_MS if poll_interval_ms is None else poll_interval_ms) / 1000.0
        self.chain = chain or settings.CHAIN_NAME
        self.resume_from_persisted = (
            settings.RESUME_FROM_PERSISTED_CURSOR if resume_from_persisted is None else resume_from_persisted
        )
        self.error_handler = error_handler or ErrorHandler()
        self.monitoring = monitoring or MonitoringService()
        self.logger = structlog.get_logger()

        self.state = PollerState.IDLE
        self.last_processed_block: Optional[int] = None
        self.reconnect_attempts = 0
        self._running = False
        self._stop_event = threading.Event()

    def initialize_cursor(self, start_height: Optional[int] = None) -> int:
        """
        Set the cursor before the first tick.

        Priority: explicit start height, then the persisted cursor (when
        resuming is enabled), then chain tip - 1.
        """
        tip = self.rpc.get_block_number()

        if start_height is not None:
            cursor, source = start_height - 1, "start_height"
        else:
            persisted = self.gateway.get_cursor(self.chain) if self.resume_from_persisted else None
            if persisted is not None:
                cursor, source = persisted, "persisted"
            else:
                cursor, source = tip - 1, "chain_tip"

        self.last_processed_block = cursor
        self.logger.info(
            "Starting from block",
            start_block=cursor + 1,
            chain_tip=tip,
            blocks_behind=max(0, tip - cursor),
            cursor_source=source,
        )
        return cursor

    def start(self, start_height: Optional[int] = None) -> None:
        """
        Run until stop() is called.

        Raises:
            MaxReconnectAttemptsExceeded: When consecutive failures exceed the budget
        """
        self._stop_event.clear()
        self._running = True

        try:
            self.initialize_cursor(start_height)
            self.state = PollerState.POLLING

            delay = self.poll_interval
            while self._running:
                if self._wait(delay):
                    break

                try:
                    self.poll_once()
                    self.reconnect_attempts = 0
                    self.state = PollerState.POLLING
                    delay = self.poll_interval
                except Exception as e:
                    delay = self._handle_reconnection(e)
        finally:
            self._running = False
            self.state = PollerState.IDLE

    def poll_once(self) -> int:
        """
        One tick: drain every block from cursor + 1 up to the current tip.

        Returns:
            Number of blocks processed
        """
        latest_block = self.rpc.get_block_number()
        processed = 0

        for height in range(self.last_processed_block + 1, latest_block + 1):
            if self._stop_event.is_set():
                self.logger.info("Stop requested, leaving tick at block boundary", cursor=self.last_processed_block)
                break

            block = self.rpc.get_block(height, full_transactions=True)
            if block is None:
                # Not served by the node yet, retried next tick
                self.logger.warning("Block not available yet", height=height, chain_tip=latest_block)
                break

            result = self.processor.process_block(block)
            if result.incomplete:
                # Written rows are upserts, the whole block is replayed next tick
                self.logger.warning("Block incomplete, retrying next tick", height=height, skipped=result.skipped)
                break

            self._advance_cursor(height)
            self.monitoring.record_block_processed(result)
            processed += 1

        return processed

    def _advance_cursor(self, height: int) -> None:
        if height != self.last_processed_block + 1:
            raise ValueError(f"Cursor must advance by one: {self.last_processed_block} -> {height}")

        self.gateway.save_cursor(self.chain, height)
        self.last_processed_block = height

    def _handle_reconnection(self, error: Exception) -> float:
        self.state = PollerState.RECONNECTING
        self.reconnect_attempts += 1
        self.monitoring.record_reconnect()
        self.error_handler.handle_rpc_error(
            error,
            {"cursor": self.last_processed_block, "attempt": self.reconnect_attempts},
        )

        if not self.error_handler.should_retry(self.reconnect_attempts):
            self.logger.critical(
                "Max reconnection attempts reached",
                attempts=self.reconnect_attempts,
                cursor=self.last_processed_block,
            )
            raise MaxReconnectAttemptsExceeded(self.reconnect_attempts, error)

        return self.error_handler.get_retry_delay(self.reconnect_attempts)

    def _wait(self, seconds: float) -> bool:
        """Suspend until the next tick. Returns True if stop() was called."""
        return self._stop_event.wait(seconds)

    def stop(self) -> None:
        self._running = False
        self._stop_event.set()
        self.logger.info("Indexer stopped", cursor=self.last_processed_block)

    def is_running(self) -> bool:
        return self._running

    def get_last_processed_block(self) -> Optional[int]:
        return self.last_processed_block
