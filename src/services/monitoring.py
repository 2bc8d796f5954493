"""
Runtime statistics for the indexer.

Aggregates block processing results into counters the poller logs
periodically and the health check can report.
"""

import time
from collections import deque
from dataclasses import dataclass
from typing import Optional

import structlog

from src.config import settings


@dataclass
class IndexerStats:
    """Snapshot of indexer activity since start"""

    total_transactions: int
    successful_transactions: int
    failed_transactions: int
    large_transfers: int
    token_transfers: int
    transaction_errors: int
    blocks_processed: int
    reconnects: int
    uptime: float
    last_processed_block: Optional[int]
    avg_block_processing_time: float


class MonitoringService:
    """Collects per-block counters and emits periodic stats log lines."""

    def __init__(self, log_interval: int = None):
        self.logger = structlog.get_logger()
        self.log_interval = settings.STATS_LOG_INTERVAL if log_interval is None else log_interval

        self._start_time = time.time()
        self._block_processing_times = deque(maxlen=1000)
        self._total_transactions = 0
        self._successful_transactions = 0
        self._failed_transactions = 0
        self._large_transfers = 0
        self._token_transfers = 0
        self._transaction_errors = 0
        self._blocks_processed = 0
        self._reconnects = 0
        self._last_processed_block = None

    def record_block_processed(self, result) -> None:
        """
        Record a BlockProcessingResult.

        Args:
            result: Outcome of BlockProcessor.process_block
        """
        self._block_processing_times.append(result.processing_time)
        self._total_transactions += result.transactions_indexed
        self._successful_transactions += result.successful_transactions
        self._failed_transactions += result.failed_transactions
        self._large_transfers += result.large_transfers
        self._token_transfers += result.token_transfers
        self._transaction_errors += len(result.errors)
        self._blocks_processed += 1
        self._last_processed_block = result.height

        if self.log_interval and self._blocks_processed % self.log_interval == 0:
            stats = self.get_stats()
            self.logger.info(
                "Indexer stats",
                blocks_processed=stats.blocks_processed,
                last_processed_block=stats.last_processed_block,
                total_transactions=stats.total_transactions,
                failed_transactions=stats.failed_transactions,
                large_transfers=stats.large_transfers,
                token_transfers=stats.token_transfers,
                avg_block_processing_time=round(stats.avg_block_processing_time, 3),
                uptime=round(stats.uptime, 1),
            )

    def record_reconnect(self) -> None:
        self._reconnects += 1

    def get_stats(self) -> IndexerStats:
        avg_time = (
            sum(self._block_processing_times) / len(self._block_processing_times)
            if self._block_processing_times
            else 0.0
        )
        return IndexerStats(
            total_transactions=self._total_transactions,
            successful_transactions=self._successful_transactions,
            failed_transactions=self._failed_transactions,
            large_transfers=self._large_transfers,
            token_transfers=self._token_transfers,
            transaction_errors=self._transaction_errors,
            blocks_processed=self._blocks_processed,
            reconnects=self._reconnects,
            uptime=time.time() - self._start_time,
            last_processed_block=self._last_processed_block,
            avg_block_processing_time=avg_time,
        )
