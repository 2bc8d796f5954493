"""Per-block orchestration: receipts, classification, filters, persistence."""

import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import structlog
from sqlalchemy.exc import SQLAlchemyError

from src.config import IndexerConfig, settings
from src.utils.amounts import parse_quantity, to_decimal_string
from src.utils.constants import ERC20_TRANSFER_TOPIC
from src.utils.exceptions import ReceiptFetchError
from src.utils.logging import short_hash
from .chain_rpc import ChainRPCService
from .classifier import EventKind, classify_log, decode_revert_reason, decode_transfer_log
from .error_handler import ErrorHandler
from .filters import TransactionFilters
from .persistence import PersistenceGateway


@dataclass
class BlockProcessingResult:

    height: int
    block_hash: Optional[str]
    tx_count: int
    transactions_indexed: int = 0
    successful_transactions: int = 0
    failed_transactions: int = 0
    large_transfers: int = 0
    token_transfers: int = 0
    defi_transactions: int = 0
    swaps_detected: int = 0
    skipped: int = 0
    processing_time: float = 0.0
    errors: List[str] = field(default_factory=list)

    @property
    def incomplete(self) -> bool:
        """Some transactions had no receipt or details yet; the block must be revisited."""
        return self.skipped > 0


def _tx_hash(entry: Any) -> str:
    """Block transaction lists hold either hashes or full transaction objects."""
    if isinstance(entry, dict):
        return entry["hash"]
    return str(entry)


def _calldata_or_none(tx: Dict[str, Any]) -> Optional[str]:
    data = tx.get("input")
    return data if data and len(data) > 2 else None


class BlockProcessor:
    """Processes one block at a time. Holds no state between blocks."""

    def __init__(
        self,
        gateway: PersistenceGateway,
        rpc: ChainRPCService,
        config: IndexerConfig,
        max_workers: int = None,
        error_handler: ErrorHandler = None,
    ):
        self.gateway = gateway
        self.rpc = rpc
        self.config = config
        self.max_workers = max_workers or settings.RECEIPT_FETCH_WORKERS
        self.error_handler = error_handler or ErrorHandler()
        self.logger = structlog.get_logger()

    def process_block(self, block: Dict[str, Any]) -> BlockProcessingResult:
        """
        Index every transaction of `block`.

        Receipts are fetched concurrently and joined before any write. A failed
        receipt fetch raises ReceiptFetchError; errors confined to a single
        transaction are logged and recorded in the result.
        """
        start_time = time.time()
        height = parse_quantity(block.get("number"))
        transactions = block.get("transactions") or []

        result = BlockProcessingResult(height=height, block_hash=block.get("hash"), tx_count=len(transactions))

        if not transactions:
            self.logger.info("Block empty", height=height)
            return result

        self.logger.info("Processing block", height=height, tx_count=len(transactions))

        tx_hashes = [_tx_hash(entry) for entry in transactions]
        receipts = self._fetch_receipts(height, tx_hashes)

        for tx_hash in tx_hashes:
            receipt = receipts.get(tx_hash)
            if receipt is None:
                self.logger.warning("Receipt not available yet", tx_hash=tx_hash, height=height)
                result.skipped += 1
                continue

            tx = self.rpc.get_transaction(tx_hash)
            if tx is None:
                self.logger.warning("Transaction not available yet", tx_hash=tx_hash, height=height)
                result.skipped += 1
                continue

            self.handle_transaction(tx, receipt, block, result)

        result.processing_time = time.time() - start_time
        self.logger.info(
            "Block processed",
            height=height,
            tx_count=result.tx_count,
            indexed=result.transactions_indexed,
            failed=result.failed_transactions,
            large_transfers=result.large_transfers,
            token_transfers=result.token_transfers,
            errors=len(result.errors),
            processing_time=round(result.processing_time, 3),
        )
        return result

    def _fetch_receipts(self, height: int, tx_hashes: List[str]) -> Dict[str, Optional[Dict[str, Any]]]:
        receipts: Dict[str, Optional[Dict[str, Any]]] = {}
        failures: Dict[str, Exception] = {}

        workers = max(1, min(self.max_workers, len(tx_hashes)))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="receipts") as executor:
            futures = {executor.submit(self.rpc.get_transaction_receipt, tx_hash): tx_hash for tx_hash in tx_hashes}
            for future in as_completed(futures):
                tx_hash = futures[future]
                try:
                    receipts[tx_hash] = future.result()
                except Exception as e:
                    failures[tx_hash] = e

        if failures:
            raise ReceiptFetchError(height, failures)

        return receipts

    def handle_transaction(
        self,
        tx: Dict[str, Any],
        receipt: Dict[str, Any],
        block: Dict[str, Any],
        result: BlockProcessingResult,
    ) -> None:
        tx_hash = tx.get("hash")
        block_number = parse_quantity(tx.get("blockNumber")) or parse_quantity(block.get("number"))

        try:
            success = parse_quantity(receipt.get("status")) == 1

            self.gateway.upsert_transaction(
                {
                    "hash": tx_hash,
                    "block_number": block_number,
                    "from_address": tx["from"],
                    "to_address": tx.get("to"),
                    "value": to_decimal_string(tx.get("value") or 0),
                    "gas_price": to_decimal_string(tx.get("gasPrice") or 0),
                    "gas_used": to_decimal_string(receipt.get("gasUsed")),
                    "input": _calldata_or_none(tx),
                    "nonce": parse_quantity(tx.get("nonce")) or 0,
                    "success": success,
                }
            )
            result.transactions_indexed += 1
            if success:
                result.successful_transactions += 1

            if self.handle_large_transfer(tx, block, block_number):
                result.large_transfers += 1

            result.token_transfers += self.handle_token_transfers(tx_hash, receipt, block_number)

            if TransactionFilters.is_known_contract(tx, self.config.tracked_contracts):
                result.defi_transactions += 1
                result.swaps_detected += self.detect_swaps(tx, receipt)

            if not success:
                self.handle_failed_transaction(tx, receipt, block_number)
                result.failed_transactions += 1

        except SQLAlchemyError as e:
            self.error_handler.handle_persistence_error(e, {"tx_hash": tx_hash, "block": block_number})
            result.errors.append(f"{e} (tx: {tx_hash})")

        except Exception as e:
            self.error_handler.handle_transaction_error(e, tx_hash, block_number)
            result.errors.append(f"{e} (tx: {tx_hash})")

    def handle_large_transfer(self, tx: Dict[str, Any], block: Dict[str, Any], block_number: int) -> bool:
        if not TransactionFilters.is_native_transfer(tx) or not tx.get("to"):
            return False
        if not TransactionFilters.is_large_transfer(tx, self.config.large_transfer_threshold):
            return False

        timestamp = parse_quantity(block.get("timestamp"))
        block_time = datetime.fromtimestamp(timestamp, tz=timezone.utc) if timestamp else None

        self.gateway.upsert_large_transfer(
            {
                "hash": tx["hash"],
                "from_address": tx["from"],
                "to_address": tx["to"],
                "value_wei": to_decimal_string(tx.get("value")),
                "block_number": block_number,
                "block_time": block_time,
            }
        )

        self.logger.info(
            "Large transfer",
            value=f"{TransactionFilters.to_display_units(parse_quantity(tx['value'])):.2f}",
            from_address=short_hash(tx["from"]),
            to_address=short_hash(tx["to"]),
            tx_hash=tx["hash"],
        )
        return True

    def handle_token_transfers(self, tx_hash: str, receipt: Dict[str, Any], block_number: int) -> int:
        """Persist tracked-token Transfer logs. Returns the number of new rows."""
        inserted = 0
        for log in receipt.get("logs") or []:
            topics = log.get("topics") or []
            if not topics or str(topics[0]).lower() != ERC20_TRANSFER_TOPIC:
                continue
            if not TransactionFilters.is_tracked_token(log.get("address"), self.config.tracked_tokens):
                continue

            decoded = decode_transfer_log(log)
            if decoded is None:
                continue

            created = self.gateway.insert_token_transfer(
                {
                    "hash": tx_hash,
                    "log_index": parse_quantity(log.get("logIndex")),
                    "token_address": log["address"],
                    "from_address": decoded.from_address,
                    "to_address": decoded.to_address,
                    "amount": str(decoded.amount),
                    "block_number": parse_quantity(receipt.get("blockNumber")) or block_number,
                }
            )
            if created:
                inserted += 1

        return inserted

    def detect_swaps(self, tx: Dict[str, Any], receipt: Dict[str, Any]) -> int:
        swaps = 0
        for log in receipt.get("logs") or []:
            event = classify_log(log)
            if event is None or event.kind == EventKind.TRANSFER:
                continue
            swaps += 1
            self.logger.debug("Swap detected", tx_hash=tx.get("hash"), pool=log.get("address"), kind=event.kind.value)

        if swaps:
            self.logger.info("DeFi transaction", tx_hash=tx.get("hash"), router=tx.get("to"), swaps=swaps)
        return swaps

    def handle_failed_transaction(self, tx: Dict[str, Any], receipt: Dict[str, Any], block_number: int) -> None:
        revert_reason = decode_revert_reason(tx.get("input"))

        self.gateway.upsert_failed_transaction(
            {
                "hash": tx["hash"],
                "block_number": parse_quantity(receipt.get("blockNumber")) or block_number,
                "from_address": tx["from"],
                "to_address": tx.get("to"),
                "gas_used": to_decimal_string(receipt.get("gasUsed") or 0),
                "revert_reason": revert_reason,
                "input": _calldata_or_none(tx),
            }
        )

        self.logger.info("Failed transaction", tx_hash=short_hash(tx["hash"], 14), revert_reason=revert_reason)
