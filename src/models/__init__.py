from .base import Base
from .transaction import Transaction
from .token_transfer import TokenTransfer
from .large_transfer import LargeTransfer
from .failed_transaction import FailedTransaction
from .cursor import IndexerCursor

__all__ = [
    "Base",
    "Transaction",
    "TokenTransfer",
    "LargeTransfer",
    "FailedTransaction",
    "IndexerCursor",
]
