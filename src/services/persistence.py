"""
Idempotent write interface over the relational store.

Transactions, large transfers and failed transactions are upserted by hash.
Token transfers are inserted by (hash, log_index) and duplicate inserts are
reported as a benign no-op. Each call commits on its own so that a failing
write never leaves the session dirty for the next transaction.
"""

from typing import Any, Dict, Optional, Sequence, Tuple, Type

import structlog
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from src.models.base import Base
from src.models.cursor import IndexerCursor
from src.models.failed_transaction import FailedTransaction
from src.models.large_transfer import LargeTransfer
from src.models.token_transfer import TokenTransfer
from src.models.transaction import Transaction
from src.utils.exceptions import is_unique_violation


class PersistenceGateway:
    """Owns every record type. Constructed by the process entry point and injected."""

    def __init__(self, db_session: Session):
        self.db = db_session
        self.logger = structlog.get_logger()

    def _upsert(
        self,
        model: Type[Base],
        key: Any,
        record: Dict[str, Any],
        mutable_fields: Sequence[str] = (),
    ) -> bool:
        """Insert `record`, or update only `mutable_fields` when `key` already exists.

        Returns:
            True if a new row was created
        """
        try:
            existing = self.db.get(model, key)
            if existing is None:
                self.db.add(model(**record))
                created = True
            else:
                for field_name in mutable_fields:
                    setattr(existing, field_name, record.get(field_name))
                created = False
            self.db.commit()
            return created

        except IntegrityError as e:
            self.db.rollback()
            if not is_unique_violation(e):
                raise

            # Lost an insert race, fall back to the update path
            self.logger.debug("Upsert conflict, updating existing row", table=model.__tablename__, key=key)
            existing = self.db.get(model, key)
            if existing is not None and mutable_fields:
                for field_name in mutable_fields:
                    setattr(existing, field_name, record.get(field_name))
                self.db.commit()
            return False

        except Exception:
            self.db.rollback()
            raise

    def upsert_transaction(self, record: Dict[str, Any]) -> bool:
        return self._upsert(Transaction, record["hash"], record, Transaction.MUTABLE_FIELDS)

    def upsert_large_transfer(self, record: Dict[str, Any]) -> bool:
        return self._upsert(LargeTransfer, record["hash"], record)

    def upsert_failed_transaction(self, record: Dict[str, Any]) -> bool:
        return self._upsert(FailedTransaction, record["hash"], record)

    def insert_token_transfer(self, record: Dict[str, Any]) -> bool:
        """
        Insert a token transfer keyed by (hash, log_index).

        Returns:
            True if inserted, False if the row already existed
        """
        key: Tuple[str, int] = (record["hash"], record["log_index"])
        try:
            if self.db.get(TokenTransfer, key) is not None:
                return False
            self.db.add(TokenTransfer(**record))
            self.db.commit()
            return True

        except IntegrityError as e:
            self.db.rollback()
            if is_unique_violation(e):
                self.logger.debug("Token transfer already exists", hash=key[0], log_index=key[1])
                return False
            raise

        except Exception:
            self.db.rollback()
            raise

    def get_cursor(self, chain: str) -> Optional[int]:
        cursor = self.db.get(IndexerCursor, chain)
        return int(cursor.last_processed_block) if cursor else None

    def save_cursor(self, chain: str, height: int) -> None:
        """Persist the cursor. A lower height than the stored one is ignored."""
        try:
            cursor = self.db.get(IndexerCursor, chain)
            if cursor is None:
                self.db.add(IndexerCursor(chain=chain, last_processed_block=height))
            elif height > cursor.last_processed_block:
                cursor.last_processed_block = height
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    def count(self, model: Type[Base]) -> int:
        return self.db.query(func.count()).select_from(model).scalar() or 0

    def close(self) -> None:
        self.db.close()
        self.logger.info("Database session closed")
