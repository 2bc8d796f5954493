from sqlalchemy import Column, BigInteger, String, DateTime
from sqlalchemy.sql import func
from .base import Base


class IndexerCursor(Base):
    __tablename__ = "indexer_cursors"

    chain = Column(String, primary_key=True)
    last_processed_block = Column(BigInteger, nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())
