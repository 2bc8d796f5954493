from sqlalchemy import Column, BigInteger, String, DateTime
from sqlalchemy.sql import func
from .base import Base


class LargeTransfer(Base):
    __tablename__ = "large_transfers"

    hash = Column(String(66), primary_key=True)
    from_address = Column(String(42), index=True, nullable=False)
    to_address = Column(String(42), index=True, nullable=False)
    value_wei = Column(String(78), nullable=False)
    block_number = Column(BigInteger, index=True, nullable=False)
    block_time = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=func.now())
