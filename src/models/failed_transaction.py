from sqlalchemy import Column, BigInteger, String, DateTime, Text
from sqlalchemy.sql import func
from .base import Base


class FailedTransaction(Base):
    __tablename__ = "failed_transactions"

    hash = Column(String(66), primary_key=True)
    block_number = Column(BigInteger, index=True, nullable=False)
    from_address = Column(String(42), index=True, nullable=False)
    to_address = Column(String(42), nullable=True)
    gas_used = Column(String(78), nullable=False)
    revert_reason = Column(Text, nullable=True, comment="NULL unless calldata carries Error(string)")
    input = Column(Text, nullable=True)

    created_at = Column(DateTime, default=func.now())
