from sqlalchemy import Column, BigInteger, String, Boolean, DateTime, Text
from sqlalchemy.sql import func
from .base import Base


class Transaction(Base):
    __tablename__ = "transactions"

    hash = Column(String(66), primary_key=True)
    block_number = Column(BigInteger, index=True, nullable=False)
    from_address = Column(String(42), index=True, nullable=False)
    to_address = Column(String(42), index=True, nullable=True, comment="NULL for contract creation")

    # uint256 quantities as base-unit decimal strings
    value = Column(String(78), nullable=False)
    gas_price = Column(String(78), nullable=False)
    gas_used = Column(String(78), nullable=True)

    input = Column(Text, nullable=True)
    nonce = Column(BigInteger, nullable=False)
    success = Column(Boolean, index=True, nullable=False)

    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    # Re-observing a hash may only touch these
    MUTABLE_FIELDS = ("gas_used", "success")
