from sqlalchemy import Column, BigInteger, Integer, String, DateTime
from sqlalchemy.sql import func
from .base import Base


class TokenTransfer(Base):
    __tablename__ = "token_transfers"

    # One transaction can emit many transfers, identity is per log
    hash = Column(String(66), primary_key=True)
    log_index = Column(Integer, primary_key=True)

    token_address = Column(String(42), index=True, nullable=False)
    from_address = Column(String(42), index=True, nullable=False)
    to_address = Column(String(42), index=True, nullable=False)
    amount = Column(String(78), nullable=False)
    block_number = Column(BigInteger, index=True, nullable=False)

    created_at = Column(DateTime, default=func.now())
