from sqlalchemy import Column, Integer, String, Text, DateTime, Numeric, ForeignKey, Index
from .base import Base, JSONType, now_utc


class PaymentTransaction(Base):
    __tablename__ = 'payment_transactions'
    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    # 'ad_promotion' | 'individual_verification' | 'business_verification'
    payment_type = Column(String(40), nullable=False)
    payment_gateway = Column(String(20), nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    # Merchant order id handed to the gateway (TB_<TYPE>_<millis>_<rand>)
    transaction_id = Column(String(100), nullable=False, unique=True)
    reference_id = Column(String(100), nullable=True)
    related_id = Column(Integer, nullable=True)
    # 'pending' | 'verified' | 'failed' | 'canceled' | 'refunded' | 'expired'
    status = Column(String(20), nullable=False, default='pending')
    failure_reason = Column(Text, nullable=True)
    # Use a non-reserved Python attribute name while keeping DB column name 'metadata'
    metadata_json = Column('metadata', JSONType, nullable=True)
    verified_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    __table_args__ = (
        Index('idx_payment_transactions_user_created', 'user_id', 'created_at'),
        Index('idx_payment_transactions_status', 'status'),
    )
