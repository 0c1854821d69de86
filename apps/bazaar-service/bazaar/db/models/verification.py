from sqlalchemy import (
    Column, Integer, String, Text, Boolean, DateTime, Numeric, ForeignKey, UniqueConstraint,
)
from sqlalchemy.orm import relationship
from .base import Base, JSONType, now_utc


class IndividualVerificationRequest(Base):
    __tablename__ = 'individual_verification_requests'
    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    full_name = Column(String(255), nullable=False)
    id_document_type = Column(String(30), nullable=False)
    id_document_number = Column(String(100), nullable=True)
    id_document_front = Column(String(500), nullable=False)
    id_document_back = Column(String(500), nullable=True)
    selfie_with_id = Column(String(500), nullable=False)
    # 'pending_payment' | 'pending' | 'approved' | 'rejected'
    status = Column(String(20), nullable=False, default='pending')
    rejection_reason = Column(Text, nullable=True)
    reviewed_by = Column(Integer, ForeignKey('users.id', ondelete='SET NULL'), nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    duration_days = Column(Integer, nullable=False, default=365)
    payment_amount = Column(Numeric(10, 2), nullable=False, default=0)
    payment_reference = Column(String(100), nullable=True)
    # 'pending' | 'paid' | 'free'
    payment_status = Column(String(20), nullable=False, default='pending')
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    user = relationship("User", foreign_keys=[user_id])


class BusinessVerificationRequest(Base):
    __tablename__ = 'business_verification_requests'
    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    business_name = Column(String(255), nullable=False)
    business_license_document = Column(String(500), nullable=False)
    business_category = Column(String(100), nullable=True)
    business_description = Column(Text, nullable=True)
    business_website = Column(String(255), nullable=True)
    business_phone = Column(String(20), nullable=True)
    business_address = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default='pending')
    rejection_reason = Column(Text, nullable=True)
    reviewed_by = Column(Integer, ForeignKey('users.id', ondelete='SET NULL'), nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    duration_days = Column(Integer, nullable=False, default=365)
    payment_amount = Column(Numeric(10, 2), nullable=False, default=0)
    payment_reference = Column(String(100), nullable=True)
    payment_status = Column(String(20), nullable=False, default='pending')
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    user = relationship("User", foreign_keys=[user_id])


class VerificationPricing(Base):
    __tablename__ = 'verification_pricing'
    id = Column(Integer, primary_key=True, autoincrement=True)
    # 'individual' | 'business'
    verification_type = Column(String(20), nullable=False)
    duration_days = Column(Integer, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    discount_percentage = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    __table_args__ = (
        UniqueConstraint('verification_type', 'duration_days', name='uq_verification_pricing_type_duration'),
    )


class VerificationCampaign(Base):
    __tablename__ = 'verification_campaigns'
    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    discount_percentage = Column(Integer, nullable=False)
    banner_text = Column(Text, nullable=True)
    banner_emoji = Column(String(10), nullable=True)
    start_date = Column(DateTime(timezone=True), nullable=False)
    end_date = Column(DateTime(timezone=True), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    # Empty list means every verification type
    applies_to_types = Column(JSONType, nullable=True)
    min_duration_days = Column(Integer, nullable=True)
    max_uses = Column(Integer, nullable=True)
    current_uses = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), default=now_utc)
