from sqlalchemy import Column, Integer, String, Boolean, DateTime, Numeric, ForeignKey, UniqueConstraint, Index
from .base import Base, now_utc


class PromotionPricing(Base):
    __tablename__ = 'promotion_pricing'
    id = Column(Integer, primary_key=True, autoincrement=True)
    promotion_type = Column(String(20), nullable=False)
    duration_days = Column(Integer, nullable=False)
    account_type = Column(String(30), nullable=False)
    pricing_tier = Column(String(30), nullable=False, default='default')
    price = Column(Numeric(10, 2), nullable=False)
    discount_percentage = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    __table_args__ = (
        UniqueConstraint(
            'promotion_type', 'duration_days', 'account_type', 'pricing_tier',
            name='uq_promotion_pricing_combo',
        ),
    )


class CategoryPricingTier(Base):
    __tablename__ = 'category_pricing_tiers'
    id = Column(Integer, primary_key=True, autoincrement=True)
    category_id = Column(Integer, ForeignKey('categories.id', ondelete='CASCADE'), nullable=False, unique=True)
    pricing_tier = Column(String(30), nullable=False)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)


class AdPromotion(Base):
    __tablename__ = 'ad_promotions'
    id = Column(Integer, primary_key=True, autoincrement=True)
    ad_id = Column(Integer, ForeignKey('ads.id', ondelete='CASCADE'), nullable=False)
    user_id = Column(Integer, ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    promotion_type = Column(String(20), nullable=False)
    duration_days = Column(Integer, nullable=False)
    price_paid = Column(Numeric(10, 2), nullable=False)
    account_type = Column(String(30), nullable=False)
    payment_reference = Column(String(100), nullable=True)
    payment_method = Column(String(30), nullable=True)
    starts_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)

    __table_args__ = (
        Index('idx_ad_promotions_active_expires', 'is_active', 'expires_at'),
        Index('idx_ad_promotions_ad_id', 'ad_id'),
    )
