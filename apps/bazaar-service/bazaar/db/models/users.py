from sqlalchemy import Column, Integer, String, DateTime, Boolean, Text, ForeignKey
from .base import Base, now_utc


class User(Base):
    __tablename__ = 'users'
    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(Text, nullable=False)
    full_name = Column(String(255), nullable=False)
    phone = Column(String(20), nullable=True)
    bio = Column(Text, nullable=True)
    location_id = Column(Integer, ForeignKey('locations.id', ondelete='SET NULL'), nullable=True)
    # 'user' | 'editor' | 'super_admin'
    role = Column(String(20), nullable=False, default='user')
    is_active = Column(Boolean, nullable=False, default=True)

    is_suspended = Column(Boolean, nullable=False, default=False)
    suspended_until = Column(DateTime(timezone=True), nullable=True)
    suspension_reason = Column(Text, nullable=True)
    suspended_at = Column(DateTime(timezone=True), nullable=True)
    suspended_by = Column(Integer, ForeignKey('users.id', ondelete='SET NULL'), nullable=True)

    individual_verified = Column(Boolean, nullable=False, default=False)
    individual_verified_at = Column(DateTime(timezone=True), nullable=True)
    individual_verification_expires_at = Column(DateTime(timezone=True), nullable=True)
    verified_seller_name = Column(String(255), nullable=True)

    business_name = Column(String(255), nullable=True)
    # None | 'pending' | 'approved' | 'rejected' | 'expired'
    business_verification_status = Column(String(20), nullable=True)
    business_verified_at = Column(DateTime(timezone=True), nullable=True)
    business_verification_expires_at = Column(DateTime(timezone=True), nullable=True)

    shop_slug = Column(String(255), nullable=True, unique=True)

    last_login_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)
