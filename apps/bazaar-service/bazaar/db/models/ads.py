from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, Numeric, ForeignKey, Index
from sqlalchemy.orm import relationship
from .base import Base, JSONType, now_utc


class Ad(Base):
    __tablename__ = 'ads'
    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    price = Column(Numeric(12, 2), nullable=False)
    condition = Column(String(20), nullable=True)
    category_id = Column(Integer, ForeignKey('categories.id'), nullable=True)
    location_id = Column(Integer, ForeignKey('locations.id'), nullable=True)
    user_id = Column(Integer, ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    seller_name = Column(String(255), nullable=True)
    seller_phone = Column(String(20), nullable=True)
    slug = Column(String(300), nullable=True, unique=True)
    custom_fields = Column(JSONType, nullable=True)
    view_count = Column(Integer, nullable=False, default=0)

    # 'pending' | 'approved' | 'active' | 'rejected' | 'suspended' | 'deleted'
    status = Column(String(20), nullable=False, default='approved')
    status_reason = Column(Text, nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    reviewed_by = Column(Integer, ForeignKey('users.id', ondelete='SET NULL'), nullable=True)

    suspended_at = Column(DateTime(timezone=True), nullable=True)
    suspended_until = Column(DateTime(timezone=True), nullable=True)
    suspended_by = Column(Integer, ForeignKey('users.id', ondelete='SET NULL'), nullable=True)
    suspension_reason = Column(Text, nullable=True)

    is_featured = Column(Boolean, nullable=False, default=False)
    featured_until = Column(DateTime(timezone=True), nullable=True)
    is_urgent = Column(Boolean, nullable=False, default=False)
    urgent_until = Column(DateTime(timezone=True), nullable=True)
    is_sticky = Column(Boolean, nullable=False, default=False)
    sticky_until = Column(DateTime(timezone=True), nullable=True)
    is_bumped = Column(Boolean, nullable=False, default=False)
    bump_expires_at = Column(DateTime(timezone=True), nullable=True)

    deleted_at = Column(DateTime(timezone=True), nullable=True)
    deleted_by = Column(Integer, ForeignKey('users.id', ondelete='SET NULL'), nullable=True)
    deletion_reason = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    user = relationship("User", foreign_keys=[user_id])
    category = relationship("Category")
    location = relationship("Location")
    images = relationship(
        "AdImage",
        back_populates="ad",
        cascade="all, delete-orphan",
        order_by="AdImage.id",
    )

    __table_args__ = (
        Index('idx_ads_status_created', 'status', 'created_at'),
        Index('idx_ads_user_id', 'user_id'),
        Index('idx_ads_category_id', 'category_id'),
    )

    @property
    def primary_image(self):
        for image in self.images:
            if image.is_primary:
                return image.file_path
        return self.images[0].file_path if self.images else None


class AdImage(Base):
    __tablename__ = 'ad_images'
    id = Column(Integer, primary_key=True, autoincrement=True)
    ad_id = Column(Integer, ForeignKey('ads.id', ondelete='CASCADE'), nullable=False, index=True)
    filename = Column(String(255), nullable=False)
    file_path = Column(String(500), nullable=False)
    original_name = Column(String(255), nullable=True)
    file_size = Column(Integer, nullable=True)
    mime_type = Column(String(100), nullable=True)
    is_primary = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=now_utc)

    ad = relationship("Ad", back_populates="images")


class AdReviewHistory(Base):
    __tablename__ = 'ad_review_history'
    id = Column(Integer, primary_key=True, autoincrement=True)
    ad_id = Column(Integer, ForeignKey('ads.id', ondelete='CASCADE'), nullable=False, index=True)
    action = Column(String(30), nullable=False)
    actor_id = Column(Integer, ForeignKey('users.id', ondelete='SET NULL'), nullable=True)
    # 'admin' | 'editor'
    actor_type = Column(String(20), nullable=False)
    reason = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)


class AdReport(Base):
    __tablename__ = 'ad_reports'
    id = Column(Integer, primary_key=True, autoincrement=True)
    ad_id = Column(Integer, ForeignKey('ads.id', ondelete='CASCADE'), nullable=False, index=True)
    reporter_id = Column(Integer, ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    reason = Column(String(30), nullable=False)
    description = Column(Text, nullable=True)
    # 'pending' | 'reviewed' | 'resolved' | 'dismissed' | 'restored'
    status = Column(String(20), nullable=False, default='pending')
    admin_notes = Column(Text, nullable=True)
    reviewed_by = Column(Integer, ForeignKey('users.id', ondelete='SET NULL'), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    ad = relationship("Ad")
    reporter = relationship("User", foreign_keys=[reporter_id])
