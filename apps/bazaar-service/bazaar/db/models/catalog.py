from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from .base import Base, now_utc


class Category(Base):
    __tablename__ = 'categories'
    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    slug = Column(String(120), nullable=False, unique=True)
    parent_id = Column(Integer, ForeignKey('categories.id', ondelete='CASCADE'), nullable=True, index=True)
    icon = Column(String(50), nullable=True)
    sort_order = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)

    parent = relationship("Category", remote_side=[id], backref="children")


class Location(Base):
    __tablename__ = 'locations'
    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    slug = Column(String(120), nullable=True)
    # 'province' | 'district' | 'municipality' | 'area'
    type = Column(String(20), nullable=False)
    parent_id = Column(Integer, ForeignKey('locations.id', ondelete='CASCADE'), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)

    parent = relationship("Location", remote_side=[id])
