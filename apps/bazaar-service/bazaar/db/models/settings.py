from sqlalchemy import Column, Integer, String, Text, DateTime
from .base import Base, now_utc


class SiteSetting(Base):
    __tablename__ = 'site_settings'
    id = Column(Integer, primary_key=True, autoincrement=True)
    setting_key = Column(String(100), nullable=False, unique=True)
    setting_value = Column(Text, nullable=True)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)
