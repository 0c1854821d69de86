"""
Domain-split SQLAlchemy models with an aggregator.

This package exposes `Base`, `now_utc`, and all ORM classes so callers can
write `from bazaar.db import models` and use `models.Ad` etc.
"""

from .base import Base, JSONType, ensure_aware, now_utc  # re-export

# Domain models
from .users import User
from .tokens import AccessToken
from .catalog import Category, Location
from .ads import Ad, AdImage, AdReviewHistory, AdReport
from .promotions import PromotionPricing, CategoryPricingTier, AdPromotion
from .payments import PaymentTransaction
from .verification import (
    IndividualVerificationRequest,
    BusinessVerificationRequest,
    VerificationPricing,
    VerificationCampaign,
)
from .settings import SiteSetting
from .audit import AuditLog

__all__ = [
    # base
    "Base",
    "JSONType",
    "ensure_aware",
    "now_utc",
    # users/auth
    "User",
    "AccessToken",
    # catalog
    "Category",
    "Location",
    # ads
    "Ad",
    "AdImage",
    "AdReviewHistory",
    "AdReport",
    # promotions
    "PromotionPricing",
    "CategoryPricingTier",
    "AdPromotion",
    # payments
    "PaymentTransaction",
    # verification
    "IndividualVerificationRequest",
    "BusinessVerificationRequest",
    "VerificationPricing",
    "VerificationCampaign",
    # settings/audit
    "SiteSetting",
    "AuditLog",
]
