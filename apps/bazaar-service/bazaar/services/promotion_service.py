"""
Ad promotion pricing and activation.

Promotion prices depend on three things: the promotion type, the seller's
account type (verified sellers pay less), and the pricing tier of the ad's
root category. Activating a promotion flips the matching flag on the ad
until the promotion expires; the cleanup worker clears it afterwards.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from bazaar.db import models, schemas
from bazaar.db.repositories import ads as repo_ads
from bazaar.db.repositories import catalog as repo_catalog
from bazaar.db.repositories import promotions as repo_promotions

logger = logging.getLogger(__name__)

PROMOTION_FEATURED = "featured"
PROMOTION_URGENT = "urgent"
PROMOTION_STICKY = "sticky"
PROMOTION_TYPES = (PROMOTION_FEATURED, PROMOTION_URGENT, PROMOTION_STICKY)

ACCOUNT_INDIVIDUAL = "individual"
ACCOUNT_INDIVIDUAL_VERIFIED = "individual_verified"
ACCOUNT_BUSINESS = "business"
ACCOUNT_TYPES = (ACCOUNT_INDIVIDUAL, ACCOUNT_INDIVIDUAL_VERIFIED, ACCOUNT_BUSINESS)

DEFAULT_TIER = "default"
VALID_TIERS = (DEFAULT_TIER, "electronics", "vehicles", "property")

DEFAULT_DURATIONS = (3, 7, 15)
CURRENCY = "NPR"

PROMOTABLE_AD_STATUSES = ("approved", "active")

# type -> duration -> (individual, individual_verified, business)
DEFAULT_PRICE_TABLE: Dict[str, Dict[int, tuple]] = {
    PROMOTION_FEATURED: {3: (1000, 800, 600), 7: (2000, 1600, 1200), 15: (3500, 2800, 2100)},
    PROMOTION_URGENT: {3: (500, 400, 300), 7: (1000, 800, 600), 15: (1750, 1400, 1050)},
    PROMOTION_STICKY: {3: (100, 85, 70), 7: (200, 170, 140), 15: (350, 297, 245)},
}

# Ad columns driven by each promotion type
_FLAG_COLUMNS = {
    PROMOTION_FEATURED: (("is_featured", "featured_until"),),
    PROMOTION_URGENT: (("is_urgent", "urgent_until"),),
    PROMOTION_STICKY: (("is_sticky", "sticky_until"), ("is_bumped", "bump_expires_at")),
}


class PromotionError(Exception):
    def __init__(self, message: str, status_code: int = 400) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


@dataclass
class PriceQuote:
    promotion_type: str
    duration_days: int
    account_type: str
    pricing_tier: str
    price: float
    discount_percentage: int

    @property
    def final_price(self) -> float:
        return round(self.price * (1 - self.discount_percentage / 100), 2)

    def to_schema(self) -> schemas.PriceCalculation:
        return schemas.PriceCalculation(
            promotion_type=self.promotion_type,
            duration_days=self.duration_days,
            account_type=self.account_type,
            pricing_tier=self.pricing_tier,
            price=self.price,
            discount_percentage=self.discount_percentage,
            final_price=self.final_price,
            currency=CURRENCY,
        )


def _now() -> datetime:
    return datetime.now(timezone.utc)


def get_account_type(user: models.User) -> str:
    if user.business_verification_status in ("approved", "verified"):
        return ACCOUNT_BUSINESS
    if user.individual_verified:
        return ACCOUNT_INDIVIDUAL_VERIFIED
    return ACCOUNT_INDIVIDUAL


def get_category_tier(db: Session, category_id: Optional[int]) -> str:
    """Pricing tier of a category's root, ``default`` when unmapped."""
    if not category_id:
        return DEFAULT_TIER
    root = repo_catalog.get_root_category(db, category_id)
    if root is None:
        return DEFAULT_TIER
    mapping = repo_promotions.get_category_tier(db, root.id)
    return mapping.pricing_tier if mapping else DEFAULT_TIER


def get_ad_tier(db: Session, ad: models.Ad) -> str:
    return get_category_tier(db, ad.category_id)


def quote_price(
    db: Session,
    *,
    promotion_type: str,
    duration_days: int,
    account_type: str,
    pricing_tier: str = DEFAULT_TIER,
) -> PriceQuote:
    """Look up the active price for the tier, falling back to the default tier."""
    if promotion_type not in PROMOTION_TYPES:
        raise PromotionError(f"Invalid promotion type. Must be one of: {', '.join(PROMOTION_TYPES)}")
    if account_type not in ACCOUNT_TYPES:
        raise PromotionError(f"Invalid account type. Must be one of: {', '.join(ACCOUNT_TYPES)}")

    tier = pricing_tier if pricing_tier in VALID_TIERS else DEFAULT_TIER
    row = repo_promotions.find_pricing(
        db,
        promotion_type=promotion_type,
        duration_days=duration_days,
        account_type=account_type,
        pricing_tier=tier,
    )
    if row is None and tier != DEFAULT_TIER:
        tier = DEFAULT_TIER
        row = repo_promotions.find_pricing(
            db,
            promotion_type=promotion_type,
            duration_days=duration_days,
            account_type=account_type,
            pricing_tier=DEFAULT_TIER,
        )
    if row is None:
        raise PromotionError("Pricing not found for this promotion", status_code=404)

    return PriceQuote(
        promotion_type=promotion_type,
        duration_days=duration_days,
        account_type=account_type,
        pricing_tier=tier,
        price=float(row.price),
        discount_percentage=row.discount_percentage or 0,
    )


def group_pricing(rows: List[models.PromotionPricing]) -> Dict[str, Dict[str, Dict[str, Dict[str, dict]]]]:
    """Nest pricing rows as tier -> type -> duration -> account type."""
    grouped: Dict[str, Dict[str, Dict[str, Dict[str, dict]]]] = {}
    for row in rows:
        tier = grouped.setdefault(row.pricing_tier, {})
        by_type = tier.setdefault(row.promotion_type, {})
        by_duration = by_type.setdefault(str(row.duration_days), {})
        by_duration[row.account_type] = {
            "id": row.id,
            "price": float(row.price),
            "discountPercentage": row.discount_percentage or 0,
        }
    return grouped


def reset_promotion_flags(ad: models.Ad) -> None:
    for columns in _FLAG_COLUMNS.values():
        for flag, until in columns:
            setattr(ad, flag, False)
            setattr(ad, until, None)


def activate_promotion(
    db: Session,
    *,
    ad_id: int,
    user_id: int,
    promotion_type: str,
    duration_days: int,
    price_paid: float,
    payment_reference: Optional[str] = None,
    payment_method: Optional[str] = None,
) -> models.AdPromotion:
    if promotion_type not in PROMOTION_TYPES:
        raise PromotionError(f"Invalid promotion type: {promotion_type}")
    if duration_days <= 0:
        raise PromotionError("Duration must be positive")

    ad = repo_ads.get_ad(db, ad_id)
    if ad is None or ad.deleted_at is not None:
        raise PromotionError("Ad not found", status_code=404)
    if ad.user_id != user_id:
        raise PromotionError("You can only promote your own ads", status_code=403)
    if ad.status not in PROMOTABLE_AD_STATUSES:
        raise PromotionError("Only approved ads can be promoted")

    user = db.query(models.User).filter(models.User.id == user_id).first()
    account_type = get_account_type(user) if user else ACCOUNT_INDIVIDUAL

    now = _now()
    expires_at = now + timedelta(days=duration_days)

    repo_promotions.deactivate_ad_promotions(db, ad.id)
    promotion = models.AdPromotion(
        ad_id=ad.id,
        user_id=user_id,
        promotion_type=promotion_type,
        duration_days=duration_days,
        price_paid=price_paid,
        account_type=account_type,
        payment_reference=payment_reference,
        payment_method=payment_method,
        starts_at=now,
        expires_at=expires_at,
        is_active=True,
    )
    db.add(promotion)

    reset_promotion_flags(ad)
    for flag, until in _FLAG_COLUMNS[promotion_type]:
        setattr(ad, flag, True)
        setattr(ad, until, expires_at)

    db.commit()
    db.refresh(promotion)
    logger.info(
        "promotion_activated ad=%s type=%s days=%s ref=%s",
        ad.id, promotion_type, duration_days, payment_reference,
    )
    return promotion


def deactivate_expired_promotions(db: Session, now: Optional[datetime] = None) -> Dict[str, int]:
    """Deactivate lapsed promotions and clear promotion flags whose window has passed."""
    now = now or _now()
    expired = repo_promotions.list_expired_active_promotions(db, now)
    for promotion in expired:
        promotion.is_active = False

    ads_cleared = 0
    for flag_columns in _FLAG_COLUMNS.values():
        for flag, until in flag_columns:
            flag_col = getattr(models.Ad, flag)
            until_col = getattr(models.Ad, until)
            ads_cleared += (
                db.query(models.Ad)
                .filter(flag_col.is_(True), until_col < now)
                .update({flag_col: False, until_col: None}, synchronize_session=False)
            )
    db.commit()

    if expired or ads_cleared:
        logger.info("promotion_cleanup deactivated=%s flags_cleared=%s", len(expired), ads_cleared)
    return {"deactivated": len(expired), "flagsCleared": ads_cleared}


def seed_default_promotion_pricing(db: Session) -> int:
    """Insert the default-tier fee table; existing rows are left untouched."""
    created = 0
    for promotion_type, durations in DEFAULT_PRICE_TABLE.items():
        for duration_days, prices in durations.items():
            for account_type, price in zip(ACCOUNT_TYPES, prices):
                existing = repo_promotions.find_pricing(
                    db,
                    promotion_type=promotion_type,
                    duration_days=duration_days,
                    account_type=account_type,
                    pricing_tier=DEFAULT_TIER,
                    active_only=False,
                )
                if existing is not None:
                    continue
                db.add(models.PromotionPricing(
                    promotion_type=promotion_type,
                    duration_days=duration_days,
                    account_type=account_type,
                    pricing_tier=DEFAULT_TIER,
                    price=price,
                    discount_percentage=0,
                    is_active=True,
                ))
                created += 1
    db.commit()
    if created:
        logger.info("promotion_pricing_seeded rows=%s", created)
    return created
