"""
Promotion pricing, category tier and ad promotion repository functions.
"""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from bazaar.db import models, schemas


def list_pricing(db: Session, *, active_only: bool = True) -> List[models.PromotionPricing]:
    query = db.query(models.PromotionPricing)
    if active_only:
        query = query.filter(models.PromotionPricing.is_active.is_(True))
    return query.order_by(
        models.PromotionPricing.pricing_tier,
        models.PromotionPricing.promotion_type,
        models.PromotionPricing.duration_days,
        models.PromotionPricing.account_type,
    ).all()


def get_pricing(db: Session, pricing_id: int) -> Optional[models.PromotionPricing]:
    return db.query(models.PromotionPricing).filter(models.PromotionPricing.id == pricing_id).first()


def find_pricing(
    db: Session,
    *,
    promotion_type: str,
    duration_days: int,
    account_type: str,
    pricing_tier: str,
    active_only: bool = True,
) -> Optional[models.PromotionPricing]:
    query = db.query(models.PromotionPricing).filter(
        models.PromotionPricing.promotion_type == promotion_type,
        models.PromotionPricing.duration_days == duration_days,
        models.PromotionPricing.account_type == account_type,
        models.PromotionPricing.pricing_tier == pricing_tier,
    )
    if active_only:
        query = query.filter(models.PromotionPricing.is_active.is_(True))
    return query.first()


def create_pricing(db: Session, payload: schemas.PromotionPricingCreate) -> models.PromotionPricing:
    row = models.PromotionPricing(**payload.model_dump())
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def update_pricing(db: Session, row: models.PromotionPricing, payload: schemas.PromotionPricingUpdate) -> models.PromotionPricing:
    for key, value in payload.model_dump(exclude_unset=True).items():
        setattr(row, key, value)
    db.commit()
    db.refresh(row)
    return row


def list_category_tiers(db: Session) -> List[models.CategoryPricingTier]:
    return db.query(models.CategoryPricingTier).order_by(models.CategoryPricingTier.category_id).all()


def get_category_tier(db: Session, category_id: int) -> Optional[models.CategoryPricingTier]:
    return (
        db.query(models.CategoryPricingTier)
        .filter(models.CategoryPricingTier.category_id == category_id)
        .first()
    )


def upsert_category_tier(db: Session, *, category_id: int, pricing_tier: str) -> models.CategoryPricingTier:
    row = get_category_tier(db, category_id)
    if row is None:
        row = models.CategoryPricingTier(category_id=category_id, pricing_tier=pricing_tier)
        db.add(row)
    else:
        row.pricing_tier = pricing_tier
    db.commit()
    db.refresh(row)
    return row


def delete_category_tier(db: Session, row: models.CategoryPricingTier) -> None:
    db.delete(row)
    db.commit()


def deactivate_ad_promotions(db: Session, ad_id: int) -> int:
    return (
        db.query(models.AdPromotion)
        .filter(models.AdPromotion.ad_id == ad_id, models.AdPromotion.is_active.is_(True))
        .update({models.AdPromotion.is_active: False}, synchronize_session=False)
    )


def list_expired_active_promotions(db: Session, now: datetime) -> List[models.AdPromotion]:
    return (
        db.query(models.AdPromotion)
        .filter(models.AdPromotion.is_active.is_(True), models.AdPromotion.expires_at < now)
        .all()
    )


def list_ad_promotions(db: Session, ad_id: int) -> List[models.AdPromotion]:
    return (
        db.query(models.AdPromotion)
        .filter(models.AdPromotion.ad_id == ad_id)
        .order_by(models.AdPromotion.created_at.desc(), models.AdPromotion.id.desc())
        .all()
    )


def list_user_promotions(db: Session, user_id: int) -> List[models.AdPromotion]:
    return (
        db.query(models.AdPromotion)
        .filter(models.AdPromotion.user_id == user_id)
        .order_by(models.AdPromotion.created_at.desc(), models.AdPromotion.id.desc())
        .all()
    )
