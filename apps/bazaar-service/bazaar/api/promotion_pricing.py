"""
Promotion pricing endpoints.

Public price table (grouped by tier), price calculation for a specific ad,
editor management of pricing rows and super-admin mapping of root
categories to pricing tiers.
"""
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from bazaar import audit
from bazaar.db import schemas
from bazaar.db.database import get_db
from bazaar.db.repositories import ads as repo_ads
from bazaar.db.repositories import catalog as repo_catalog
from bazaar.db.repositories import promotions as repo_promotions
from bazaar.api.deps import get_current_user_context, require_editor, require_super_admin
from bazaar.services.promotion_service import (
    ACCOUNT_TYPES,
    DEFAULT_TIER,
    PROMOTION_TYPES,
    VALID_TIERS,
    PromotionError,
    get_account_type,
    get_ad_tier,
    group_pricing,
    quote_price,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/promotion-pricing", tags=["promotion-pricing"])


def _validate_pricing_payload(payload: schemas.PromotionPricingCreate) -> None:
    if payload.promotion_type not in PROMOTION_TYPES:
        raise HTTPException(status_code=400, detail=f"Invalid promotion type. Must be one of: {', '.join(PROMOTION_TYPES)}")
    if payload.duration_days <= 0:
        raise HTTPException(status_code=400, detail="Duration must be a positive number of days")
    if payload.account_type not in ACCOUNT_TYPES:
        raise HTTPException(status_code=400, detail=f"Invalid account type. Must be one of: {', '.join(ACCOUNT_TYPES)}")
    if payload.pricing_tier not in VALID_TIERS:
        raise HTTPException(status_code=400, detail=f"Invalid pricing tier. Must be one of: {', '.join(VALID_TIERS)}")
    if payload.price < 0:
        raise HTTPException(status_code=400, detail="Price must be zero or more")
    _validate_discount(payload.discount_percentage)


def _validate_discount(discount: Optional[int]) -> None:
    if discount is not None and not 0 <= discount <= 100:
        raise HTTPException(status_code=400, detail="Discount must be between 0 and 100")


@router.get("")
def get_pricing(
    ad_id: Optional[int] = Query(default=None, alias="adId"),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    grouped = group_pricing(repo_promotions.list_pricing(db, active_only=True))
    response: Dict[str, Any] = {
        "pricing": grouped,
        # Older clients only know the default tier
        "defaultPricing": grouped.get(DEFAULT_TIER, {}),
        "tiers": sorted(grouped.keys()),
    }
    if ad_id is not None:
        ad = repo_ads.get_ad(db, ad_id)
        if ad is None or ad.deleted_at is not None:
            raise HTTPException(status_code=404, detail="Ad not found")
        tier = get_ad_tier(db, ad)
        response["adTier"] = tier
        response["adPricing"] = grouped.get(tier) or grouped.get(DEFAULT_TIER, {})
    return response


@router.get("/admin/all", response_model=List[schemas.PromotionPricing])
def list_all_pricing(
    db: Session = Depends(get_db),
    user_context=Depends(require_editor),
):
    return repo_promotions.list_pricing(db, active_only=False)


@router.get("/calculate", response_model=schemas.PriceCalculation)
def calculate_price(
    promotion_type: str = Query(alias="promotionType"),
    duration_days: int = Query(alias="durationDays"),
    ad_id: int = Query(alias="adId"),
    pricing_tier: Optional[str] = Query(default=None, alias="pricingTier"),
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    user, _ctx = user_context
    ad = repo_ads.get_ad(db, ad_id)
    if ad is None or ad.deleted_at is not None:
        raise HTTPException(status_code=404, detail="Ad not found")
    tier = pricing_tier if pricing_tier in VALID_TIERS else get_ad_tier(db, ad)
    try:
        quote = quote_price(
            db,
            promotion_type=promotion_type,
            duration_days=duration_days,
            account_type=get_account_type(user),
            pricing_tier=tier,
        )
    except PromotionError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.message)
    return quote.to_schema()


@router.post("", response_model=schemas.PromotionPricing, status_code=status.HTTP_201_CREATED)
def create_pricing(
    payload: schemas.PromotionPricingCreate,
    db: Session = Depends(get_db),
    user_context=Depends(require_editor),
):
    _user, current_user = user_context
    _validate_pricing_payload(payload)
    existing = repo_promotions.find_pricing(
        db,
        promotion_type=payload.promotion_type,
        duration_days=payload.duration_days,
        account_type=payload.account_type,
        pricing_tier=payload.pricing_tier,
        active_only=False,
    )
    if existing is not None:
        raise HTTPException(status_code=409, detail="Pricing for this combination already exists")
    row = repo_promotions.create_pricing(db, payload)
    audit.log_pricing(
        db,
        actor_user_id=current_user["id"],
        target_type="promotion_pricing",
        target_id=row.id,
        action=audit.AuditAction.PRICING_CREATE,
        metadata=payload.model_dump(by_alias=True),
    )
    logger.info("promotion_pricing_created id=%s tier=%s type=%s", row.id, row.pricing_tier, row.promotion_type)
    return row


# ----------------------------------------------------------------------------
# Category tiers
# ----------------------------------------------------------------------------

@router.get("/category-tiers")
def list_category_tiers(
    db: Session = Depends(get_db),
    user_context=Depends(require_super_admin),
) -> Dict[str, Any]:
    mappings = repo_promotions.list_category_tiers(db)
    by_category = {m.category_id: m.pricing_tier for m in mappings}
    names = {c.id: c.name for c in repo_catalog.list_categories(db, active_only=False)}
    return {
        "mappings": [
            schemas.CategoryTier(
                id=m.id,
                category_id=m.category_id,
                category_name=names.get(m.category_id),
                pricing_tier=m.pricing_tier,
            ).model_dump(by_alias=True)
            for m in mappings
        ],
        "rootCategories": [
            schemas.RootCategoryTier(
                id=c.id,
                name=c.name,
                slug=c.slug,
                pricing_tier=by_category.get(c.id, DEFAULT_TIER),
            ).model_dump(by_alias=True)
            for c in repo_catalog.list_root_categories(db)
        ],
        "validTiers": list(VALID_TIERS),
    }


@router.post("/category-tiers", response_model=schemas.CategoryTier)
def upsert_category_tier(
    payload: schemas.CategoryTierUpsert,
    db: Session = Depends(get_db),
    user_context=Depends(require_super_admin),
):
    _user, current_user = user_context
    if payload.pricing_tier not in VALID_TIERS:
        raise HTTPException(status_code=400, detail=f"Invalid pricing tier. Must be one of: {', '.join(VALID_TIERS)}")
    category = repo_catalog.get_category(db, payload.category_id)
    if category is None:
        raise HTTPException(status_code=404, detail="Category not found")
    row = repo_promotions.upsert_category_tier(db, category_id=category.id, pricing_tier=payload.pricing_tier)
    audit.log_pricing(
        db,
        actor_user_id=current_user["id"],
        target_type="category_pricing_tier",
        target_id=category.id,
        action=audit.AuditAction.CATEGORY_TIER_SET,
        metadata={"pricingTier": payload.pricing_tier},
    )
    return schemas.CategoryTier(
        id=row.id,
        category_id=row.category_id,
        category_name=category.name,
        pricing_tier=row.pricing_tier,
    )


@router.delete("/category-tiers/{category_id}")
def delete_category_tier(
    category_id: int,
    db: Session = Depends(get_db),
    user_context=Depends(require_super_admin),
):
    _user, current_user = user_context
    row = repo_promotions.get_category_tier(db, category_id)
    if row is None:
        raise HTTPException(status_code=404, detail="Category tier mapping not found")
    repo_promotions.delete_category_tier(db, row)
    audit.log_pricing(
        db,
        actor_user_id=current_user["id"],
        target_type="category_pricing_tier",
        target_id=category_id,
        action=audit.AuditAction.CATEGORY_TIER_DELETE,
    )
    return {"success": True, "message": "Category tier mapping removed"}


# ----------------------------------------------------------------------------
# Single pricing rows
# ----------------------------------------------------------------------------

@router.put("/{pricing_id}", response_model=schemas.PromotionPricing)
def update_pricing(
    pricing_id: int,
    payload: schemas.PromotionPricingUpdate,
    db: Session = Depends(get_db),
    user_context=Depends(require_editor),
):
    _user, current_user = user_context
    row = repo_promotions.get_pricing(db, pricing_id)
    if row is None:
        raise HTTPException(status_code=404, detail="Pricing not found")
    if payload.price is not None and payload.price < 0:
        raise HTTPException(status_code=400, detail="Price must be zero or more")
    _validate_discount(payload.discount_percentage)
    row = repo_promotions.update_pricing(db, row, payload)
    audit.log_pricing(
        db,
        actor_user_id=current_user["id"],
        target_type="promotion_pricing",
        target_id=row.id,
        action=audit.AuditAction.PRICING_UPDATE,
        metadata=payload.model_dump(exclude_unset=True, by_alias=True),
    )
    return row


@router.delete("/{pricing_id}")
def deactivate_pricing(
    pricing_id: int,
    db: Session = Depends(get_db),
    user_context=Depends(require_editor),
):
    _user, current_user = user_context
    row = repo_promotions.get_pricing(db, pricing_id)
    if row is None:
        raise HTTPException(status_code=404, detail="Pricing not found")
    repo_promotions.update_pricing(db, row, schemas.PromotionPricingUpdate(is_active=False))
    audit.log_pricing(
        db,
        actor_user_id=current_user["id"],
        target_type="promotion_pricing",
        target_id=pricing_id,
        action=audit.AuditAction.PRICING_DELETE,
    )
    return {"success": True, "message": "Pricing deactivated"}
