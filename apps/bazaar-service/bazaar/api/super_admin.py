"""
Super admin endpoints.

Platform analytics, staff accounts, site settings, catalog maintenance and
verification pricing/campaign management.
"""
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from bazaar import audit
from bazaar.db import schemas
from bazaar.db.database import get_db
from bazaar.db.repositories import catalog as repo_catalog
from bazaar.db.repositories import settings as repo_settings
from bazaar.db.repositories import tokens as repo_tokens
from bazaar.db.repositories import users as repo_users
from bazaar.db.repositories import verification as repo_verification
from bazaar.api.auth import MIN_PASSWORD_LENGTH
from bazaar.api.deps import require_super_admin
from bazaar.services.analytics_service import AnalyticsError, get_analytics
from bazaar.services.verification_service import DURATIONS, VERIFICATION_TYPES
from bazaar.utils.role_permissions import STAFF_ROLES, validate_role
from bazaar.utils.slugs import slugify

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/super-admin", tags=["super-admin"])

LOCATION_TYPES = ("province", "district", "municipality", "area")


# ----------------------------------------------------------------------------
# Analytics
# ----------------------------------------------------------------------------

@router.get("/analytics")
def analytics(
    range_param: Optional[str] = Query(default=None, alias="range"),
    year: Optional[int] = None,
    month: Optional[int] = None,
    db: Session = Depends(get_db),
    user_context=Depends(require_super_admin),
) -> Dict[str, Any]:
    try:
        return get_analytics(db, range_param, year, month)
    except AnalyticsError as exc:
        raise HTTPException(status_code=400, detail=str(exc))


# ----------------------------------------------------------------------------
# Staff accounts
# ----------------------------------------------------------------------------

@router.get("/editors", response_model=List[schemas.User])
def list_editors(
    db: Session = Depends(get_db),
    user_context=Depends(require_super_admin),
):
    return repo_users.list_staff(db)


@router.post("/editors", response_model=schemas.User, status_code=status.HTTP_201_CREATED)
def create_editor(
    payload: schemas.EditorCreate,
    db: Session = Depends(get_db),
    user_context=Depends(require_super_admin),
):
    _user, current_user = user_context
    email = (payload.email or "").strip().lower()
    if "@" not in email:
        raise HTTPException(status_code=400, detail="Invalid email address")
    if len(payload.password or "") < MIN_PASSWORD_LENGTH:
        raise HTTPException(status_code=400, detail=f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if payload.role not in STAFF_ROLES:
        raise HTTPException(status_code=400, detail=f"Role must be one of: {', '.join(sorted(STAFF_ROLES))}")
    if repo_users.get_user_by_email(db, email):
        raise HTTPException(status_code=409, detail="Email already registered")

    editor = repo_users.create_user(
        db,
        email=email,
        password=payload.password,
        full_name=payload.full_name,
        role=payload.role,
    )
    audit.log(
        db,
        action=audit.AuditAction.EDITOR_CREATE,
        target_type="user",
        target_id=editor.id,
        actor_user_id=current_user["id"],
        metadata={"email": editor.email, "role": editor.role},
    )
    logger.info("editor_created id=%s role=%s by=%s", editor.id, editor.role, current_user["id"])
    return editor


@router.put("/editors/{user_id}", response_model=schemas.User)
def update_editor(
    user_id: int,
    payload: schemas.EditorUpdate,
    db: Session = Depends(get_db),
    user_context=Depends(require_super_admin),
):
    _user, current_user = user_context
    editor = repo_users.get_user(db, user_id)
    if editor is None or editor.role not in STAFF_ROLES:
        raise HTTPException(status_code=404, detail="Editor not found")
    if editor.id == current_user["id"]:
        raise HTTPException(status_code=400, detail="You cannot change your own staff account")

    changes: Dict[str, Any] = {}
    if payload.role is not None:
        try:
            validate_role(payload.role)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc))
        if payload.role not in STAFF_ROLES:
            raise HTTPException(status_code=400, detail=f"Role must be one of: {', '.join(sorted(STAFF_ROLES))}")
        changes["role"] = payload.role
    if payload.is_active is not None:
        changes["is_active"] = payload.is_active
    if not changes:
        return editor

    editor = repo_users.update_user(db, editor, **changes)
    if changes.get("is_active") is False:
        revoked = repo_tokens.revoke_all_for_user(db, editor.id)
        logger.info("editor_deactivated: user_id=%s revoked_tokens=%s", editor.id, revoked)
    audit.log(
        db,
        action=audit.AuditAction.EDITOR_UPDATE,
        target_type="user",
        target_id=editor.id,
        actor_user_id=current_user["id"],
        metadata={"isActive" if k == "is_active" else k: v for k, v in changes.items()},
    )
    return editor


# ----------------------------------------------------------------------------
# Site settings
# ----------------------------------------------------------------------------

@router.get("/settings", response_model=List[schemas.SiteSetting])
def list_settings(
    db: Session = Depends(get_db),
    user_context=Depends(require_super_admin),
):
    return repo_settings.list_settings(db)


@router.put("/settings/{key}", response_model=schemas.SiteSetting)
def update_setting(
    key: str,
    payload: schemas.SiteSettingUpdate,
    db: Session = Depends(get_db),
    user_context=Depends(require_super_admin),
):
    _user, current_user = user_context
    key = key.strip()
    if not key:
        raise HTTPException(status_code=400, detail="Setting key is required")
    previous = repo_settings.get_setting(db, key)
    row = repo_settings.set_setting(db, key, payload.value)
    audit.log(
        db,
        action=audit.AuditAction.SETTING_UPDATE,
        target_type="site_setting",
        actor_user_id=current_user["id"],
        metadata={"key": key, "from": previous, "to": payload.value},
    )
    return row


# ----------------------------------------------------------------------------
# Catalog
# ----------------------------------------------------------------------------

@router.post("/categories", response_model=schemas.Category, status_code=status.HTTP_201_CREATED)
def create_category(
    payload: schemas.CategoryCreate,
    db: Session = Depends(get_db),
    user_context=Depends(require_super_admin),
):
    if not payload.name or not payload.name.strip():
        raise HTTPException(status_code=400, detail="Category name is required")
    slug = slugify(payload.slug or payload.name)
    if not slug:
        raise HTTPException(status_code=400, detail="Category slug cannot be empty")
    if repo_catalog.get_category_by_slug(db, slug):
        raise HTTPException(status_code=409, detail="A category with this slug already exists")
    if payload.parent_id is not None and repo_catalog.get_category(db, payload.parent_id) is None:
        raise HTTPException(status_code=400, detail="Parent category not found")
    return repo_catalog.create_category(db, payload.model_copy(update={"slug": slug}))


@router.post("/locations", response_model=schemas.Location, status_code=status.HTTP_201_CREATED)
def create_location(
    payload: schemas.LocationCreate,
    db: Session = Depends(get_db),
    user_context=Depends(require_super_admin),
):
    if not payload.name or not payload.name.strip():
        raise HTTPException(status_code=400, detail="Location name is required")
    if payload.type not in LOCATION_TYPES:
        raise HTTPException(status_code=400, detail=f"Location type must be one of: {', '.join(LOCATION_TYPES)}")
    if payload.parent_id is not None and repo_catalog.get_location(db, payload.parent_id) is None:
        raise HTTPException(status_code=400, detail="Parent location not found")
    return repo_catalog.create_location(db, payload)


# ----------------------------------------------------------------------------
# Verification pricing + campaigns
# ----------------------------------------------------------------------------

@router.get("/verification-pricing", response_model=List[schemas.VerificationPricing])
def list_verification_pricing(
    db: Session = Depends(get_db),
    user_context=Depends(require_super_admin),
):
    return repo_verification.list_pricing(db, active_only=False)


@router.put("/verification-pricing", response_model=List[schemas.VerificationPricing])
def upsert_verification_pricing(
    payload: List[schemas.VerificationPricingUpsert],
    db: Session = Depends(get_db),
    user_context=Depends(require_super_admin),
):
    _user, current_user = user_context
    for item in payload:
        if item.verification_type not in VERIFICATION_TYPES:
            raise HTTPException(status_code=400, detail=f"Invalid verification type: {item.verification_type}")
        if item.duration_days not in DURATIONS:
            raise HTTPException(status_code=400, detail=f"Duration must be one of: {', '.join(str(d) for d in DURATIONS)} days")
        if item.price < 0:
            raise HTTPException(status_code=400, detail="Price must be zero or more")
        if not 0 <= item.discount_percentage <= 100:
            raise HTTPException(status_code=400, detail="Discount must be between 0 and 100")

    rows = [repo_verification.upsert_pricing(db, item) for item in payload]
    audit.log_pricing(
        db,
        actor_user_id=current_user["id"],
        target_type="verification_pricing",
        target_id=None,
        action=audit.AuditAction.VERIFICATION_PRICING_UPDATE,
        metadata={"rows": [item.model_dump(by_alias=True) for item in payload]},
    )
    return rows


@router.get("/verification-campaigns", response_model=List[schemas.Campaign])
def list_campaigns(
    db: Session = Depends(get_db),
    user_context=Depends(require_super_admin),
):
    return repo_verification.list_campaigns(db)


@router.post("/verification-campaigns", response_model=schemas.Campaign, status_code=status.HTTP_201_CREATED)
def create_campaign(
    payload: schemas.CampaignCreate,
    db: Session = Depends(get_db),
    user_context=Depends(require_super_admin),
):
    _user, current_user = user_context
    if not payload.name.strip():
        raise HTTPException(status_code=400, detail="Campaign name is required")
    if not 0 < payload.discount_percentage <= 100:
        raise HTTPException(status_code=400, detail="Discount must be between 1 and 100")
    if payload.end_date <= payload.start_date:
        raise HTTPException(status_code=400, detail="End date must be after start date")
    unknown = [t for t in payload.applies_to_types if t not in VERIFICATION_TYPES]
    if unknown:
        raise HTTPException(status_code=400, detail=f"Invalid verification type: {', '.join(unknown)}")
    campaign = repo_verification.create_campaign(db, payload)
    audit.log_pricing(
        db,
        actor_user_id=current_user["id"],
        target_type="verification_campaign",
        target_id=campaign.id,
        action=audit.AuditAction.CAMPAIGN_CREATE,
        metadata={"name": campaign.name, "discountPercentage": campaign.discount_percentage},
    )
    return campaign
