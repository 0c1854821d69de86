"""
User-facing account endpoints.

Own profile read/update, public seller profiles and shop pages, and the
caller's promotion history.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from bazaar.db import models, schemas
from bazaar.db.database import get_db
from bazaar.db.repositories import ads as repo_ads
from bazaar.db.repositories import catalog as repo_catalog
from bazaar.db.repositories import promotions as repo_promotions
from bazaar.db.repositories import users as repo_users
from bazaar.api.deps import get_current_user_context

logger = logging.getLogger(__name__)

router = APIRouter(tags=["users"])

MAX_FULL_NAME_LENGTH = 255


def _location_name(db: Session, location_id: Optional[int]) -> Optional[str]:
    if location_id is None:
        return None
    location = repo_catalog.get_location(db, location_id)
    return location.name if location else None


def _profile(db: Session, user: models.User) -> schemas.Profile:
    return schemas.Profile.model_validate(user).model_copy(
        update={"location_name": _location_name(db, user.location_id)}
    )


def _public_profile(db: Session, user: models.User) -> schemas.PublicProfile:
    return schemas.PublicProfile.model_validate(user).model_copy(update={
        "location_name": _location_name(db, user.location_id),
        "ads_count": repo_ads.count_public_user_ads(db, user.id),
    })


@router.get("/profile", response_model=schemas.Profile)
def get_profile(
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    user, _ctx = user_context
    return _profile(db, user)


@router.put("/profile", response_model=schemas.Profile)
def update_profile(
    payload: schemas.ProfileUpdate,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    user, _ctx = user_context
    changes = {}
    provided = payload.model_fields_set

    if "full_name" in provided:
        full_name = (payload.full_name or "").strip()
        if not full_name or len(full_name) > MAX_FULL_NAME_LENGTH:
            raise HTTPException(
                status_code=400, detail=f"Full name must be 1..{MAX_FULL_NAME_LENGTH} characters"
            )
        changes["full_name"] = full_name
    if "bio" in provided:
        changes["bio"] = (payload.bio or "").strip() or None
    if "location_id" in provided:
        if payload.location_id is not None and repo_catalog.get_location(db, payload.location_id) is None:
            raise HTTPException(status_code=400, detail="Invalid location")
        changes["location_id"] = payload.location_id

    if changes:
        user = repo_users.update_user(db, user, **changes)
        logger.info("profile_updated user=%s fields=%s", user.id, ",".join(sorted(changes)))
    return _profile(db, user)


@router.get("/profile/{user_id}", response_model=schemas.PublicProfile)
def get_public_profile(user_id: int, db: Session = Depends(get_db)):
    user = repo_users.get_user(db, user_id)
    if user is None or not user.is_active:
        raise HTTPException(status_code=404, detail="User not found")
    return _public_profile(db, user)


@router.get("/shop/{slug}", response_model=schemas.ShopProfile)
def get_shop(slug: str, db: Session = Depends(get_db)):
    user = repo_users.get_user_by_shop_slug(db, slug)
    if user is None or not user.is_active:
        raise HTTPException(status_code=404, detail="Shop not found")
    ads = repo_ads.list_public_user_ads(db, user.id)
    return schemas.ShopProfile(
        seller=_public_profile(db, user),
        ads=[schemas.Ad.model_validate(ad) for ad in ads],
    )


@router.get("/promotions", response_model=List[schemas.AdPromotion])
def list_my_promotions(
    ad_id: Optional[int] = Query(default=None, alias="adId"),
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    user, current_user = user_context
    if ad_id is None:
        return repo_promotions.list_user_promotions(db, user.id)
    ad = repo_ads.get_ad(db, ad_id)
    if ad is None:
        raise HTTPException(status_code=404, detail="Ad not found")
    if ad.user_id != user.id and not current_user.get("is_staff"):
        raise HTTPException(status_code=403, detail="You can only view promotions for your own ads")
    return repo_promotions.list_ad_promotions(db, ad.id)
