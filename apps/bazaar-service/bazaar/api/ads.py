"""
Ads API endpoints.

Public browsing (list/detail), posting and editing by the owner, image
uploads and owner soft-delete.
"""
import logging
from typing import Any, Dict, List, Optional, Tuple

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status
from sqlalchemy.orm import Session

from bazaar.db import models, schemas
from bazaar.db.database import get_db
from bazaar.db.repositories import ads as repo_ads
from bazaar.db.repositories import catalog as repo_catalog
from bazaar.api.deps import get_current_user_context, get_optional_user_context
from bazaar.api.permissions import can_edit_ad, can_moderate, can_view_ad, PUBLIC_AD_STATUSES
from bazaar.services.uploads import (
    AD_IMAGE_DIR,
    AD_IMAGE_TYPES,
    UploadError,
    remove_stored_file,
    save_upload,
)
from bazaar.utils.slugs import build_ad_slug, unique_slug

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ads", tags=["ads"])

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100
MAX_IMAGES_PER_AD = 10

_CONDITION_ALIASES = {
    "brand new": "new",
    "new": "new",
    "used": "used",
    "reconditioned": "used",
}

# Request keys folded into custom_fields alongside any explicit custom fields
_EXTRA_FIELD_KEYS = (
    ("is_negotiable", "isNegotiable"),
    ("latitude", "latitude"),
    ("longitude", "longitude"),
    ("google_maps_link", "googleMapsLink"),
)


def normalize_condition(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    return _CONDITION_ALIASES.get(value.strip().lower())


def _clamp_paging(page: int, limit: int) -> Tuple[int, int]:
    page = max(page, 1)
    limit = min(max(limit, 1), MAX_PAGE_SIZE)
    return page, limit


def _slug_location_names(db: Session, location_id: Optional[int]) -> Tuple[Optional[str], Optional[str]]:
    """(area name, district name) for the ad's location chain."""
    chain = repo_catalog.get_location_breadcrumb(db, location_id)
    if not chain:
        return None, None
    leaf = chain[-1]
    district = next((loc.name for loc in chain if loc.type == "district" and loc.id != leaf.id), None)
    return leaf.name, district


def _assign_slug(db: Session, ad: models.Ad) -> None:
    area, district = _slug_location_names(db, ad.location_id)
    base = build_ad_slug(ad.id, ad.title, area, district)
    ad.slug = unique_slug(db, models.Ad.slug, base, exclude_id=ad.id)


def _merge_custom_fields(existing: Optional[Dict[str, Any]], payload, fields_set) -> Optional[Dict[str, Any]]:
    merged: Dict[str, Any] = dict(existing or {})
    if payload.custom_fields:
        merged.update(payload.custom_fields)
    for attr, key in _EXTRA_FIELD_KEYS:
        if attr in fields_set and getattr(payload, attr) is not None:
            merged[key] = getattr(payload, attr)
    return merged or None


def _validate_category(db: Session, category_id: Optional[int]) -> None:
    if category_id is not None and repo_catalog.get_category(db, category_id) is None:
        raise HTTPException(status_code=400, detail="Invalid category")


def _validate_location(db: Session, location_id: Optional[int]) -> None:
    if location_id is not None and repo_catalog.get_location(db, location_id) is None:
        raise HTTPException(status_code=400, detail="Invalid location")


def _to_detail(db: Session, ad: models.Ad) -> schemas.AdDetail:
    detail = schemas.AdDetail.model_validate(ad)
    breadcrumb = [schemas.Location.model_validate(loc) for loc in repo_catalog.get_location_breadcrumb(db, ad.location_id)]
    return detail.model_copy(update={"location_breadcrumb": breadcrumb})


def _get_owned_ad(db: Session, ad_id: int, current_user: Dict[str, Any]) -> models.Ad:
    ad = repo_ads.get_ad(db, ad_id)
    if ad is None or ad.deleted_at is not None:
        raise HTTPException(status_code=404, detail="Ad not found")
    if not can_edit_ad(ad, current_user):
        raise HTTPException(status_code=403, detail="You can only modify your own ads")
    return ad


@router.get("", response_model=schemas.AdList)
def list_ads_endpoint(
    search: Optional[str] = None,
    category_id: Optional[int] = Query(default=None, alias="categoryId"),
    location_id: Optional[int] = Query(default=None, alias="locationId"),
    min_price: Optional[float] = Query(default=None, alias="minPrice"),
    max_price: Optional[float] = Query(default=None, alias="maxPrice"),
    condition: Optional[str] = None,
    ad_status: str = Query(default="approved", alias="status"),
    sort_by: str = Query(default=repo_ads.SORT_NEWEST, alias="sortBy"),
    page: int = 1,
    limit: int = DEFAULT_PAGE_SIZE,
    db: Session = Depends(get_db),
    user_context=Depends(get_optional_user_context),
):
    current_user = user_context[1] if user_context else None
    if ad_status not in PUBLIC_AD_STATUSES and not can_moderate(current_user):
        raise HTTPException(status_code=403, detail="Only staff can list non-public ads")
    if sort_by not in repo_ads.ALL_SORTS:
        sort_by = repo_ads.SORT_NEWEST
    page, limit = _clamp_paging(page, limit)

    category_ids = None
    if category_id is not None:
        category_ids = [category_id] + repo_catalog.get_child_category_ids(db, category_id)

    ads, total = repo_ads.list_ads(
        db,
        search=search,
        category_ids=category_ids,
        location_id=location_id,
        min_price=min_price,
        max_price=max_price,
        condition=normalize_condition(condition) if condition else None,
        status=ad_status,
        sort_by=sort_by,
        skip=(page - 1) * limit,
        limit=limit,
    )
    return schemas.AdList(
        ads=[schemas.Ad.model_validate(ad) for ad in ads],
        pagination=schemas.build_pagination(total, page, limit),
    )


@router.get("/mine", response_model=List[schemas.Ad])
def list_my_ads(
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    user, _ctx = user_context
    return repo_ads.list_user_ads(db, user.id)


@router.get("/{id_or_slug}", response_model=schemas.AdDetail)
def get_ad_endpoint(
    id_or_slug: str,
    db: Session = Depends(get_db),
    user_context=Depends(get_optional_user_context),
):
    current_user = user_context[1] if user_context else None
    if id_or_slug.isascii() and id_or_slug.isdigit():
        ad = repo_ads.get_ad(db, int(id_or_slug))
    else:
        ad = repo_ads.get_ad_by_slug(db, id_or_slug)
    if ad is None or ad.deleted_at is not None:
        raise HTTPException(status_code=404, detail="Ad not found")
    if not can_view_ad(ad, current_user):
        # Hide the existence of unpublished ads
        raise HTTPException(status_code=404, detail="Ad not found")
    ad = repo_ads.increment_view_count(db, ad)
    return _to_detail(db, ad)


@router.post("", response_model=schemas.AdDetail, status_code=status.HTTP_201_CREATED)
def create_ad_endpoint(
    payload: schemas.AdCreate,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    user, _ctx = user_context
    if not payload.title.strip() or not payload.description.strip():
        raise HTTPException(status_code=400, detail="Title and description are required")
    if payload.price < 0:
        raise HTTPException(status_code=400, detail="Price must be a positive number")
    category_id = payload.subcategory_id or payload.category_id
    if category_id is None:
        raise HTTPException(status_code=400, detail="Category is required")
    _validate_category(db, category_id)
    location_id = payload.area_id or payload.location_id
    _validate_location(db, location_id)

    ad = repo_ads.create_ad(
        db,
        title=payload.title.strip(),
        description=payload.description.strip(),
        price=payload.price,
        condition=normalize_condition(payload.condition),
        category_id=category_id,
        location_id=location_id,
        user_id=user.id,
        seller_name=payload.seller_name or user.verified_seller_name or user.full_name,
        seller_phone=payload.seller_phone or user.phone,
        custom_fields=_merge_custom_fields(None, payload, payload.model_fields_set),
        status="approved",
        view_count=0,
    )
    _assign_slug(db, ad)
    if payload.images:
        repo_ads.add_images(db, ad, payload.images)
    db.commit()
    if payload.images:
        repo_ads.reset_primary_image(db, ad)
        db.commit()
    db.refresh(ad)
    logger.info("ad_created id=%s user=%s category=%s", ad.id, user.id, category_id)
    return _to_detail(db, ad)


@router.put("/{ad_id}", response_model=schemas.AdDetail)
def update_ad_endpoint(
    ad_id: int,
    payload: schemas.AdUpdate,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    _user, current_user = user_context
    ad = _get_owned_ad(db, ad_id, current_user)
    fields_set = payload.model_fields_set

    if payload.price is not None and payload.price < 0:
        raise HTTPException(status_code=400, detail="Price must be a positive number")
    if "title" in fields_set and payload.title is not None:
        if not payload.title.strip():
            raise HTTPException(status_code=400, detail="Title is required")
        title_changed = payload.title.strip() != ad.title
        ad.title = payload.title.strip()
    else:
        title_changed = False
    if payload.description is not None:
        ad.description = payload.description.strip()
    if payload.price is not None:
        ad.price = payload.price
    if "condition" in fields_set:
        ad.condition = normalize_condition(payload.condition)

    category_id = payload.subcategory_id or payload.category_id
    if category_id is not None:
        _validate_category(db, category_id)
        ad.category_id = category_id
    location_id = payload.area_id or payload.location_id
    if location_id is not None:
        _validate_location(db, location_id)
        ad.location_id = location_id
    if payload.seller_name is not None:
        ad.seller_name = payload.seller_name
    if payload.seller_phone is not None:
        ad.seller_phone = payload.seller_phone
    ad.custom_fields = _merge_custom_fields(ad.custom_fields, payload, fields_set)

    if title_changed:
        _assign_slug(db, ad)

    images_changed = False
    if payload.existing_images is not None:
        removed = [img.file_path for img in ad.images if img.id not in set(payload.existing_images)]
        repo_ads.delete_images_except(db, ad, payload.existing_images)
        for path in removed:
            remove_stored_file(path)
        images_changed = True
    if payload.new_images:
        repo_ads.add_images(db, ad, payload.new_images)
        images_changed = True
    db.commit()
    if images_changed:
        repo_ads.reset_primary_image(db, ad)
        db.commit()
    db.refresh(ad)
    logger.info("ad_updated id=%s slug_changed=%s", ad.id, title_changed)
    return _to_detail(db, ad)


@router.post("/{ad_id}/images", response_model=schemas.AdDetail, status_code=status.HTTP_201_CREATED)
def upload_ad_images(
    ad_id: int,
    images: List[UploadFile] = File(...),
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    _user, current_user = user_context
    ad = _get_owned_ad(db, ad_id, current_user)
    existing = repo_ads.count_images(db, ad.id)
    if existing + len(images) > MAX_IMAGES_PER_AD:
        raise HTTPException(status_code=400, detail=f"An ad can have at most {MAX_IMAGES_PER_AD} images")

    stored = []
    try:
        for upload in images:
            stored.append(save_upload(upload, AD_IMAGE_DIR, AD_IMAGE_TYPES, label="Image"))
    except UploadError as exc:
        for item in stored:
            remove_stored_file(item.file_path)
        raise HTTPException(status_code=400, detail=str(exc))

    repo_ads.add_images(
        db,
        ad,
        [
            schemas.AdImageCreate(
                filename=item.filename,
                file_path=item.file_path,
                original_name=item.original_name,
                file_size=item.file_size,
                mime_type=item.mime_type,
            )
            for item in stored
        ],
    )
    db.commit()
    repo_ads.reset_primary_image(db, ad)
    db.commit()
    db.refresh(ad)
    return _to_detail(db, ad)


@router.delete("/{ad_id}")
def delete_ad_endpoint(
    ad_id: int,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    user, current_user = user_context
    ad = repo_ads.get_ad(db, ad_id)
    if ad is None:
        raise HTTPException(status_code=404, detail="Ad not found")
    if not can_edit_ad(ad, current_user):
        raise HTTPException(status_code=403, detail="You can only delete your own ads")
    if ad.deleted_at is not None:
        raise HTTPException(status_code=400, detail="Ad is already deleted")
    repo_ads.soft_delete_ad(db, ad, deleted_by=user.id, reason="Deleted by owner")
    logger.info("ad_deleted_by_owner id=%s user=%s", ad.id, user.id)
    return {"success": True, "message": "Ad deleted successfully"}
