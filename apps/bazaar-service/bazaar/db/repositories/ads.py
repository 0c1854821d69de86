"""
Ad repository functions.

Listing with filters/sorting/paging, CRUD, image bookkeeping and review
history for moderation.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy import or_, func
from sqlalchemy.orm import Session, joinedload

from bazaar.db import models, schemas

SORT_NEWEST = "newest"
SORT_OLDEST = "oldest"
SORT_PRICE_LOW = "price_low"
SORT_PRICE_HIGH = "price_high"
SORT_POPULAR = "popular"
ALL_SORTS = {SORT_NEWEST, SORT_OLDEST, SORT_PRICE_LOW, SORT_PRICE_HIGH, SORT_POPULAR}


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _apply_search(query, search: Optional[str]):
    if search and search.strip():
        term = f"%{search.strip()}%"
        query = query.filter(or_(models.Ad.title.ilike(term), models.Ad.description.ilike(term)))
    return query


def _apply_sort(query, sort_by: str):
    if sort_by == SORT_PRICE_LOW:
        return query.order_by(models.Ad.price.asc(), models.Ad.id.desc())
    if sort_by == SORT_PRICE_HIGH:
        return query.order_by(models.Ad.price.desc(), models.Ad.id.desc())
    if sort_by == SORT_POPULAR:
        return query.order_by(models.Ad.view_count.desc(), models.Ad.id.desc())
    if sort_by == SORT_OLDEST:
        return query.order_by(models.Ad.created_at.asc(), models.Ad.id.asc())
    # Newest: promoted ads float to the top
    return query.order_by(
        models.Ad.is_featured.desc(),
        models.Ad.is_urgent.desc(),
        models.Ad.is_sticky.desc(),
        models.Ad.created_at.desc(),
        models.Ad.id.desc(),
    )


def list_ads(
    db: Session,
    *,
    search: Optional[str] = None,
    category_ids: Optional[Iterable[int]] = None,
    location_id: Optional[int] = None,
    min_price: Optional[float] = None,
    max_price: Optional[float] = None,
    condition: Optional[str] = None,
    status: Optional[str] = "approved",
    user_id: Optional[int] = None,
    sort_by: str = SORT_NEWEST,
    skip: int = 0,
    limit: int = 20,
) -> Tuple[List[models.Ad], int]:
    query = db.query(models.Ad).filter(models.Ad.deleted_at.is_(None))
    if status:
        query = query.filter(models.Ad.status == status)
    if user_id is not None:
        query = query.filter(models.Ad.user_id == user_id)
    if category_ids:
        query = query.filter(models.Ad.category_id.in_(list(category_ids)))
    if location_id is not None:
        query = query.filter(models.Ad.location_id == location_id)
    if min_price is not None:
        query = query.filter(models.Ad.price >= min_price)
    if max_price is not None:
        query = query.filter(models.Ad.price <= max_price)
    if condition:
        query = query.filter(models.Ad.condition == condition)
    query = _apply_search(query, search)

    total = query.count()
    items = (
        _apply_sort(query, sort_by)
        .options(joinedload(models.Ad.images))
        .offset(skip)
        .limit(limit)
        .all()
    )
    return items, total


def list_ads_for_review(
    db: Session,
    *,
    status: Optional[str] = "pending",
    search: Optional[str] = None,
    include_deleted: str = "false",
    skip: int = 0,
    limit: int = 20,
) -> Tuple[List[models.Ad], int]:
    query = db.query(models.Ad)
    if include_deleted == "only":
        query = query.filter(models.Ad.deleted_at.isnot(None))
    elif include_deleted != "true":
        query = query.filter(models.Ad.deleted_at.is_(None))
    if status and status != "all":
        query = query.filter(models.Ad.status == status)
    query = _apply_search(query, search)
    total = query.count()
    items = (
        query.options(joinedload(models.Ad.images))
        .order_by(models.Ad.created_at.desc(), models.Ad.id.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )
    return items, total


def get_ad(db: Session, ad_id: int) -> Optional[models.Ad]:
    return db.query(models.Ad).filter(models.Ad.id == ad_id).first()


def get_ad_by_slug(db: Session, slug: str) -> Optional[models.Ad]:
    return db.query(models.Ad).filter(models.Ad.slug == slug).first()


def increment_view_count(db: Session, ad: models.Ad) -> models.Ad:
    db.query(models.Ad).filter(models.Ad.id == ad.id).update(
        {models.Ad.view_count: models.Ad.view_count + 1}, synchronize_session=False
    )
    db.commit()
    db.refresh(ad)
    return ad


def create_ad(db: Session, **fields) -> models.Ad:
    ad = models.Ad(**fields)
    db.add(ad)
    db.flush()
    return ad


def add_images(db: Session, ad: models.Ad, images: Iterable[schemas.AdImageCreate]) -> List[models.AdImage]:
    created = []
    for image in images:
        row = models.AdImage(ad_id=ad.id, is_primary=False, **image.model_dump())
        db.add(row)
        created.append(row)
    db.flush()
    return created


def delete_images_except(db: Session, ad: models.Ad, keep_ids: Iterable[int]) -> int:
    keep = set(keep_ids)
    removed = 0
    for image in list(ad.images):
        if image.id not in keep:
            ad.images.remove(image)
            removed += 1
    db.flush()
    return removed


def reset_primary_image(db: Session, ad: models.Ad) -> None:
    """Make the first remaining image primary."""
    db.refresh(ad)
    for index, image in enumerate(ad.images):
        image.is_primary = index == 0
    db.flush()


def count_images(db: Session, ad_id: int) -> int:
    return db.query(func.count(models.AdImage.id)).filter(models.AdImage.ad_id == ad_id).scalar() or 0


def soft_delete_ad(db: Session, ad: models.Ad, *, deleted_by: int, reason: Optional[str] = None) -> models.Ad:
    ad.deleted_at = _now()
    ad.deleted_by = deleted_by
    ad.deletion_reason = reason
    ad.status = "deleted"
    db.commit()
    db.refresh(ad)
    return ad


def hard_delete_ad(db: Session, ad: models.Ad) -> None:
    ad_id = ad.id
    db.query(models.AdReport).filter(models.AdReport.ad_id == ad_id).delete(synchronize_session=False)
    db.query(models.AdReviewHistory).filter(models.AdReviewHistory.ad_id == ad_id).delete(synchronize_session=False)
    db.query(models.AdPromotion).filter(models.AdPromotion.ad_id == ad_id).delete(synchronize_session=False)
    db.delete(ad)
    db.commit()


def add_review_history(
    db: Session,
    *,
    ad_id: int,
    action: str,
    actor_id: Optional[int],
    actor_type: str,
    reason: Optional[str] = None,
    notes: Optional[str] = None,
) -> models.AdReviewHistory:
    entry = models.AdReviewHistory(
        ad_id=ad_id,
        action=action,
        actor_id=actor_id,
        actor_type=actor_type,
        reason=reason,
        notes=notes,
    )
    db.add(entry)
    db.commit()
    db.refresh(entry)
    return entry


def get_review_history(db: Session, ad_id: int) -> List[models.AdReviewHistory]:
    return (
        db.query(models.AdReviewHistory)
        .filter(models.AdReviewHistory.ad_id == ad_id)
        .order_by(models.AdReviewHistory.created_at.desc(), models.AdReviewHistory.id.desc())
        .all()
    )


def count_by_status(db: Session, status: str) -> int:
    return (
        db.query(func.count(models.Ad.id))
        .filter(models.Ad.status == status, models.Ad.deleted_at.is_(None))
        .scalar()
        or 0
    )


def list_user_ads(db: Session, user_id: int) -> List[models.Ad]:
    return (
        db.query(models.Ad)
        .filter(models.Ad.user_id == user_id, models.Ad.deleted_at.is_(None))
        .options(joinedload(models.Ad.images))
        .order_by(models.Ad.created_at.desc(), models.Ad.id.desc())
        .all()
    )


def list_public_user_ads(db: Session, user_id: int) -> List[models.Ad]:
    return (
        db.query(models.Ad)
        .filter(models.Ad.user_id == user_id, models.Ad.status == "approved", models.Ad.deleted_at.is_(None))
        .options(joinedload(models.Ad.images))
        .order_by(models.Ad.created_at.desc(), models.Ad.id.desc())
        .all()
    )


def count_public_user_ads(db: Session, user_id: int) -> int:
    return (
        db.query(func.count(models.Ad.id))
        .filter(models.Ad.user_id == user_id, models.Ad.status == "approved", models.Ad.deleted_at.is_(None))
        .scalar()
        or 0
    )


def count_user_ads(db: Session, user_ids: Iterable[int]) -> Dict[int, int]:
    ids = list(user_ids)
    if not ids:
        return {}
    rows = (
        db.query(models.Ad.user_id, func.count(models.Ad.id))
        .filter(models.Ad.user_id.in_(ids), models.Ad.deleted_at.is_(None))
        .group_by(models.Ad.user_id)
        .all()
    )
    return {user_id: count for user_id, count in rows}


def suspend_user_ads(db: Session, user_id: int, reason: str) -> int:
    """Hide a suspended seller's live ads; the marker reason lets unsuspension find them again."""
    updated = (
        db.query(models.Ad)
        .filter(models.Ad.user_id == user_id, models.Ad.status.in_(["approved", "active"]))
        .update({models.Ad.status: "suspended", models.Ad.status_reason: reason}, synchronize_session=False)
    )
    db.commit()
    return updated


def restore_user_ads(db: Session, user_id: int, reason_prefix: str) -> int:
    restored = (
        db.query(models.Ad)
        .filter(
            models.Ad.user_id == user_id,
            models.Ad.status == "suspended",
            models.Ad.status_reason.like(f"{reason_prefix}%"),
        )
        .update({models.Ad.status: "approved", models.Ad.status_reason: None}, synchronize_session=False)
    )
    db.commit()
    return restored
