"""
Category and location repository functions.
"""
from __future__ import annotations

from typing import List, Optional

from sqlalchemy.orm import Session

from bazaar.db import models, schemas
from bazaar.utils.slugs import slugify


def get_category(db: Session, category_id: int) -> Optional[models.Category]:
    return db.query(models.Category).filter(models.Category.id == category_id).first()


def get_category_by_slug(db: Session, slug: str) -> Optional[models.Category]:
    return db.query(models.Category).filter(models.Category.slug == slug).first()


def list_categories(db: Session, *, active_only: bool = True) -> List[models.Category]:
    query = db.query(models.Category)
    if active_only:
        query = query.filter(models.Category.is_active.is_(True))
    return query.order_by(models.Category.sort_order, models.Category.name).all()


def list_root_categories(db: Session) -> List[models.Category]:
    return (
        db.query(models.Category)
        .filter(models.Category.parent_id.is_(None))
        .order_by(models.Category.sort_order, models.Category.name)
        .all()
    )


def get_child_category_ids(db: Session, category_id: int) -> List[int]:
    rows = db.query(models.Category.id).filter(models.Category.parent_id == category_id).all()
    return [r[0] for r in rows]


def get_root_category(db: Session, category_id: int) -> Optional[models.Category]:
    category = get_category(db, category_id)
    seen = set()
    while category is not None and category.parent_id is not None and category.id not in seen:
        seen.add(category.id)
        category = get_category(db, category.parent_id)
    return category


def create_category(db: Session, payload: schemas.CategoryCreate) -> models.Category:
    category = models.Category(
        name=payload.name.strip(),
        slug=payload.slug or slugify(payload.name),
        parent_id=payload.parent_id,
        icon=payload.icon,
        sort_order=payload.sort_order,
        is_active=True,
    )
    db.add(category)
    db.commit()
    db.refresh(category)
    return category


def get_location(db: Session, location_id: int) -> Optional[models.Location]:
    return db.query(models.Location).filter(models.Location.id == location_id).first()


def list_locations(db: Session, *, parent_id: Optional[int] = None, type: Optional[str] = None) -> List[models.Location]:
    query = db.query(models.Location)
    if parent_id is not None:
        query = query.filter(models.Location.parent_id == parent_id)
    if type:
        query = query.filter(models.Location.type == type)
    return query.order_by(models.Location.name).all()


def create_location(db: Session, payload: schemas.LocationCreate) -> models.Location:
    location = models.Location(
        name=payload.name.strip(),
        slug=payload.slug or slugify(payload.name),
        type=payload.type,
        parent_id=payload.parent_id,
    )
    db.add(location)
    db.commit()
    db.refresh(location)
    return location


def get_location_breadcrumb(db: Session, location_id: Optional[int]) -> List[models.Location]:
    """Return the location chain ordered root first."""
    chain: List[models.Location] = []
    seen = set()
    current = get_location(db, location_id) if location_id else None
    while current is not None and current.id not in seen:
        seen.add(current.id)
        chain.append(current)
        current = get_location(db, current.parent_id) if current.parent_id else None
    chain.reverse()
    return chain
