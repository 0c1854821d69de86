"""
Slug helpers for ads, categories and seller shop pages.
"""
from __future__ import annotations

import re
from typing import Optional

from sqlalchemy.orm import Session

_INVALID_CHARS = re.compile(r"[^a-z0-9\s-]")
_WHITESPACE = re.compile(r"\s+")
_DASHES = re.compile(r"-+")


def slugify(text: Optional[str]) -> str:
    """Lowercase, drop punctuation, join words with single hyphens."""
    if not text:
        return ""
    value = _INVALID_CHARS.sub("", text.lower()).strip()
    value = _WHITESPACE.sub("-", value)
    value = _DASHES.sub("-", value)
    return value.strip("-")


def generate_seo_slug(title: str, area_name: Optional[str] = None, district_name: Optional[str] = None) -> str:
    """Slug combining the ad title with where it is listed, e.g. ``iphone-13-baneshwor-kathmandu``."""
    parts = [slugify(p) for p in (title, area_name, district_name)]
    return "-".join(p for p in parts if p) or "ad"


def build_ad_slug(ad_id: int, title: str, area_name: Optional[str] = None, district_name: Optional[str] = None) -> str:
    # The id suffix keeps the slug unique even for identical titles
    return f"{generate_seo_slug(title, area_name, district_name)}-{ad_id}"


def unique_slug(db: Session, column, base: str, *, exclude_id: Optional[int] = None) -> str:
    """Return ``base`` or the first free ``base-N`` (N starting at 2) for ``column``.

    ``column`` is a mapped attribute such as ``models.User.shop_slug``; the
    owning entity must expose an ``id`` primary key for ``exclude_id``.
    """
    entity = column.class_
    candidate = base
    counter = 2
    while True:
        query = db.query(entity.id).filter(column == candidate)
        if exclude_id is not None:
            query = query.filter(entity.id != exclude_id)
        if query.first() is None:
            return candidate
        candidate = f"{base}-{counter}"
        counter += 1


def generate_shop_slug(db: Session, name: str, user_id: int) -> str:
    """Unique ``users.shop_slug`` derived from a seller or business name."""
    from bazaar.db import models  # local import keeps utils free of model import cycles

    base = slugify(name) or f"shop-{user_id}"
    return unique_slug(db, models.User.shop_slug, base, exclude_id=user_id)
