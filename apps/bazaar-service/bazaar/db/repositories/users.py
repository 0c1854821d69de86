"""
User repository functions.

Account creation, lookup, login bookkeeping and staff listing.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from bazaar.db import models
from bazaar.utils import token_crypto
from bazaar.utils.role_permissions import ROLE_USER, STAFF_ROLES


def get_user(db: Session, user_id: int) -> Optional[models.User]:
    return db.query(models.User).filter(models.User.id == user_id).first()


def get_user_by_email(db: Session, email: str) -> Optional[models.User]:
    return db.query(models.User).filter(func.lower(models.User.email) == (email or "").strip().lower()).first()


def create_user(
    db: Session,
    *,
    email: str,
    password: str,
    full_name: str,
    phone: Optional[str] = None,
    role: str = ROLE_USER,
) -> models.User:
    user = models.User(
        email=email.strip().lower(),
        password_hash=token_crypto.hash_password(password),
        full_name=full_name.strip(),
        phone=phone,
        role=role,
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def mark_login(db: Session, user: models.User) -> models.User:
    user.last_login_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(user)
    return user


def list_staff(db: Session) -> List[models.User]:
    return (
        db.query(models.User)
        .filter(models.User.role.in_(list(STAFF_ROLES)))
        .order_by(models.User.created_at.desc())
        .all()
    )


def update_user(db: Session, user: models.User, **fields) -> models.User:
    for key, value in fields.items():
        setattr(user, key, value)
    db.commit()
    db.refresh(user)
    return user


def get_user_by_shop_slug(db: Session, slug: str) -> Optional[models.User]:
    return db.query(models.User).filter(models.User.shop_slug == slug).first()


def list_users(
    db: Session,
    *,
    search: Optional[str] = None,
    status: Optional[str] = None,
    skip: int = 0,
    limit: int = 20,
) -> Tuple[List[models.User], int]:
    query = db.query(models.User)
    if search:
        pattern = f"%{search.strip().lower()}%"
        query = query.filter(
            or_(func.lower(models.User.full_name).like(pattern), func.lower(models.User.email).like(pattern))
        )
    if status == "suspended":
        query = query.filter(models.User.is_suspended.is_(True))
    elif status == "active":
        query = query.filter(models.User.is_suspended.is_(False))
    total = query.count()
    users = (
        query.order_by(models.User.created_at.desc(), models.User.id.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )
    return users, total
