"""
Repositories for login access tokens.

Implements issue/lookup/revoke and last-used updates.
"""
from __future__ import annotations

import os
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

from sqlalchemy.orm import Session

from bazaar.db import models
from bazaar.utils import token_crypto


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _ttl() -> timedelta:
    raw = os.getenv("ACCESS_TOKEN_TTL_HOURS", "168")
    hours = int(raw) if raw.isascii() and raw.isdigit() else 168
    return timedelta(hours=hours)


def create_token(db: Session, *, user_id: int, name: Optional[str] = None) -> Tuple[models.AccessToken, str]:
    token_id, secret, full_token = token_crypto.generate_token()
    now = _now()
    token = models.AccessToken(
        user_id=user_id,
        token_id=token_id,
        token_hash=token_crypto.hash_secret(secret),
        name=name,
        created_at=now,
        expires_at=now + _ttl(),
    )
    db.add(token)
    db.commit()
    db.refresh(token)
    return token, full_token


def get_by_token_id(db: Session, token_id: str) -> Optional[models.AccessToken]:
    return db.query(models.AccessToken).filter(models.AccessToken.token_id == token_id).first()


def revoke_token(db: Session, token: models.AccessToken) -> models.AccessToken:
    token.revoked_at = _now()
    db.commit()
    db.refresh(token)
    return token


def revoke_all_for_user(db: Session, user_id: int) -> int:
    count = (
        db.query(models.AccessToken)
        .filter(models.AccessToken.user_id == user_id, models.AccessToken.revoked_at.is_(None))
        .update({models.AccessToken.revoked_at: _now()}, synchronize_session=False)
    )
    db.commit()
    return count


def mark_used(db: Session, token: models.AccessToken) -> None:
    token.last_used_at = _now()
    db.commit()
