"""
API dependency helpers.

Resolves the bearer access token on a request into the current user and a
small context dict used by permission helpers.
"""
import logging
from datetime import datetime, timezone
from typing import Optional, Tuple, Dict, Any

from fastapi import Header, HTTPException, status, Depends
from sqlalchemy.orm import Session

from bazaar.db.database import get_db
from bazaar.db import models
from bazaar.db.models.base import ensure_aware
from bazaar.db.repositories import tokens as token_repo
from bazaar.utils.token_crypto import parse_token, verify_secret
from bazaar.utils.role_permissions import (
    ROLE_SUPER_ADMIN,
    role_allows_moderation,
    role_allows_configuration,
)

logger = logging.getLogger(__name__)

# Contract:
# Returns (sqlalchemy User model, current_user_context_dict)
# Raises 401 if identity cannot be resolved.


def _extract_bearer(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    if authorization.lower().startswith("bearer "):
        return authorization[7:].strip() or None
    return None


def build_user_context(user: models.User, token: Optional[models.AccessToken] = None) -> Dict[str, Any]:
    return {
        "id": user.id,
        "email": user.email,
        "full_name": user.full_name,
        "role": user.role,
        "is_staff": role_allows_moderation(user.role),
        "is_super_admin": role_allows_configuration(user.role),
        "token_id": token.token_id if token is not None else None,
    }


def is_user_suspended(user: models.User, now: Optional[datetime] = None) -> bool:
    """Suspended with no end date, or with an end date still in the future."""
    if not user.is_suspended:
        return False
    until = ensure_aware(user.suspended_until)
    return until is None or until > (now or datetime.now(timezone.utc))


def resolve_token(db: Session, raw_token: str) -> Tuple[models.User, models.AccessToken]:
    parsed = parse_token(raw_token)
    if not parsed:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token format")
    token = token_repo.get_by_token_id(db, token_id=parsed.token_id)
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    if token.revoked_at is not None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token revoked")
    expires_at = ensure_aware(token.expires_at)
    if expires_at is not None and datetime.now(timezone.utc) > expires_at:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token expired")
    if not verify_secret(parsed.secret, token.token_hash):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

    user = db.query(models.User).filter(models.User.id == token.user_id).first()
    if not user or not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token user")
    if is_user_suspended(user):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account suspended")

    token_repo.mark_used(db, token)
    return user, token


def get_current_user_context(
    db: Session = Depends(get_db),
    authorization: Optional[str] = Header(default=None),
) -> Tuple[models.User, Dict[str, Any]]:
    raw = _extract_bearer(authorization)
    if not raw:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    user, token = resolve_token(db, raw)
    return user, build_user_context(user, token)


def get_optional_user_context(
    db: Session = Depends(get_db),
    authorization: Optional[str] = Header(default=None),
) -> Optional[Tuple[models.User, Dict[str, Any]]]:
    """Like get_current_user_context, but anonymous callers get None.

    A malformed or stale token is treated as anonymous on public routes.
    """
    raw = _extract_bearer(authorization)
    if not raw:
        return None
    try:
        user, token = resolve_token(db, raw)
    except HTTPException:
        return None
    return user, build_user_context(user, token)


def require_editor(
    user_context: Tuple[models.User, Dict[str, Any]] = Depends(get_current_user_context),
) -> Tuple[models.User, Dict[str, Any]]:
    user, current_user = user_context
    if not current_user.get("is_staff"):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Editor privileges required")
    return user, current_user


def require_super_admin(
    user_context: Tuple[models.User, Dict[str, Any]] = Depends(get_current_user_context),
) -> Tuple[models.User, Dict[str, Any]]:
    user, current_user = user_context
    if current_user.get("role") != ROLE_SUPER_ADMIN:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Super admin access required")
    return user, current_user
