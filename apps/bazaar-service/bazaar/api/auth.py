"""
Authentication endpoints and helpers.

Email/password accounts with opaque bearer tokens. Accounts listed in
ADMIN_EMAILS are created as super admins so a fresh deployment can be
bootstrapped without touching the database.
"""
import logging
import os
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from bazaar.db.database import get_db
from bazaar.db import models, schemas
from bazaar.db.repositories import tokens as token_repo
from bazaar.db.repositories import users as user_repo
from bazaar.api.deps import get_current_user_context, is_user_suspended
from bazaar.utils.role_permissions import ROLE_SUPER_ADMIN, ROLE_USER, role_allows_moderation
from bazaar.utils.token_crypto import verify_password

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])

MIN_PASSWORD_LENGTH = 8


def _normalize_email(email: Optional[str]) -> Optional[str]:
    if not email:
        return None
    return email.strip().lower()


def _admin_emails() -> set:
    raw = os.getenv("ADMIN_EMAILS", "")
    values = set()
    for entry in raw.split(","):
        cleaned = entry.strip().strip('"').strip("'")
        if cleaned:
            values.add(cleaned.lower())
    return values


def _issue_token(db: Session, user: models.User, name: str) -> schemas.AuthResponse:
    token, full_token = token_repo.create_token(db, user_id=user.id, name=name)
    return schemas.AuthResponse(
        token=full_token,
        expires_at=token.expires_at,
        user=schemas.User.model_validate(user),
    )


def authenticate(db: Session, email: str, password: str) -> models.User:
    """Check credentials and account state; raises 401/403."""
    user = user_repo.get_user_by_email(db, _normalize_email(email) or "")
    if not user or not verify_password(password, user.password_hash):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid email or password")
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account is deactivated")
    if is_user_suspended(user):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account is suspended")
    return user


@router.post("/auth/register", response_model=schemas.AuthResponse, status_code=status.HTTP_201_CREATED)
def register(payload: schemas.UserCreate, db: Session = Depends(get_db)):
    if len(payload.password or "") < MIN_PASSWORD_LENGTH:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
        )
    if not payload.full_name or not payload.full_name.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Full name is required")
    if user_repo.get_user_by_email(db, payload.email):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered")

    role = ROLE_SUPER_ADMIN if payload.email in _admin_emails() else ROLE_USER
    user = user_repo.create_user(
        db,
        email=payload.email,
        password=payload.password,
        full_name=payload.full_name,
        phone=payload.phone,
        role=role,
    )
    logger.info("user_registered id=%s role=%s", user.id, user.role)
    user = user_repo.mark_login(db, user)
    return _issue_token(db, user, name="register")


@router.post("/auth/login", response_model=schemas.AuthResponse)
def login(payload: schemas.LoginRequest, db: Session = Depends(get_db)):
    user = authenticate(db, payload.email, payload.password)
    user = user_repo.mark_login(db, user)
    return _issue_token(db, user, name="login")


@router.post("/editor/auth/login", response_model=schemas.AuthResponse)
def editor_login(payload: schemas.LoginRequest, db: Session = Depends(get_db)):
    user = authenticate(db, payload.email, payload.password)
    if not role_allows_moderation(user.role):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied. Editor privileges required.",
        )
    user = user_repo.mark_login(db, user)
    logger.info("editor_login id=%s role=%s", user.id, user.role)
    return _issue_token(db, user, name="editor-login")


@router.post("/auth/logout", status_code=status.HTTP_204_NO_CONTENT)
def logout(
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    _user, current_user = user_context
    token = token_repo.get_by_token_id(db, current_user["token_id"])
    if token is not None:
        token_repo.revoke_token(db, token)
    return None


@router.get("/auth/me", response_model=schemas.User)
def me(user_context=Depends(get_current_user_context)):
    user, _ctx = user_context
    return user
