"""
Verification request, pricing and campaign repository functions.

Individual and business requests share the same workflow columns, so most
helpers take the model class for the verification type.
"""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Type, Union

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from bazaar.db import models, schemas

VerificationModel = Union[models.IndividualVerificationRequest, models.BusinessVerificationRequest]

_MODELS = {
    "individual": models.IndividualVerificationRequest,
    "business": models.BusinessVerificationRequest,
}


def model_for(verification_type: str) -> Type[VerificationModel]:
    try:
        return _MODELS[verification_type]
    except KeyError:
        raise ValueError(f"Unknown verification type: {verification_type}")


def get_request(db: Session, verification_type: str, request_id: int) -> Optional[VerificationModel]:
    model = model_for(verification_type)
    return db.query(model).filter(model.id == request_id).first()


def find_user_request(db: Session, verification_type: str, user_id: int, status: str) -> Optional[VerificationModel]:
    model = model_for(verification_type)
    return (
        db.query(model)
        .filter(model.user_id == user_id, model.status == status)
        .order_by(model.created_at.desc(), model.id.desc())
        .first()
    )


def latest_user_request(db: Session, verification_type: str, user_id: int) -> Optional[VerificationModel]:
    model = model_for(verification_type)
    return (
        db.query(model)
        .filter(model.user_id == user_id)
        .order_by(model.created_at.desc(), model.id.desc())
        .first()
    )


def create_request(db: Session, verification_type: str, **fields) -> VerificationModel:
    row = model_for(verification_type)(**fields)
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def delete_request(db: Session, row: VerificationModel) -> None:
    db.delete(row)
    db.commit()


def list_requests(db: Session, verification_type: str, *, status: Optional[str] = "pending") -> List[VerificationModel]:
    model = model_for(verification_type)
    query = db.query(model).options(joinedload(model.user))
    if status and status != "all":
        query = query.filter(model.status == status)
    return query.order_by(model.created_at.desc(), model.id.desc()).all()


def count_by_status(db: Session, verification_type: str, status: str) -> int:
    model = model_for(verification_type)
    return db.query(func.count(model.id)).filter(model.status == status).scalar() or 0


def list_pricing(db: Session, *, active_only: bool = True) -> List[models.VerificationPricing]:
    query = db.query(models.VerificationPricing)
    if active_only:
        query = query.filter(models.VerificationPricing.is_active.is_(True))
    return query.order_by(models.VerificationPricing.verification_type, models.VerificationPricing.duration_days).all()


def find_pricing(db: Session, verification_type: str, duration_days: int) -> Optional[models.VerificationPricing]:
    return (
        db.query(models.VerificationPricing)
        .filter(
            models.VerificationPricing.verification_type == verification_type,
            models.VerificationPricing.duration_days == duration_days,
            models.VerificationPricing.is_active.is_(True),
        )
        .first()
    )


def upsert_pricing(db: Session, payload: schemas.VerificationPricingUpsert) -> models.VerificationPricing:
    row = (
        db.query(models.VerificationPricing)
        .filter(
            models.VerificationPricing.verification_type == payload.verification_type,
            models.VerificationPricing.duration_days == payload.duration_days,
        )
        .first()
    )
    if row is None:
        row = models.VerificationPricing(**payload.model_dump())
        db.add(row)
    else:
        for key, value in payload.model_dump().items():
            setattr(row, key, value)
    db.commit()
    db.refresh(row)
    return row


def list_campaigns(db: Session) -> List[models.VerificationCampaign]:
    return db.query(models.VerificationCampaign).order_by(models.VerificationCampaign.start_date.desc()).all()


def list_running_campaigns(db: Session, now: datetime) -> List[models.VerificationCampaign]:
    return (
        db.query(models.VerificationCampaign)
        .filter(
            models.VerificationCampaign.is_active.is_(True),
            models.VerificationCampaign.start_date <= now,
            models.VerificationCampaign.end_date >= now,
        )
        .order_by(models.VerificationCampaign.discount_percentage.desc(), models.VerificationCampaign.id)
        .all()
    )


def create_campaign(db: Session, payload: schemas.CampaignCreate) -> models.VerificationCampaign:
    row = models.VerificationCampaign(**payload.model_dump(), current_uses=0)
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def increment_campaign_usage(db: Session, campaign_id: int) -> None:
    db.query(models.VerificationCampaign).filter(models.VerificationCampaign.id == campaign_id).update(
        {models.VerificationCampaign.current_uses: models.VerificationCampaign.current_uses + 1},
        synchronize_session=False,
    )
    db.commit()
