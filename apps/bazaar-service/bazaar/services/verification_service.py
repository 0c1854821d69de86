"""
Seller verification workflows.

Individual sellers prove their identity with an ID document and a selfie;
businesses submit a registration/license document. A request is created as
``pending_payment`` (or ``pending`` when it qualifies for free verification),
moves to ``pending`` once paid, and is then approved or rejected by staff.
Approval stamps the user with an expiry; the cleanup worker revokes lapsed
verifications.
"""
from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from fastapi import UploadFile
from sqlalchemy.orm import Session

from bazaar import audit
from bazaar.db import models, schemas
from bazaar.db.models.base import ensure_aware
from bazaar.db.repositories import settings as repo_settings
from bazaar.db.repositories import verification as repo_verification
from bazaar.utils.slugs import generate_shop_slug

from . import uploads
from .notification_service import get_notification_service

logger = logging.getLogger(__name__)

VERIFICATION_INDIVIDUAL = "individual"
VERIFICATION_BUSINESS = "business"
VERIFICATION_TYPES = (VERIFICATION_INDIVIDUAL, VERIFICATION_BUSINESS)

ID_DOCUMENT_TYPES = ("citizenship", "passport", "driving_license")
DURATIONS = (30, 90, 180, 365)
DEFAULT_DURATION_DAYS = 365
PRICE_TOLERANCE = 1

REVIEW_ACTIONS = ("approve", "reject")

SETTING_FREE_ENABLED = "free_verification_enabled"
SETTING_FREE_DURATION = "free_verification_duration_days"
SETTING_FREE_TYPES = "free_verification_types"
DEFAULT_FREE_DURATION_DAYS = 180


class VerificationError(Exception):
    def __init__(self, message: str, status_code: int = 400) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


@dataclass
class FreeVerificationSettings:
    enabled: bool
    duration_days: int
    types: List[str]

    def applies_to(self, verification_type: str) -> bool:
        return self.enabled and verification_type in self.types


@dataclass
class ExpectedPrice:
    price: float
    discount_percentage: int
    final_price: float
    campaign: Optional[models.VerificationCampaign] = None


def _now() -> datetime:
    return datetime.now(timezone.utc)


def format_duration_label(days: int) -> str:
    if days == 365:
        return "1 Year"
    if days % 30 == 0:
        months = days // 30
        return "1 Month" if months == 1 else f"{months} Months"
    return f"{days} Days"


def calculate_final_price(price: float, discount_percentage: int) -> float:
    if discount_percentage <= 0:
        return round(price)
    return round(price * (1 - discount_percentage / 100))


def get_free_verification_settings(db: Session) -> FreeVerificationSettings:
    values = repo_settings.get_settings(db, [SETTING_FREE_ENABLED, SETTING_FREE_DURATION, SETTING_FREE_TYPES])
    try:
        duration = int(values.get(SETTING_FREE_DURATION) or DEFAULT_FREE_DURATION_DAYS)
    except ValueError:
        duration = DEFAULT_FREE_DURATION_DAYS
    try:
        types = json.loads(values.get(SETTING_FREE_TYPES) or "[]") or list(VERIFICATION_TYPES)
    except json.JSONDecodeError:
        types = list(VERIFICATION_TYPES)
    return FreeVerificationSettings(
        enabled=(values.get(SETTING_FREE_ENABLED) or "").lower() == "true",
        duration_days=duration,
        types=[t for t in types if t in VERIFICATION_TYPES],
    )


def is_eligible_for_free_verification(user: Optional[models.User]) -> bool:
    """Only users who have never held any verification qualify."""
    if user is None:
        return False
    had_individual = user.individual_verified or user.individual_verification_expires_at is not None
    had_business = (
        user.business_verification_status == "approved" or user.business_verification_expires_at is not None
    )
    return not had_individual and not had_business


def get_best_campaign(db: Session, now: Optional[datetime] = None) -> Optional[models.VerificationCampaign]:
    for campaign in repo_verification.list_running_campaigns(db, now or _now()):
        if campaign.max_uses and (campaign.current_uses or 0) >= campaign.max_uses:
            continue
        return campaign
    return None


def campaign_discount(
    campaign: Optional[models.VerificationCampaign],
    verification_type: str,
    duration_days: int,
) -> int:
    if campaign is None:
        return 0
    applies_to = campaign.applies_to_types or []
    if applies_to and verification_type not in applies_to:
        return 0
    if campaign.min_duration_days and duration_days < campaign.min_duration_days:
        return 0
    return campaign.discount_percentage or 0


def _campaign_payload(campaign: models.VerificationCampaign, now: datetime) -> Dict[str, Any]:
    end_date = ensure_aware(campaign.end_date)
    days_remaining = math.ceil((end_date - now).total_seconds() / 86400)
    banner = campaign.banner_text or (
        f"{campaign.banner_emoji or ''} {campaign.name} - {campaign.discount_percentage}% OFF!".strip()
    )
    return {
        "id": campaign.id,
        "name": campaign.name,
        "description": campaign.description,
        "discountPercentage": campaign.discount_percentage,
        "bannerText": banner,
        "bannerEmoji": campaign.banner_emoji,
        "startDate": ensure_aware(campaign.start_date).isoformat(),
        "endDate": end_date.isoformat(),
        "daysRemaining": days_remaining,
        "appliesToTypes": campaign.applies_to_types or [],
        "minDurationDays": campaign.min_duration_days,
    }


def get_pricing_overview(db: Session, user: Optional[models.User] = None) -> Dict[str, Any]:
    now = _now()
    campaign = get_best_campaign(db, now)
    free = get_free_verification_settings(db)

    grouped: Dict[str, List[Dict[str, Any]]] = {t: [] for t in VERIFICATION_TYPES}
    for row in repo_verification.list_pricing(db):
        if row.verification_type not in grouped:
            continue
        base_price = float(row.price)
        discount = campaign_discount(campaign, row.verification_type, row.duration_days)
        grouped[row.verification_type].append({
            "id": row.id,
            "durationDays": row.duration_days,
            "durationLabel": format_duration_label(row.duration_days),
            "price": base_price,
            "discountPercentage": discount,
            "finalPrice": calculate_final_price(base_price, discount),
            "hasCampaignDiscount": discount > 0,
        })

    return {
        "individual": grouped[VERIFICATION_INDIVIDUAL],
        "business": grouped[VERIFICATION_BUSINESS],
        "freeVerification": {
            "enabled": free.enabled,
            "durationDays": free.duration_days,
            "types": free.types,
            "isEligible": free.enabled and is_eligible_for_free_verification(user),
        },
        "campaign": _campaign_payload(campaign, now) if campaign else None,
    }


def get_expected_price(db: Session, verification_type: str, duration_days: int) -> ExpectedPrice:
    pricing = repo_verification.find_pricing(db, verification_type, duration_days)
    if pricing is None:
        raise VerificationError("Invalid verification duration selected")
    campaign = get_best_campaign(db)
    discount = campaign_discount(campaign, verification_type, duration_days)
    price = float(pricing.price)
    return ExpectedPrice(
        price=price,
        discount_percentage=discount,
        final_price=calculate_final_price(price, discount),
        campaign=campaign if discount > 0 else None,
    )


def get_verification_status(db: Session, user: models.User) -> schemas.VerificationStatus:
    individual = repo_verification.latest_user_request(db, VERIFICATION_INDIVIDUAL, user.id)
    business = repo_verification.latest_user_request(db, VERIFICATION_BUSINESS, user.id)
    return schemas.VerificationStatus(
        individual_verified=bool(user.individual_verified),
        individual_verification_expires_at=user.individual_verification_expires_at,
        business_verification_status=user.business_verification_status,
        business_verification_expires_at=user.business_verification_expires_at,
        shop_slug=user.shop_slug,
        individual_request=schemas.IndividualVerificationRequest.model_validate(individual) if individual else None,
        business_request=schemas.BusinessVerificationRequest.model_validate(business) if business else None,
    )


def _is_active_until(expires_at: Optional[datetime], now: datetime) -> bool:
    return expires_at is None or ensure_aware(expires_at) > now


def _reject_duplicate_request(db: Session, verification_type: str, user: models.User) -> None:
    if repo_verification.find_user_request(db, verification_type, user.id, "pending") is not None:
        raise VerificationError("You already have a pending verification request")


def _replace_unpaid_request(db: Session, verification_type: str, user: models.User) -> None:
    """Drop an unpaid request so the new submission takes its place."""
    stale = repo_verification.find_user_request(db, verification_type, user.id, "pending_payment")
    if stale is not None:
        logger.info("verification_unpaid_request_replaced type=%s request=%s", verification_type, stale.id)
        repo_verification.delete_request(db, stale)


def _resolve_payment(
    db: Session,
    verification_type: str,
    user: models.User,
    duration_days: int,
    payment_amount: float,
) -> Dict[str, Any]:
    """Decide free vs paid and the request status/payment columns."""
    if payment_amount <= 0:
        free = get_free_verification_settings(db)
        if not free.applies_to(verification_type):
            raise VerificationError("Free verification promotion is not currently available")
        if not is_eligible_for_free_verification(user):
            raise VerificationError("You are not eligible for free verification")
        return {
            "status": "pending",
            "payment_status": "free",
            "payment_amount": 0,
            "duration_days": free.duration_days,
            "campaign": None,
        }

    if duration_days not in DURATIONS:
        raise VerificationError(f"Duration must be one of: {', '.join(str(d) for d in DURATIONS)} days")
    expected = get_expected_price(db, verification_type, duration_days)
    if abs(payment_amount - expected.final_price) > PRICE_TOLERANCE:
        raise VerificationError(
            f"Payment amount does not match expected price (NPR {expected.final_price:g})"
        )
    return {
        "status": "pending_payment",
        "payment_status": "pending",
        "payment_amount": payment_amount,
        "duration_days": duration_days,
        "campaign": expected.campaign,
    }


def _store_files(files: Dict[str, Optional[UploadFile]], subdir: str, labels: Dict[str, str]) -> Dict[str, Optional[str]]:
    stored: Dict[str, Optional[str]] = {}
    try:
        for field, upload in files.items():
            if upload is None:
                stored[field] = None
                continue
            saved = uploads.save_upload(upload, subdir, uploads.DOCUMENT_TYPES, label=labels[field])
            stored[field] = saved.file_path
    except uploads.UploadError as exc:
        for path in stored.values():
            uploads.remove_stored_file(path)
        raise VerificationError(str(exc)) from exc
    return stored


def submit_individual_verification(
    db: Session,
    user: models.User,
    *,
    full_name: str,
    id_document_type: str,
    id_document_number: Optional[str],
    duration_days: int,
    payment_amount: float,
    payment_reference: Optional[str],
    front: Optional[UploadFile],
    back: Optional[UploadFile],
    selfie: Optional[UploadFile],
) -> models.IndividualVerificationRequest:
    now = _now()
    if user.individual_verified and _is_active_until(user.individual_verification_expires_at, now):
        raise VerificationError("Your account is already verified")
    _reject_duplicate_request(db, VERIFICATION_INDIVIDUAL, user)

    if not full_name or not full_name.strip():
        raise VerificationError("Full name is required")
    if id_document_type not in ID_DOCUMENT_TYPES:
        raise VerificationError(f"Document type must be one of: {', '.join(ID_DOCUMENT_TYPES)}")
    if front is None or selfie is None:
        raise VerificationError("ID document front and selfie with ID are required")

    payment = _resolve_payment(db, VERIFICATION_INDIVIDUAL, user, duration_days, payment_amount)
    stored = _store_files(
        {"front": front, "back": back, "selfie": selfie},
        uploads.INDIVIDUAL_VERIFICATION_DIR,
        {"front": "ID document front", "back": "ID document back", "selfie": "Selfie with ID"},
    )

    _replace_unpaid_request(db, VERIFICATION_INDIVIDUAL, user)
    request = repo_verification.create_request(
        db,
        VERIFICATION_INDIVIDUAL,
        user_id=user.id,
        full_name=full_name.strip(),
        id_document_type=id_document_type,
        id_document_number=(id_document_number or "").strip() or None,
        id_document_front=stored["front"],
        id_document_back=stored["back"],
        selfie_with_id=stored["selfie"],
        status=payment["status"],
        duration_days=payment["duration_days"],
        payment_amount=payment["payment_amount"],
        payment_reference=(payment_reference or "").strip() or None,
        payment_status=payment["payment_status"],
    )
    if payment["campaign"] is not None:
        repo_verification.increment_campaign_usage(db, payment["campaign"].id)

    logger.info(
        "individual_verification_submitted user=%s request=%s status=%s days=%s amount=%s",
        user.id, request.id, request.status, request.duration_days, request.payment_amount,
    )
    return request


def submit_business_verification(
    db: Session,
    user: models.User,
    *,
    business_name: str,
    business_category: Optional[str],
    business_description: Optional[str],
    business_website: Optional[str],
    business_phone: Optional[str],
    business_address: Optional[str],
    duration_days: int,
    payment_amount: float,
    payment_reference: Optional[str],
    license_document: Optional[UploadFile],
) -> models.BusinessVerificationRequest:
    now = _now()
    if user.business_verification_status == "approved" and _is_active_until(
        user.business_verification_expires_at, now
    ):
        raise VerificationError("Your business is already verified")
    _reject_duplicate_request(db, VERIFICATION_BUSINESS, user)

    if not business_name or not business_name.strip():
        raise VerificationError("Business name is required")
    if license_document is None:
        raise VerificationError("Business license document is required")

    payment = _resolve_payment(db, VERIFICATION_BUSINESS, user, duration_days, payment_amount)
    stored = _store_files(
        {"license_document": license_document},
        uploads.BUSINESS_VERIFICATION_DIR,
        {"license_document": "Business license document"},
    )

    _replace_unpaid_request(db, VERIFICATION_BUSINESS, user)
    request = repo_verification.create_request(
        db,
        VERIFICATION_BUSINESS,
        user_id=user.id,
        business_name=business_name.strip(),
        business_license_document=stored["license_document"],
        business_category=business_category,
        business_description=business_description,
        business_website=business_website,
        business_phone=business_phone,
        business_address=business_address,
        status=payment["status"],
        duration_days=payment["duration_days"],
        payment_amount=payment["payment_amount"],
        payment_reference=(payment_reference or "").strip() or None,
        payment_status=payment["payment_status"],
    )
    if payment["campaign"] is not None:
        repo_verification.increment_campaign_usage(db, payment["campaign"].id)
    if request.status == "pending":
        mark_business_pending(db, user)

    logger.info(
        "business_verification_submitted user=%s request=%s status=%s days=%s amount=%s",
        user.id, request.id, request.status, request.duration_days, request.payment_amount,
    )
    return request


def mark_business_pending(db: Session, user: models.User) -> None:
    if user.business_verification_status != "approved":
        user.business_verification_status = "pending"
        db.commit()


def review_verification(
    db: Session,
    verification_type: str,
    request_id: int,
    action: str,
    reviewer: models.User,
    reason: Optional[str] = None,
):
    if verification_type not in VERIFICATION_TYPES:
        raise VerificationError("Invalid verification type")
    if action not in REVIEW_ACTIONS:
        raise VerificationError("Invalid action. Must be approve or reject")
    if action == "reject" and not (reason or "").strip():
        raise VerificationError("Rejection reason is required")

    request = repo_verification.get_request(db, verification_type, request_id)
    if request is None or request.status != "pending":
        raise VerificationError("Verification request not found or already reviewed", status_code=404)

    user = request.user
    now = _now()
    request.reviewed_by = reviewer.id
    request.reviewed_at = now

    if action == "approve":
        request.status = "approved"
        request.rejection_reason = None
        expires_at = now + timedelta(days=request.duration_days or DEFAULT_DURATION_DAYS)
        if verification_type == VERIFICATION_INDIVIDUAL:
            user.individual_verified = True
            user.individual_verified_at = now
            user.individual_verification_expires_at = expires_at
            user.verified_seller_name = request.full_name
            user.shop_slug = generate_shop_slug(db, request.full_name, user.id)
        else:
            user.business_verification_status = "approved"
            user.business_verified_at = now
            user.business_verification_expires_at = expires_at
            user.business_name = request.business_name
            user.shop_slug = generate_shop_slug(db, request.business_name, user.id)
    else:
        request.status = "rejected"
        request.rejection_reason = reason.strip()
        if verification_type == VERIFICATION_BUSINESS and user.business_verification_status != "approved":
            user.business_verification_status = "rejected"

    db.commit()
    db.refresh(request)

    audit.log_verification(
        db,
        actor_user_id=reviewer.id,
        verification_type=verification_type,
        request_id=request.id,
        action=audit.AuditAction.VERIFICATION_APPROVE if action == "approve" else audit.AuditAction.VERIFICATION_REJECT,
        reason=request.rejection_reason,
    )
    logger.info(
        "verification_reviewed type=%s request=%s action=%s reviewer=%s",
        verification_type, request.id, action, reviewer.id,
    )

    get_notification_service().send_verification_decision(
        user, verification_type, approved=action == "approve", reason=request.rejection_reason
    )
    return request


def list_verification_queue(
    db: Session,
    verification_type: str = "all",
    status: Optional[str] = "pending",
) -> List[schemas.VerificationQueueItem]:
    types = VERIFICATION_TYPES if verification_type in (None, "", "all") else (verification_type,)
    items: List[schemas.VerificationQueueItem] = []
    for vtype in types:
        if vtype not in VERIFICATION_TYPES:
            raise VerificationError("Invalid verification type")
        for row in repo_verification.list_requests(db, vtype, status=status):
            items.append(schemas.VerificationQueueItem(
                type=vtype,
                id=row.id,
                user_id=row.user_id,
                email=row.user.email if row.user else None,
                name=row.full_name if vtype == VERIFICATION_INDIVIDUAL else row.business_name,
                status=row.status,
                duration_days=row.duration_days,
                payment_amount=float(row.payment_amount or 0),
                payment_status=row.payment_status,
                created_at=row.created_at,
            ))
    items.sort(key=lambda item: ensure_aware(item.created_at), reverse=True)
    return items


def expire_verifications(db: Session, now: Optional[datetime] = None) -> Dict[str, int]:
    now = now or _now()
    business = (
        db.query(models.User)
        .filter(
            models.User.business_verification_status == "approved",
            models.User.business_verification_expires_at.isnot(None),
            models.User.business_verification_expires_at < now,
        )
        .update({models.User.business_verification_status: "expired"}, synchronize_session=False)
    )
    individual = (
        db.query(models.User)
        .filter(
            models.User.individual_verified.is_(True),
            models.User.individual_verification_expires_at.isnot(None),
            models.User.individual_verification_expires_at < now,
        )
        .update({models.User.individual_verified: False}, synchronize_session=False)
    )
    db.commit()
    if business or individual:
        logger.info("verification_cleanup business_expired=%s individual_expired=%s", business, individual)
    return {"businessExpired": business, "individualExpired": individual}
