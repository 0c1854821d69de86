"""
Editor moderation endpoints.

Ad review (approve/reject, suspend, soft delete, restore), user
suspension, report triage, dashboard counters and the verification
review queue. Every route needs
the editor role; permanent deletion additionally needs super admin.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from bazaar import audit
from bazaar.db import models, schemas
from bazaar.db.database import get_db
from bazaar.db.repositories import ads as repo_ads
from bazaar.db.repositories import reports as repo_reports
from bazaar.db.repositories import users as repo_users
from bazaar.db.repositories import verification as repo_verification
from bazaar.api.deps import require_editor, require_super_admin
from bazaar.services.uploads import remove_stored_file
from bazaar.services.verification_service import (
    VERIFICATION_BUSINESS,
    VERIFICATION_INDIVIDUAL,
    VerificationError,
    list_verification_queue,
    review_verification,
)
from bazaar.utils.role_permissions import STAFF_ROLES, actor_type_for_role

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/editor", tags=["editor"])

MODERATION_STATUSES = ("approved", "rejected", "pending")
REPORT_REVIEW_STATUSES = ("reviewed", "resolved", "dismissed")
INCLUDE_DELETED_VALUES = ("false", "true", "only")
USER_STATUS_FILTERS = ("active", "suspended")
USER_SUSPENSION_PREFIX = "User suspended: "

_STATUS_ACTIONS = {
    "approved": audit.AuditAction.AD_APPROVE,
    "rejected": audit.AuditAction.AD_REJECT,
}


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _actor_type(current_user: Dict[str, Any]) -> str:
    return actor_type_for_role(current_user.get("role") or "")


def _get_ad_or_404(db: Session, ad_id: int) -> models.Ad:
    ad = repo_ads.get_ad(db, ad_id)
    if ad is None:
        raise HTTPException(status_code=404, detail="Ad not found")
    return ad


def _record(db: Session, ad: models.Ad, current_user: Dict[str, Any], *, history_action: str,
            audit_action: audit.AuditAction, reason: Optional[str] = None, metadata: Optional[Dict[str, Any]] = None) -> None:
    repo_ads.add_review_history(
        db,
        ad_id=ad.id,
        action=history_action,
        actor_id=current_user["id"],
        actor_type=_actor_type(current_user),
        reason=reason,
    )
    audit.log_ad(
        db,
        actor_user_id=current_user["id"],
        ad_id=ad.id,
        action=audit_action,
        reason=reason,
        metadata=metadata,
    )
    logger.info(
        "ad_moderated ad=%s action=%s actor=%s type=%s",
        ad.id, history_action, current_user["id"], _actor_type(current_user),
    )


# ----------------------------------------------------------------------------
# Ads
# ----------------------------------------------------------------------------

@router.get("/ads", response_model=schemas.AdList)
def list_ads_for_review(
    status: str = "pending",
    search: Optional[str] = None,
    include_deleted: str = Query(default="false", alias="includeDeleted"),
    page: int = 1,
    limit: int = 20,
    db: Session = Depends(get_db),
    user_context=Depends(require_editor),
):
    if include_deleted not in INCLUDE_DELETED_VALUES:
        include_deleted = "false"
    page = max(page, 1)
    limit = min(max(limit, 1), 100)
    ads, total = repo_ads.list_ads_for_review(
        db,
        status=status,
        search=search,
        include_deleted=include_deleted,
        skip=(page - 1) * limit,
        limit=limit,
    )
    return schemas.AdList(
        ads=[schemas.Ad.model_validate(ad) for ad in ads],
        pagination=schemas.build_pagination(total, page, limit),
    )


@router.put("/ads/{ad_id}/status", response_model=schemas.Ad)
def update_ad_status(
    ad_id: int,
    payload: schemas.AdStatusUpdate,
    db: Session = Depends(get_db),
    user_context=Depends(require_editor),
):
    _user, current_user = user_context
    if payload.status not in MODERATION_STATUSES:
        raise HTTPException(status_code=400, detail=f"Invalid status. Must be one of: {', '.join(MODERATION_STATUSES)}")
    reason = (payload.reason or "").strip() or None
    if payload.status == "rejected" and not reason:
        raise HTTPException(status_code=400, detail="Rejection reason is required")

    ad = _get_ad_or_404(db, ad_id)
    if ad.deleted_at is not None:
        raise HTTPException(status_code=400, detail="Cannot change the status of a deleted ad")
    previous = ad.status
    ad.status = payload.status
    ad.status_reason = reason
    ad.reviewed_at = _now()
    ad.reviewed_by = current_user["id"]
    db.commit()
    db.refresh(ad)

    _record(
        db, ad, current_user,
        history_action=payload.status,
        audit_action=_STATUS_ACTIONS.get(payload.status, audit.AuditAction.AD_STATUS_CHANGE),
        reason=reason,
        metadata={"from": previous, "to": payload.status},
    )
    return ad


@router.post("/ads/{ad_id}/suspend", response_model=schemas.Ad)
def suspend_ad(
    ad_id: int,
    payload: schemas.AdSuspendRequest,
    db: Session = Depends(get_db),
    user_context=Depends(require_editor),
):
    _user, current_user = user_context
    reason = (payload.reason or "").strip()
    if not reason:
        raise HTTPException(status_code=400, detail="Suspension reason is required")
    if payload.duration is not None and payload.duration <= 0:
        raise HTTPException(status_code=400, detail="Suspension duration must be a positive number of days")

    ad = _get_ad_or_404(db, ad_id)
    if ad.deleted_at is not None:
        raise HTTPException(status_code=400, detail="Cannot suspend a deleted ad")
    now = _now()
    ad.status = "suspended"
    ad.suspended_at = now
    ad.suspended_until = now + timedelta(days=payload.duration) if payload.duration else None
    ad.suspended_by = current_user["id"]
    ad.suspension_reason = reason
    db.commit()
    db.refresh(ad)

    _record(
        db, ad, current_user,
        history_action="suspended",
        audit_action=audit.AuditAction.AD_SUSPEND,
        reason=reason,
        metadata={"durationDays": payload.duration},
    )
    return ad


@router.post("/ads/{ad_id}/unsuspend", response_model=schemas.Ad)
def unsuspend_ad(
    ad_id: int,
    db: Session = Depends(get_db),
    user_context=Depends(require_editor),
):
    _user, current_user = user_context
    ad = _get_ad_or_404(db, ad_id)
    if ad.status != "suspended":
        raise HTTPException(status_code=400, detail="Ad is not suspended")
    ad.status = "approved"
    ad.suspended_at = None
    ad.suspended_until = None
    ad.suspended_by = None
    ad.suspension_reason = None
    db.commit()
    db.refresh(ad)

    _record(db, ad, current_user, history_action="unsuspended", audit_action=audit.AuditAction.AD_UNSUSPEND)
    return ad


@router.delete("/ads/{ad_id}", response_model=schemas.Ad)
def delete_ad(
    ad_id: int,
    payload: Optional[schemas.AdDeleteRequest] = None,
    db: Session = Depends(get_db),
    user_context=Depends(require_editor),
):
    _user, current_user = user_context
    ad = _get_ad_or_404(db, ad_id)
    if ad.deleted_at is not None:
        raise HTTPException(status_code=400, detail="Ad is already deleted")
    reason = ((payload.reason if payload else None) or "").strip() or None
    ad = repo_ads.soft_delete_ad(db, ad, deleted_by=current_user["id"], reason=reason)
    resolved = repo_reports.transition_reports(
        db, ad_id=ad.id, from_status="pending", to_status="resolved", reviewed_by=current_user["id"]
    )
    _record(
        db, ad, current_user,
        history_action="deleted",
        audit_action=audit.AuditAction.AD_DELETE,
        reason=reason,
        metadata={"reportsResolved": resolved},
    )
    return ad


@router.post("/ads/{ad_id}/restore", response_model=schemas.Ad)
def restore_ad(
    ad_id: int,
    db: Session = Depends(get_db),
    user_context=Depends(require_editor),
):
    _user, current_user = user_context
    ad = _get_ad_or_404(db, ad_id)
    if ad.deleted_at is None:
        raise HTTPException(status_code=400, detail="Ad is not deleted")
    ad.deleted_at = None
    ad.deleted_by = None
    ad.deletion_reason = None
    ad.status = "approved"
    db.commit()
    db.refresh(ad)
    restored = repo_reports.transition_reports(db, ad_id=ad.id, from_status="resolved", to_status="restored")
    _record(
        db, ad, current_user,
        history_action="restored",
        audit_action=audit.AuditAction.AD_RESTORE,
        metadata={"reportsRestored": restored},
    )
    return ad


@router.delete("/ads/{ad_id}/permanent")
def permanently_delete_ad(
    ad_id: int,
    db: Session = Depends(get_db),
    user_context=Depends(require_super_admin),
):
    _user, current_user = user_context
    ad = _get_ad_or_404(db, ad_id)
    title = ad.title
    image_paths = [image.file_path for image in ad.images]
    repo_ads.hard_delete_ad(db, ad)
    for path in image_paths:
        remove_stored_file(path)
    audit.log_ad(
        db,
        actor_user_id=current_user["id"],
        ad_id=ad_id,
        action=audit.AuditAction.AD_PERMANENT_DELETE,
        metadata={"title": title, "images": len(image_paths)},
    )
    logger.warning("ad_permanently_deleted ad=%s actor=%s", ad_id, current_user["id"])
    return {"success": True, "message": "Ad permanently deleted"}


@router.get("/ads/{ad_id}/history", response_model=List[schemas.ReviewHistoryEntry])
def ad_review_history(
    ad_id: int,
    db: Session = Depends(get_db),
    user_context=Depends(require_editor),
):
    _get_ad_or_404(db, ad_id)
    return repo_ads.get_review_history(db, ad_id)


# ----------------------------------------------------------------------------
# Users
# ----------------------------------------------------------------------------

def _get_user_or_404(db: Session, user_id: int) -> models.User:
    user = repo_users.get_user(db, user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.get("/users", response_model=schemas.UserList)
def list_users(
    search: Optional[str] = None,
    status: Optional[str] = None,
    page: int = 1,
    limit: int = 20,
    db: Session = Depends(get_db),
    user_context=Depends(require_editor),
):
    if status not in USER_STATUS_FILTERS:
        status = None
    page = max(page, 1)
    limit = min(max(limit, 1), 100)
    users, total = repo_users.list_users(
        db, search=search, status=status, skip=(page - 1) * limit, limit=limit
    )
    ad_counts = repo_ads.count_user_ads(db, [u.id for u in users])
    return schemas.UserList(
        users=[
            schemas.ManagedUser.model_validate(u).model_copy(update={"ad_count": ad_counts.get(u.id, 0)})
            for u in users
        ],
        pagination=schemas.build_pagination(total, page, limit),
    )


@router.put("/users/{user_id}/suspend")
def suspend_user(
    user_id: int,
    payload: schemas.UserSuspendRequest,
    db: Session = Depends(get_db),
    user_context=Depends(require_editor),
):
    _user, current_user = user_context
    reason = (payload.reason or "").strip()
    if not reason:
        raise HTTPException(status_code=400, detail="Suspension reason is required")
    if payload.duration is not None and payload.duration <= 0:
        raise HTTPException(status_code=400, detail="Suspension duration must be a positive number of days")

    target = _get_user_or_404(db, user_id)
    if target.role in STAFF_ROLES:
        raise HTTPException(status_code=400, detail="Staff accounts cannot be suspended here")
    now = _now()
    target = repo_users.update_user(
        db,
        target,
        is_suspended=True,
        suspended_at=now,
        suspended_by=current_user["id"],
        suspended_until=now + timedelta(days=payload.duration) if payload.duration else None,
        suspension_reason=reason,
    )
    ads_suspended = repo_ads.suspend_user_ads(db, target.id, f"{USER_SUSPENSION_PREFIX}{reason}")

    audit.log(
        db,
        action=audit.AuditAction.USER_SUSPEND,
        target_type="user",
        target_id=target.id,
        actor_user_id=current_user["id"],
        reason=reason,
        metadata={"durationDays": payload.duration, "adsSuspended": ads_suspended},
    )
    logger.info("user_suspended user=%s actor=%s ads=%s", target.id, current_user["id"], ads_suspended)
    return {
        "success": True,
        "message": f"User suspended successfully. {ads_suspended} ads have been hidden.",
        "user": schemas.ManagedUser.model_validate(target),
        "adsSuspended": ads_suspended,
    }


@router.put("/users/{user_id}/unsuspend")
def unsuspend_user(
    user_id: int,
    db: Session = Depends(get_db),
    user_context=Depends(require_editor),
):
    _user, current_user = user_context
    target = _get_user_or_404(db, user_id)
    if not target.is_suspended:
        raise HTTPException(status_code=400, detail="User is not suspended")
    target = repo_users.update_user(
        db,
        target,
        is_suspended=False,
        suspended_at=None,
        suspended_by=None,
        suspended_until=None,
        suspension_reason=None,
    )
    ads_restored = repo_ads.restore_user_ads(db, target.id, USER_SUSPENSION_PREFIX)

    audit.log(
        db,
        action=audit.AuditAction.USER_UNSUSPEND,
        target_type="user",
        target_id=target.id,
        actor_user_id=current_user["id"],
        metadata={"adsRestored": ads_restored},
    )
    logger.info("user_unsuspended user=%s actor=%s ads=%s", target.id, current_user["id"], ads_restored)
    return {
        "success": True,
        "message": f"User unsuspended successfully. {ads_restored} ads have been restored.",
        "user": schemas.ManagedUser.model_validate(target),
        "adsRestored": ads_restored,
    }


# ----------------------------------------------------------------------------
# Reports
# ----------------------------------------------------------------------------

def _editor_report(report: models.AdReport) -> schemas.EditorReport:
    return schemas.EditorReport.model_validate(report).model_copy(update={
        "ad_title": report.ad.title if report.ad else None,
        "reporter_email": report.reporter.email if report.reporter else None,
    })


@router.get("/reports", response_model=List[schemas.EditorReport])
def list_reports(
    status: str = "pending",
    skip: int = 0,
    limit: int = 50,
    db: Session = Depends(get_db),
    user_context=Depends(require_editor),
):
    reports, _total = repo_reports.list_reports(db, status=status, skip=skip, limit=limit)
    return [_editor_report(r) for r in reports]


@router.put("/reports/{report_id}", response_model=schemas.EditorReport)
def update_report(
    report_id: int,
    payload: schemas.ReportUpdate,
    db: Session = Depends(get_db),
    user_context=Depends(require_editor),
):
    _user, current_user = user_context
    if payload.status not in REPORT_REVIEW_STATUSES:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid status. Must be one of: {', '.join(REPORT_REVIEW_STATUSES)}",
        )
    report = repo_reports.get_report(db, report_id)
    if report is None:
        raise HTTPException(status_code=404, detail="Report not found")
    report = repo_reports.update_report(
        db, report, status=payload.status, admin_notes=payload.admin_notes, reviewed_by=current_user["id"]
    )
    audit.log(
        db,
        action=audit.AuditAction.REPORT_UPDATE,
        target_type="ad_report",
        target_id=report.id,
        actor_user_id=current_user["id"],
        metadata={"status": payload.status},
    )
    return _editor_report(report)


# ----------------------------------------------------------------------------
# Dashboard + verification queue
# ----------------------------------------------------------------------------

@router.get("/stats", response_model=schemas.EditorStats)
def editor_stats(
    db: Session = Depends(get_db),
    user_context=Depends(require_editor),
):
    return schemas.EditorStats(
        pending_ads=repo_ads.count_by_status(db, "pending"),
        approved_ads=repo_ads.count_by_status(db, "approved"),
        suspended_ads=repo_ads.count_by_status(db, "suspended"),
        pending_reports=repo_reports.count_by_status(db, "pending"),
        pending_individual_verifications=repo_verification.count_by_status(db, VERIFICATION_INDIVIDUAL, "pending"),
        pending_business_verifications=repo_verification.count_by_status(db, VERIFICATION_BUSINESS, "pending"),
    )


@router.get("/verifications", response_model=List[schemas.VerificationQueueItem])
def list_verifications(
    type: str = "all",
    status: str = "pending",
    db: Session = Depends(get_db),
    user_context=Depends(require_editor),
):
    try:
        return list_verification_queue(db, type, status)
    except VerificationError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.message)


@router.post("/verifications/{verification_type}/{request_id}/{action}")
def review_verification_endpoint(
    verification_type: str,
    request_id: int,
    action: str,
    payload: Optional[schemas.VerificationReviewRequest] = None,
    db: Session = Depends(get_db),
    user_context=Depends(require_editor),
):
    user, _ctx = user_context
    try:
        request = review_verification(
            db,
            verification_type,
            request_id,
            action,
            reviewer=user,
            reason=payload.reason if payload else None,
        )
    except VerificationError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.message)
    return {
        "success": True,
        "message": f"Verification {'approved' if action == 'approve' else 'rejected'} successfully",
        "status": request.status,
        "id": request.id,
        "type": verification_type,
    }
