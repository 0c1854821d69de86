"""
Audit logging helpers and enums.

Centralized helpers to persist normalized audit records with consistent
schema; includes convenience wrappers per target type.
"""
from __future__ import annotations
from enum import Enum
from typing import Any, Optional, Dict
from sqlalchemy.orm import Session

from bazaar.db import schemas
from bazaar.db.repositories import audits as repo_audits


class AuditAction(str, Enum):
    # Ad moderation
    AD_APPROVE = "ad_approve"
    AD_REJECT = "ad_reject"
    AD_STATUS_CHANGE = "ad_status_change"
    AD_SUSPEND = "ad_suspend"
    AD_UNSUSPEND = "ad_unsuspend"
    AD_DELETE = "ad_delete"
    AD_RESTORE = "ad_restore"
    AD_PERMANENT_DELETE = "ad_permanent_delete"
    # Reports
    REPORT_UPDATE = "report_update"
    # Verification
    VERIFICATION_APPROVE = "verification_approve"
    VERIFICATION_REJECT = "verification_reject"
    # Pricing
    PRICING_CREATE = "pricing_create"
    PRICING_UPDATE = "pricing_update"
    PRICING_DELETE = "pricing_delete"
    CATEGORY_TIER_SET = "category_tier_set"
    CATEGORY_TIER_DELETE = "category_tier_delete"
    VERIFICATION_PRICING_UPDATE = "verification_pricing_update"
    CAMPAIGN_CREATE = "campaign_create"
    # Payments
    PAYMENT_VERIFIED = "payment_verified"
    PAYMENT_FAILED = "payment_failed"
    # Platform
    EDITOR_CREATE = "editor_create"
    EDITOR_UPDATE = "editor_update"
    USER_SUSPEND = "user_suspend"
    USER_UNSUSPEND = "user_unsuspend"
    SETTING_UPDATE = "setting_update"


class AuditStatus(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"


def log(
    db: Session,
    *,
    action: AuditAction | str,
    status: AuditStatus | str = AuditStatus.SUCCESS,
    target_type: str,
    target_id: Optional[int] = None,
    actor_user_id: Optional[int],
    reason: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
):
    """Central audit logging helper.

    Ensures consistent schema and a single place for enrichment.
    """
    # Persist pure string values, not Enum reprs (avoid 'AuditAction.XYZ')
    action_value = action.value if isinstance(action, AuditAction) else str(action)
    status_value = status.value if isinstance(status, AuditStatus) else str(status)
    audit_log = schemas.AuditLogCreate(
        action_type=action_value,
        status=status_value,
        target_type=target_type,
        target_id=target_id,
        reason=reason,
        metadata=metadata or {},
    )
    return repo_audits.create_audit_log(db, audit_log, actor_user_id=actor_user_id)

__all__ = ["AuditAction", "AuditStatus", "log"]

# Convenience wrappers
def log_ad(db: Session, *, actor_user_id: int, ad_id: int, action: AuditAction, reason: Optional[str] = None, status: AuditStatus | str = AuditStatus.SUCCESS, metadata: Optional[Dict[str, Any]] = None):
    return log(
        db,
        action=action,
        status=status,
        target_type="ad",
        target_id=ad_id,
        actor_user_id=actor_user_id,
        reason=reason,
        metadata=metadata,
    )

def log_verification(db: Session, *, actor_user_id: int, verification_type: str, request_id: int, action: AuditAction, reason: Optional[str] = None):
    return log(
        db,
        action=action,
        target_type=f"{verification_type}_verification",
        target_id=request_id,
        actor_user_id=actor_user_id,
        reason=reason,
    )

def log_payment(db: Session, *, actor_user_id: Optional[int], transaction_id: int, action: AuditAction, status: AuditStatus | str = AuditStatus.SUCCESS, metadata: Optional[Dict[str, Any]] = None):
    return log(
        db,
        action=action,
        status=status,
        target_type="payment_transaction",
        target_id=transaction_id,
        actor_user_id=actor_user_id,
        metadata=metadata,
    )

def log_pricing(db: Session, *, actor_user_id: int, target_type: str, target_id: Optional[int], action: AuditAction, metadata: Optional[Dict[str, Any]] = None):
    return log(
        db,
        action=action,
        target_type=target_type,
        target_id=target_id,
        actor_user_id=actor_user_id,
        metadata=metadata,
    )

__all__.extend(["log_ad", "log_verification", "log_payment", "log_pricing"])
