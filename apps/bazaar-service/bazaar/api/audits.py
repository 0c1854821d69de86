"""
Audit log API endpoints.

Super admins can page through the audit trail with simple filters.
"""
from typing import Optional, List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from bazaar.db.database import get_db
from bazaar.db import schemas
from bazaar.db.repositories import audits as repo_audits
from bazaar.api.deps import require_super_admin

router = APIRouter(prefix="/audits", tags=["audits"])


@router.get("", response_model=List[schemas.AuditLog])
def list_audit_logs(
    user_id: Optional[int] = None,
    action_type: Optional[str] = None,
    status: Optional[str] = None,
    target_type: Optional[str] = None,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    user_context=Depends(require_super_admin),
):
    return repo_audits.get_audit_logs(
        db,
        user_id=user_id,
        action_type=action_type,
        status=status,
        target_type=target_type,
        skip=max(skip, 0),
        limit=min(max(limit, 1), 500),
    )
