"""
Ad report endpoints for signed-in users.
"""
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from bazaar.db import schemas
from bazaar.db.database import get_db
from bazaar.db.repositories import ads as repo_ads
from bazaar.db.repositories import reports as repo_reports
from bazaar.api.deps import get_current_user_context

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reports", tags=["reports"])

REPORT_REASONS = ("spam", "fraud", "inappropriate", "duplicate", "misleading", "other")


@router.post("", response_model=schemas.Report, status_code=status.HTTP_201_CREATED)
def create_report_endpoint(
    payload: schemas.ReportCreate,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    user, _ctx = user_context
    if payload.reason not in REPORT_REASONS:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid reason. Must be one of: {', '.join(REPORT_REASONS)}",
        )
    ad = repo_ads.get_ad(db, payload.ad_id)
    if ad is None or ad.deleted_at is not None:
        raise HTTPException(status_code=404, detail="Ad not found")
    if ad.user_id == user.id:
        raise HTTPException(status_code=400, detail="You cannot report your own ad")
    if repo_reports.find_user_report(db, ad_id=ad.id, reporter_id=user.id):
        raise HTTPException(status_code=400, detail="You have already reported this ad")

    report = repo_reports.create_report(db, payload, reporter_id=user.id)
    logger.info("ad_reported ad=%s reporter=%s reason=%s", ad.id, user.id, payload.reason)
    return report


@router.get("/mine", response_model=List[schemas.Report])
def list_my_reports(
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    user, _ctx = user_context
    return repo_reports.list_user_reports(db, user.id)
