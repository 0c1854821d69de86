"""
Ad report repository functions.
"""
from __future__ import annotations

from typing import List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from bazaar.db import models, schemas


def get_report(db: Session, report_id: int) -> Optional[models.AdReport]:
    return db.query(models.AdReport).filter(models.AdReport.id == report_id).first()


def find_user_report(db: Session, *, ad_id: int, reporter_id: int) -> Optional[models.AdReport]:
    return (
        db.query(models.AdReport)
        .filter(models.AdReport.ad_id == ad_id, models.AdReport.reporter_id == reporter_id)
        .first()
    )


def create_report(db: Session, payload: schemas.ReportCreate, *, reporter_id: int) -> models.AdReport:
    report = models.AdReport(
        ad_id=payload.ad_id,
        reporter_id=reporter_id,
        reason=payload.reason,
        description=payload.description,
        status="pending",
    )
    db.add(report)
    db.commit()
    db.refresh(report)
    return report


def list_user_reports(db: Session, reporter_id: int) -> List[models.AdReport]:
    return (
        db.query(models.AdReport)
        .filter(models.AdReport.reporter_id == reporter_id)
        .order_by(models.AdReport.created_at.desc(), models.AdReport.id.desc())
        .all()
    )


def list_reports(db: Session, *, status: Optional[str] = "pending", skip: int = 0, limit: int = 50) -> Tuple[List[models.AdReport], int]:
    query = db.query(models.AdReport)
    if status and status != "all":
        query = query.filter(models.AdReport.status == status)
    total = query.count()
    items = (
        query.options(joinedload(models.AdReport.ad), joinedload(models.AdReport.reporter))
        .order_by(models.AdReport.created_at.desc(), models.AdReport.id.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )
    return items, total


def transition_reports(db: Session, *, ad_id: int, from_status: str, to_status: str, reviewed_by: Optional[int] = None) -> int:
    """Move every report on an ad from one status to another; returns rows touched."""
    values = {models.AdReport.status: to_status}
    if reviewed_by is not None:
        values[models.AdReport.reviewed_by] = reviewed_by
    count = (
        db.query(models.AdReport)
        .filter(models.AdReport.ad_id == ad_id, models.AdReport.status == from_status)
        .update(values, synchronize_session=False)
    )
    db.commit()
    return count


def update_report(db: Session, report: models.AdReport, *, status: str, admin_notes: Optional[str], reviewed_by: int) -> models.AdReport:
    report.status = status
    if admin_notes is not None:
        report.admin_notes = admin_notes
    report.reviewed_by = reviewed_by
    db.commit()
    db.refresh(report)
    return report


def count_by_status(db: Session, status: str) -> int:
    return db.query(func.count(models.AdReport.id)).filter(models.AdReport.status == status).scalar() or 0
