from datetime import datetime
from typing import Optional

from .common import ApiModel


class ReportBase(ApiModel):
    ad_id: int
    reason: str
    description: Optional[str] = None


class ReportCreate(ReportBase):
    pass


class ReportUpdate(ApiModel):
    status: str
    admin_notes: Optional[str] = None


class Report(ReportBase):
    id: int
    reporter_id: int
    status: str
    admin_notes: Optional[str] = None
    created_at: datetime


class EditorReport(Report):
    ad_title: Optional[str] = None
    reporter_email: Optional[str] = None
