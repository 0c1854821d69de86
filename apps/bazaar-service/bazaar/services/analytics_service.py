"""
Platform analytics for the super-admin dashboard.

Figures are computed for a reporting period (a trailing day range, a
calendar month or a calendar year) and compared with the period before it.
Time series are bucketed in Python so the same code runs on PostgreSQL and
SQLite.
"""
from __future__ import annotations

import calendar
from collections import Counter
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from bazaar.db import models
from bazaar.db.models.base import ensure_aware

from .promotion_service import ACCOUNT_TYPES, get_account_type

REVENUE_STATUSES = ("verified", "completed", "paid", "success", "approved")
RANGE_DAYS = {"7d": 7, "30d": 30, "90d": 90}
DEFAULT_RANGE_DAYS = 30
TOP_LIMIT = 5


class AnalyticsError(ValueError):
    pass


@dataclass
class ReportPeriod:
    kind: str  # 'days' | 'month' | 'year'
    label: str
    start: datetime
    end: datetime
    prev_start: datetime
    prev_end: datetime
    days: int


def calc_change(current: float, previous: float) -> int:
    if previous == 0:
        return 100 if current > 0 else 0
    return round((current - previous) / previous * 100)


def _day_start(d: date) -> datetime:
    return datetime.combine(d, time.min, tzinfo=timezone.utc)


def _day_end(d: date) -> datetime:
    return datetime.combine(d, time.max, tzinfo=timezone.utc)


def resolve_period(
    range_param: Optional[str] = None,
    year: Optional[int] = None,
    month: Optional[int] = None,
    today: Optional[date] = None,
) -> ReportPeriod:
    if year is not None:
        if month is not None:
            if not 1 <= month <= 12:
                raise AnalyticsError("Month must be between 1 and 12")
            last_day = calendar.monthrange(year, month)[1]
            prev_year, prev_month = (year - 1, 12) if month == 1 else (year, month - 1)
            prev_last = calendar.monthrange(prev_year, prev_month)[1]
            return ReportPeriod(
                kind="month",
                label=f"{calendar.month_name[month]} {year}",
                start=_day_start(date(year, month, 1)),
                end=_day_end(date(year, month, last_day)),
                prev_start=_day_start(date(prev_year, prev_month, 1)),
                prev_end=_day_end(date(prev_year, prev_month, prev_last)),
                days=last_day,
            )
        return ReportPeriod(
            kind="year",
            label=f"Year {year}",
            start=_day_start(date(year, 1, 1)),
            end=_day_end(date(year, 12, 31)),
            prev_start=_day_start(date(year - 1, 1, 1)),
            prev_end=_day_end(date(year - 1, 12, 31)),
            days=365,
        )

    days = RANGE_DAYS.get(range_param or "", DEFAULT_RANGE_DAYS)
    today = today or datetime.now(timezone.utc).date()
    start_day = today - timedelta(days=days - 1)
    prev_end_day = start_day - timedelta(days=1)
    prev_start_day = prev_end_day - timedelta(days=days - 1)
    return ReportPeriod(
        kind="days",
        label=f"Last {days} Days",
        start=_day_start(start_day),
        end=_day_end(today),
        prev_start=_day_start(prev_start_day),
        prev_end=_day_end(prev_end_day),
        days=days,
    )


def _between(column, start: datetime, end: datetime):
    return column.between(start, end)


def _revenue(db: Session, start: datetime, end: datetime) -> float:
    total = (
        db.query(func.coalesce(func.sum(models.PaymentTransaction.amount), 0))
        .filter(
            models.PaymentTransaction.status.in_(REVENUE_STATUSES),
            _between(models.PaymentTransaction.created_at, start, end),
        )
        .scalar()
    )
    return float(total or 0)


def _count(query) -> int:
    return query.scalar() or 0


def build_chart(db: Session, period: ReportPeriod) -> Dict[str, List[Any]]:
    users = [
        ensure_aware(ts) for (ts,) in db.query(models.User.created_at)
        .filter(_between(models.User.created_at, period.start, period.end))
    ]
    ads = [
        ensure_aware(ts) for (ts,) in db.query(models.Ad.created_at)
        .filter(models.Ad.deleted_at.is_(None), _between(models.Ad.created_at, period.start, period.end))
    ]
    payments = [
        (ensure_aware(ts), float(amount or 0)) for ts, amount in db.query(
            models.PaymentTransaction.created_at, models.PaymentTransaction.amount
        ).filter(
            models.PaymentTransaction.status.in_(REVENUE_STATUSES),
            _between(models.PaymentTransaction.created_at, period.start, period.end),
        )
    ]

    if period.kind == "year":
        keys = list(range(1, 13))
        labels = [calendar.month_abbr[m] for m in keys]

        def bucket(ts):
            return ts.month
    else:
        first = period.start.date()
        keys = [first + timedelta(days=i) for i in range((period.end.date() - first).days + 1)]
        if period.days <= 7:
            labels = [d.strftime("%a") for d in keys]
        else:
            labels = [f"{d.strftime('%b')} {d.day}" for d in keys]

        def bucket(ts):
            return ts.date()

    user_counts = Counter(bucket(ts) for ts in users)
    ad_counts = Counter(bucket(ts) for ts in ads)
    revenue: Dict[Any, float] = {}
    for ts, amount in payments:
        revenue[bucket(ts)] = revenue.get(bucket(ts), 0.0) + amount

    return {
        "labels": labels,
        "users": [user_counts.get(k, 0) for k in keys],
        "ads": [ad_counts.get(k, 0) for k in keys],
        "revenue": [round(revenue.get(k, 0.0), 2) for k in keys],
    }


def _top_categories(db: Session, period: ReportPeriod) -> List[Dict[str, Any]]:
    rows = (
        db.query(
            models.Ad.category_id,
            func.count(models.Ad.id).label("ad_count"),
            func.coalesce(func.sum(models.Ad.view_count), 0).label("views"),
        )
        .filter(
            models.Ad.deleted_at.is_(None),
            models.Ad.category_id.isnot(None),
            _between(models.Ad.created_at, period.start, period.end),
        )
        .group_by(models.Ad.category_id)
        .order_by(func.count(models.Ad.id).desc(), models.Ad.category_id)
        .limit(TOP_LIMIT)
        .all()
    )
    names = dict(
        db.query(models.Category.id, models.Category.name)
        .filter(models.Category.id.in_([r.category_id for r in rows]))
        .all()
    ) if rows else {}
    return [
        {"id": r.category_id, "name": names.get(r.category_id, "Uncategorized"), "adCount": r.ad_count, "views": int(r.views or 0)}
        for r in rows
    ]


def _top_locations(db: Session, period: ReportPeriod) -> List[Dict[str, Any]]:
    rows = (
        db.query(models.Ad.location_id, func.count(models.Ad.id).label("ad_count"))
        .filter(
            models.Ad.deleted_at.is_(None),
            models.Ad.location_id.isnot(None),
            _between(models.Ad.created_at, period.start, period.end),
        )
        .group_by(models.Ad.location_id)
        .order_by(func.count(models.Ad.id).desc(), models.Ad.location_id)
        .limit(TOP_LIMIT)
        .all()
    )
    names = dict(
        db.query(models.Location.id, models.Location.name)
        .filter(models.Location.id.in_([r.location_id for r in rows]))
        .all()
    ) if rows else {}
    return [
        {"id": r.location_id, "name": names.get(r.location_id, "Unknown"), "adCount": r.ad_count}
        for r in rows
    ]


def _verification_counts(db: Session, period: ReportPeriod) -> Dict[str, int]:
    counts: Dict[str, int] = {}
    for prefix, model in (
        ("Individual", models.IndividualVerificationRequest),
        ("Business", models.BusinessVerificationRequest),
    ):
        for status in ("pending", "approved", "rejected"):
            counts[f"{status}{prefix}"] = _count(
                db.query(func.count(model.id)).filter(model.status == status)
            )
        counts[f"new{prefix}Requests"] = _count(
            db.query(func.count(model.id)).filter(_between(model.created_at, period.start, period.end))
        )
        counts[f"approved{prefix}InPeriod"] = _count(
            db.query(func.count(model.id)).filter(
                model.status == "approved", _between(model.reviewed_at, period.start, period.end)
            )
        )
    return counts


def get_analytics(
    db: Session,
    range_param: Optional[str] = None,
    year: Optional[int] = None,
    month: Optional[int] = None,
) -> Dict[str, Any]:
    period = resolve_period(range_param, year, month)

    total_users = _count(db.query(func.count(models.User.id)))
    active_users = _count(
        db.query(func.count(models.User.id)).filter(_between(models.User.last_login_at, period.start, period.end))
    )
    new_users = _count(
        db.query(func.count(models.User.id)).filter(_between(models.User.created_at, period.start, period.end))
    )
    prev_new_users = _count(
        db.query(func.count(models.User.id)).filter(_between(models.User.created_at, period.prev_start, period.prev_end))
    )

    live_ads = db.query(func.count(models.Ad.id)).filter(models.Ad.deleted_at.is_(None))
    total_ads = _count(live_ads)
    active_ads = _count(live_ads.filter(models.Ad.status.in_(("approved", "active"))))
    new_ads = _count(live_ads.filter(_between(models.Ad.created_at, period.start, period.end)))
    prev_new_ads = _count(live_ads.filter(_between(models.Ad.created_at, period.prev_start, period.prev_end)))

    total_views = int(
        db.query(func.coalesce(func.sum(models.Ad.view_count), 0)).filter(models.Ad.deleted_at.is_(None)).scalar() or 0
    )
    period_views = int(
        db.query(func.coalesce(func.sum(models.Ad.view_count), 0))
        .filter(models.Ad.deleted_at.is_(None), _between(models.Ad.created_at, period.start, period.end))
        .scalar() or 0
    )

    revenue = _revenue(db, period.start, period.end)
    prev_revenue = _revenue(db, period.prev_start, period.prev_end)

    users_by_type = Counter({account_type: 0 for account_type in ACCOUNT_TYPES})
    for user in db.query(models.User).filter(_between(models.User.created_at, period.start, period.end)):
        users_by_type[get_account_type(user)] += 1

    ads_by_status = (
        db.query(models.Ad.status, func.count(models.Ad.id))
        .filter(models.Ad.deleted_at.is_(None), _between(models.Ad.created_at, period.start, period.end))
        .group_by(models.Ad.status)
        .all()
    )

    revenue_by_type = (
        db.query(
            models.PaymentTransaction.payment_type,
            func.coalesce(func.sum(models.PaymentTransaction.amount), 0),
            func.count(models.PaymentTransaction.id),
        )
        .filter(
            models.PaymentTransaction.status.in_(REVENUE_STATUSES),
            _between(models.PaymentTransaction.created_at, period.start, period.end),
        )
        .group_by(models.PaymentTransaction.payment_type)
        .all()
    )

    verifications = _verification_counts(db, period)
    days = period.days

    return {
        "period": {
            "type": period.kind,
            "label": period.label,
            "startDate": period.start.isoformat(),
            "endDate": period.end.isoformat(),
        },
        "overview": {
            "totalUsers": total_users,
            "activeUsers": active_users,
            "newUsers": new_users,
            "userGrowth": calc_change(new_users, prev_new_users),
            "totalAds": total_ads,
            "activeAds": active_ads,
            "newAds": new_ads,
            "adGrowth": calc_change(new_ads, prev_new_ads),
            "totalViews": total_views,
            "periodViews": period_views,
            "totalRevenue": revenue,
            "revenueGrowth": calc_change(revenue, prev_revenue),
        },
        "verifications": verifications,
        "charts": build_chart(db, period),
        "usersByType": [{"type": t, "count": c} for t, c in users_by_type.items()],
        "adsByStatus": [{"status": status or "unknown", "count": count} for status, count in ads_by_status],
        "topCategories": _top_categories(db, period),
        "topLocations": _top_locations(db, period),
        "revenueByType": [
            {"type": payment_type or "other", "amount": float(amount or 0), "count": count}
            for payment_type, amount, count in revenue_by_type
        ],
        "summary": {
            "totalNewUsers": new_users,
            "totalNewAds": new_ads,
            "totalRevenue": revenue,
            "totalTransactions": sum(count for _, _, count in revenue_by_type),
            "verificationsProcessed": verifications["approvedBusinessInPeriod"] + verifications["approvedIndividualInPeriod"],
            "avgRevenuePerDay": round(revenue / days) if days else 0,
            "avgAdsPerDay": round(new_ads / days) if days else 0,
            "avgUsersPerDay": round(new_users / days) if days else 0,
        },
    }
