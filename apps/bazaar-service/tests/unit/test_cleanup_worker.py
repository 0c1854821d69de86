from datetime import datetime, timedelta, timezone

from sqlalchemy.exc import OperationalError

from bazaar.db import database, models
from bazaar.workers import cleanup_worker


class _TrackingSession:
    """Wraps a real session and records close()."""

    def __init__(self):
        self._session = database.SessionLocal()
        self.closed = False

    def __getattr__(self, name):
        return getattr(self._session, name)

    def close(self):
        self.closed = True
        self._session.close()


def test_run_cleanup_expires_promotions_and_verifications(db_session, seller, user_factory, ad_factory):
    past = datetime.now(timezone.utc) - timedelta(days=1)
    ad = ad_factory(seller, is_featured=True, featured_until=past)
    db_session.add(models.AdPromotion(
        ad_id=ad.id, user_id=seller.id, promotion_type="featured", duration_days=3,
        price_paid=1000, account_type="individual", starts_at=past - timedelta(days=3),
        expires_at=past, is_active=True,
    ))
    user_factory(individual_verified=True, individual_verification_expires_at=past)
    db_session.commit()

    holder = {}

    def factory():
        holder["session"] = _TrackingSession()
        return holder["session"]

    summary = cleanup_worker.run_cleanup(session_factory=factory)

    assert summary["promotions"] == {"deactivated": 1, "flagsCleared": 1, "ok": True}
    assert summary["verifications"] == {"businessExpired": 0, "individualExpired": 1, "ok": True}
    assert holder["session"].closed
    db_session.expire_all()
    assert db_session.get(models.Ad, ad.id).is_featured is False


def test_run_cleanup_respects_disable_flags(monkeypatch):
    monkeypatch.setenv("PROMOTION_CLEANUP_ENABLED", "false")
    monkeypatch.setenv("VERIFICATION_CLEANUP_ENABLED", "0")
    summary = cleanup_worker.run_cleanup(session_factory=database.SessionLocal)
    assert summary == {"promotions": None, "verifications": None}


def test_run_cleanup_reports_task_errors(monkeypatch):
    def broken(db):
        raise OperationalError("UPDATE users", {}, Exception("database is locked"))

    monkeypatch.setattr(cleanup_worker, "expire_verifications", broken)
    monkeypatch.setenv("PROMOTION_CLEANUP_ENABLED", "false")
    summary = cleanup_worker.run_cleanup(session_factory=database.SessionLocal)
    assert summary["verifications"]["ok"] is False
    assert "database is locked" in summary["verifications"]["error"]
