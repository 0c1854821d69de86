import pytest

from bazaar.db import models
from bazaar.services import verification_service


class _RecordingNotifier:
    def __init__(self):
        self.calls = []

    def send_verification_decision(self, user, verification_type, approved, reason=None):
        self.calls.append((user.id, verification_type, approved, reason))
        return {"success": True}


@pytest.fixture
def notifier(monkeypatch):
    recorder = _RecordingNotifier()
    monkeypatch.setattr(verification_service, "get_notification_service", lambda: recorder)
    return recorder


@pytest.fixture
def editor_headers(editor, auth_headers):
    return auth_headers(editor)


def _audit_actions(db_session):
    return [row.action_type for row in db_session.query(models.AuditLog).order_by(models.AuditLog.id).all()]


def test_editor_routes_require_staff(client, seller, auth_headers):
    resp = client.get("/editor/ads", headers=auth_headers(seller))
    assert resp.status_code == 403
    assert resp.json()["detail"] == "Editor privileges required"
    assert client.get("/editor/stats").status_code == 401


def test_review_queue_lists_pending_by_default(client, seller, ad_factory, editor_headers):
    ad_factory(seller, title="Needs review", status="pending")
    ad_factory(seller, title="Already live")
    gone = ad_factory(seller, title="Removed", status="pending")
    client.delete(f"/editor/ads/{gone.id}", headers=editor_headers)

    pending = client.get("/editor/ads", headers=editor_headers).json()
    assert [a["title"] for a in pending["ads"]] == ["Needs review"]

    everything = client.get("/editor/ads", params={"status": "all", "includeDeleted": "true"}, headers=editor_headers)
    assert everything.json()["pagination"]["total"] == 3

    only_deleted = client.get("/editor/ads", params={"status": "all", "includeDeleted": "only"}, headers=editor_headers)
    assert [a["title"] for a in only_deleted.json()["ads"]] == ["Removed"]


def test_approve_and_reject(client, seller, editor, ad_factory, editor_headers, db_session):
    ad = ad_factory(seller, status="pending")

    approved = client.put(f"/editor/ads/{ad.id}/status", json={"status": "approved"}, headers=editor_headers)
    assert approved.status_code == 200
    assert approved.json()["status"] == "approved"

    no_reason = client.put(f"/editor/ads/{ad.id}/status", json={"status": "rejected"}, headers=editor_headers)
    assert no_reason.status_code == 400
    assert no_reason.json()["detail"] == "Rejection reason is required"

    rejected = client.put(
        f"/editor/ads/{ad.id}/status",
        json={"status": "rejected", "reason": "Blurry photos"},
        headers=editor_headers,
    )
    assert rejected.json()["statusReason"] == "Blurry photos"
    assert client.put(f"/editor/ads/{ad.id}/status", json={"status": "sold"}, headers=editor_headers).status_code == 400

    history = client.get(f"/editor/ads/{ad.id}/history", headers=editor_headers).json()
    assert [h["action"] for h in history] == ["rejected", "approved"]
    assert {h["actorType"] for h in history} == {"editor"}
    assert _audit_actions(db_session) == ["ad_approve", "ad_reject"]


def test_suspend_and_unsuspend(client, seller, ad_factory, editor_headers):
    ad = ad_factory(seller)
    assert client.post(f"/editor/ads/{ad.id}/suspend", json={"reason": " "}, headers=editor_headers).status_code == 400
    assert client.post(
        f"/editor/ads/{ad.id}/suspend", json={"reason": "Spam", "duration": 0}, headers=editor_headers
    ).status_code == 400

    suspended = client.post(
        f"/editor/ads/{ad.id}/suspend", json={"reason": "Spam", "duration": 7}, headers=editor_headers
    )
    assert suspended.status_code == 200
    assert suspended.json()["status"] == "suspended"
    assert client.get(f"/ads/{ad.id}").status_code == 404

    restored = client.post(f"/editor/ads/{ad.id}/unsuspend", headers=editor_headers)
    assert restored.json()["status"] == "approved"
    again = client.post(f"/editor/ads/{ad.id}/unsuspend", headers=editor_headers)
    assert again.status_code == 400


def test_user_list_filters_and_counts_ads(client, seller, user_factory, ad_factory, editor_headers):
    other = user_factory(email="gita@example.com", full_name="Gita Buyer", is_suspended=True)
    ad_factory(seller)
    ad_factory(seller, title="Second")

    everyone = client.get("/editor/users", headers=editor_headers).json()
    assert everyone["pagination"]["total"] == 3
    by_email = {u["email"]: u for u in everyone["users"]}
    assert by_email["seller@example.com"]["adCount"] == 2
    assert by_email["gita@example.com"]["adCount"] == 0

    suspended = client.get("/editor/users", params={"status": "suspended"}, headers=editor_headers).json()
    assert [u["id"] for u in suspended["users"]] == [other.id]
    found = client.get("/editor/users", params={"search": "RAM"}, headers=editor_headers).json()
    assert [u["email"] for u in found["users"]] == ["seller@example.com"]
    paged = client.get("/editor/users", params={"limit": 1, "page": 2}, headers=editor_headers).json()
    assert len(paged["users"]) == 1
    assert paged["pagination"]["hasPrev"] is True


def test_suspend_user_hides_ads_and_unsuspend_restores_them(
    client, seller, editor, auth_headers, ad_factory, editor_headers, db_session
):
    live = ad_factory(seller)
    pending = ad_factory(seller, title="Draft", status="pending")
    moderated = ad_factory(seller, title="Moderated", status="suspended", suspension_reason="Spam")
    seller_headers = auth_headers(seller)

    assert client.put(
        f"/editor/users/{seller.id}/suspend", json={"reason": " "}, headers=editor_headers
    ).status_code == 400
    assert client.put(
        f"/editor/users/{seller.id}/suspend", json={"reason": "Fraud", "duration": -1}, headers=editor_headers
    ).status_code == 400
    assert client.put("/editor/users/9999/suspend", json={"reason": "Fraud"}, headers=editor_headers).status_code == 404
    assert client.put(
        f"/editor/users/{editor.id}/suspend", json={"reason": "Fraud"}, headers=editor_headers
    ).status_code == 400

    resp = client.put(
        f"/editor/users/{seller.id}/suspend", json={"reason": "Fraud", "duration": 7}, headers=editor_headers
    )
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["adsSuspended"] == 1
    assert body["user"]["isSuspended"] is True
    assert body["user"]["suspendedBy"] == editor.id
    assert body["user"]["suspensionReason"] == "Fraud"
    assert body["user"]["suspendedUntil"] is not None

    db_session.expire_all()
    assert db_session.get(models.Ad, live.id).status == "suspended"
    assert db_session.get(models.Ad, live.id).status_reason == "User suspended: Fraud"
    assert db_session.get(models.Ad, pending.id).status == "pending"
    me = client.get("/auth/me", headers=seller_headers)
    assert me.status_code == 403
    assert me.json()["detail"] == "Account suspended"

    restored = client.put(f"/editor/users/{seller.id}/unsuspend", headers=editor_headers)
    assert restored.status_code == 200
    assert restored.json()["adsRestored"] == 1
    assert restored.json()["user"]["isSuspended"] is False

    db_session.expire_all()
    assert db_session.get(models.Ad, live.id).status == "approved"
    assert db_session.get(models.Ad, live.id).status_reason is None
    # Ads an editor suspended on their own stay suspended
    assert db_session.get(models.Ad, moderated.id).status == "suspended"
    assert client.get("/auth/me", headers=seller_headers).status_code == 200
    assert client.put(f"/editor/users/{seller.id}/unsuspend", headers=editor_headers).status_code == 400
    assert _audit_actions(db_session) == ["user_suspend", "user_unsuspend"]


def test_delete_resolves_reports_and_restore_reopens_them(
    client, seller, user_factory, auth_headers, ad_factory, editor_headers, db_session
):
    ad = ad_factory(seller)
    reporter = auth_headers(user_factory())
    client.post("/reports", json={"adId": ad.id, "reason": "fraud"}, headers=reporter)

    deleted = client.request("DELETE", f"/editor/ads/{ad.id}", json={"reason": "Scam"}, headers=editor_headers)
    assert deleted.status_code == 200
    assert deleted.json()["status"] == "deleted"
    assert db_session.query(models.AdReport).one().status == "resolved"
    assert client.delete(f"/editor/ads/{ad.id}", headers=editor_headers).status_code == 400

    restored = client.post(f"/editor/ads/{ad.id}/restore", headers=editor_headers)
    assert restored.json()["status"] == "approved"
    db_session.expire_all()
    assert db_session.query(models.AdReport).one().status == "restored"
    assert client.post(f"/editor/ads/{ad.id}/restore", headers=editor_headers).status_code == 400


def test_permanent_delete_needs_super_admin(client, seller, super_admin, auth_headers, ad_factory, editor_headers, db_session):
    ad = ad_factory(seller)
    assert client.delete(f"/editor/ads/{ad.id}/permanent", headers=editor_headers).status_code == 403

    resp = client.delete(f"/editor/ads/{ad.id}/permanent", headers=auth_headers(super_admin))
    assert resp.json() == {"success": True, "message": "Ad permanently deleted"}
    assert db_session.query(models.Ad).count() == 0
    assert _audit_actions(db_session) == ["ad_permanent_delete"]


def test_report_triage(client, seller, user_factory, auth_headers, ad_factory, editor_headers):
    ad = ad_factory(seller, title="Fake watch")
    reporter = user_factory(email="buyer@example.com")
    client.post("/reports", json={"adId": ad.id, "reason": "misleading"}, headers=auth_headers(reporter))

    queue = client.get("/editor/reports", headers=editor_headers).json()
    assert len(queue) == 1
    assert queue[0]["adTitle"] == "Fake watch"
    assert queue[0]["reporterEmail"] == "buyer@example.com"

    report_id = queue[0]["id"]
    bad = client.put(f"/editor/reports/{report_id}", json={"status": "pending"}, headers=editor_headers)
    assert bad.status_code == 400
    done = client.put(
        f"/editor/reports/{report_id}", json={"status": "dismissed", "adminNotes": "Genuine"}, headers=editor_headers
    )
    assert done.json()["status"] == "dismissed"
    assert done.json()["adminNotes"] == "Genuine"
    assert client.get("/editor/reports", headers=editor_headers).json() == []
    assert client.put("/editor/reports/9999", json={"status": "reviewed"}, headers=editor_headers).status_code == 404


def _individual_request(db_session, user, status="pending", duration_days=365):
    request = models.IndividualVerificationRequest(
        user_id=user.id,
        full_name="Ram Bahadur",
        id_document_type="citizenship",
        id_document_front="individual_verification/front.jpg",
        selfie_with_id="individual_verification/selfie.jpg",
        status=status,
        duration_days=duration_days,
        payment_amount=0,
        payment_status="free",
    )
    db_session.add(request)
    db_session.commit()
    return request


def _business_request(db_session, user, status="pending"):
    request = models.BusinessVerificationRequest(
        user_id=user.id,
        business_name="Ram Traders",
        business_license_document="business_verification/license.pdf",
        status=status,
        duration_days=365,
        payment_amount=0,
        payment_status="free",
    )
    db_session.add(request)
    db_session.commit()
    return request


def test_stats_counts_queues(client, seller, user_factory, auth_headers, ad_factory, editor_headers, db_session):
    ad_factory(seller, status="pending")
    ad_factory(seller)
    ad_factory(seller, status="suspended")
    live = ad_factory(seller, title="Reported")
    client.post("/reports", json={"adId": live.id, "reason": "spam"}, headers=auth_headers(user_factory()))
    _individual_request(db_session, seller)
    _business_request(db_session, seller)

    stats = client.get("/editor/stats", headers=editor_headers).json()
    assert stats == {
        "pendingAds": 1,
        "approvedAds": 2,
        "suspendedAds": 1,
        "pendingReports": 1,
        "pendingIndividualVerifications": 1,
        "pendingBusinessVerifications": 1,
    }


def test_verification_queue_and_approval(client, seller, editor_headers, db_session, notifier):
    individual = _individual_request(db_session, seller)
    _business_request(db_session, seller, status="pending_payment")

    queue = client.get("/editor/verifications", headers=editor_headers).json()
    assert [(item["type"], item["name"]) for item in queue] == [("individual", "Ram Bahadur")]
    assert client.get("/editor/verifications", params={"type": "bogus"}, headers=editor_headers).status_code == 400

    resp = client.post(f"/editor/verifications/individual/{individual.id}/approve", headers=editor_headers)
    assert resp.status_code == 200, resp.text
    assert resp.json()["message"] == "Verification approved successfully"
    db_session.refresh(seller)
    assert seller.individual_verified is True
    assert seller.verified_seller_name == "Ram Bahadur"
    assert seller.shop_slug == "ram-bahadur"
    assert notifier.calls == [(seller.id, "individual", True, None)]

    twice = client.post(f"/editor/verifications/individual/{individual.id}/approve", headers=editor_headers)
    assert twice.status_code == 404


def test_verification_rejection_needs_reason(client, seller, editor_headers, db_session, notifier):
    request = _business_request(db_session, seller)
    path = f"/editor/verifications/business/{request.id}/reject"
    assert client.post(path, headers=editor_headers).status_code == 400
    resp = client.post(path, json={"reason": "License expired"}, headers=editor_headers)
    assert resp.json()["status"] == "rejected"
    db_session.refresh(seller)
    assert seller.business_verification_status == "rejected"
    assert notifier.calls == [(seller.id, "business", False, "License expired")]
    bad_action = client.post(f"/editor/verifications/business/{request.id}/escalate", headers=editor_headers)
    assert bad_action.status_code == 400
