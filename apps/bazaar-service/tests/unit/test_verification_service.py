import io
from datetime import datetime, timedelta, timezone

import pytest
from fastapi import UploadFile
from starlette.datastructures import Headers

from bazaar.db import models
from bazaar.db.repositories import settings as repo_settings
from bazaar.services import verification_service
from bazaar.services.verification_service import (
    VerificationError,
    calculate_final_price,
    campaign_discount,
    expire_verifications,
    format_duration_label,
    get_best_campaign,
    get_free_verification_settings,
    get_pricing_overview,
    is_eligible_for_free_verification,
    list_verification_queue,
    review_verification,
    submit_business_verification,
    submit_individual_verification,
)


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


def _upload(name="doc.jpg", content_type="image/jpeg", data=b"\xff\xd8data"):
    return UploadFile(file=io.BytesIO(data), filename=name, headers=Headers({"content-type": content_type}))


def _price(db_session, verification_type, duration_days, price, discount=0):
    row = models.VerificationPricing(
        verification_type=verification_type, duration_days=duration_days,
        price=price, discount_percentage=discount, is_active=True,
    )
    db_session.add(row)
    db_session.commit()
    return row


def _campaign(db_session, **fields):
    now = datetime.now(timezone.utc)
    campaign = models.VerificationCampaign(
        name=fields.get("name", "Dashain Offer"),
        discount_percentage=fields.get("discount_percentage", 20),
        start_date=fields.get("start_date", now - timedelta(days=1)),
        end_date=fields.get("end_date", now + timedelta(days=5)),
        is_active=True,
        applies_to_types=fields.get("applies_to_types", ["individual", "business"]),
        min_duration_days=fields.get("min_duration_days"),
        max_uses=fields.get("max_uses"),
        current_uses=fields.get("current_uses", 0),
        banner_emoji=fields.get("banner_emoji"),
    )
    db_session.add(campaign)
    db_session.commit()
    return campaign


def _individual_request(db_session, user, **fields):
    row = models.IndividualVerificationRequest(
        user_id=user.id,
        full_name=fields.get("full_name", "Ram Bahadur"),
        id_document_type="citizenship",
        id_document_front="individual_verification/front.jpg",
        selfie_with_id="individual_verification/selfie.jpg",
        status=fields.get("status", "pending"),
        duration_days=fields.get("duration_days", 90),
        payment_amount=fields.get("payment_amount", 500),
        payment_status=fields.get("payment_status", "paid"),
    )
    db_session.add(row)
    db_session.commit()
    db_session.refresh(row)
    return row


def test_format_duration_label():
    assert format_duration_label(30) == "1 Month"
    assert format_duration_label(90) == "3 Months"
    assert format_duration_label(180) == "6 Months"
    assert format_duration_label(365) == "1 Year"
    assert format_duration_label(45) == "45 Days"


def test_calculate_final_price_rounds():
    assert calculate_final_price(1000, 0) == 1000
    assert calculate_final_price(999.6, 0) == 1000
    assert calculate_final_price(999.4, -5) == 999
    assert calculate_final_price(999, 15) == 849
    assert calculate_final_price(500, 100) == 0


def test_free_settings_defaults_and_parsing(db_session):
    settings = get_free_verification_settings(db_session)
    assert settings.enabled is False
    assert settings.duration_days == 180
    assert settings.types == ["individual", "business"]

    repo_settings.set_setting(db_session, "free_verification_enabled", "true")
    repo_settings.set_setting(db_session, "free_verification_duration_days", "not-a-number")
    repo_settings.set_setting(db_session, "free_verification_types", '["business", "bogus"]')
    settings = get_free_verification_settings(db_session)
    assert settings.enabled is True
    assert settings.duration_days == 180
    assert settings.types == ["business"]
    assert settings.applies_to("business")
    assert not settings.applies_to("individual")


def test_free_eligibility(user_factory):
    assert is_eligible_for_free_verification(user_factory())
    assert not is_eligible_for_free_verification(None)
    lapsed = user_factory(individual_verification_expires_at=datetime.now(timezone.utc) - timedelta(days=1))
    assert not is_eligible_for_free_verification(lapsed)
    assert not is_eligible_for_free_verification(user_factory(business_verification_status="approved"))


def test_campaign_discount_rules(db_session):
    campaign = _campaign(db_session, applies_to_types=["individual"], min_duration_days=90)
    assert campaign_discount(campaign, "individual", 365) == 20
    assert campaign_discount(campaign, "individual", 30) == 0
    assert campaign_discount(campaign, "business", 365) == 0
    assert campaign_discount(None, "individual", 365) == 0


def test_best_campaign_skips_exhausted(db_session):
    _campaign(db_session, name="Used up", discount_percentage=50, max_uses=3, current_uses=3)
    best = _campaign(db_session, name="Still open", discount_percentage=10)
    _campaign(
        db_session, name="Finished", discount_percentage=90,
        start_date=datetime.now(timezone.utc) - timedelta(days=10),
        end_date=datetime.now(timezone.utc) - timedelta(days=1),
    )
    assert get_best_campaign(db_session).id == best.id


def test_pricing_overview_applies_campaign(db_session, user_factory):
    _price(db_session, "individual", 365, 1000)
    _price(db_session, "business", 365, 3000)
    _campaign(db_session, applies_to_types=["business"], banner_emoji="🎉")

    overview = get_pricing_overview(db_session, user_factory())
    individual = overview["individual"][0]
    business = overview["business"][0]
    assert individual["finalPrice"] == 1000
    assert individual["hasCampaignDiscount"] is False
    assert individual["durationLabel"] == "1 Year"
    assert business["finalPrice"] == 2400
    assert business["discountPercentage"] == 20
    assert overview["campaign"]["bannerText"] == "🎉 Dashain Offer - 20% OFF!"
    assert overview["freeVerification"]["isEligible"] is False


def test_submit_individual_paid_request(db_session, seller):
    _price(db_session, "individual", 365, 1000)
    request = submit_individual_verification(
        db_session, seller,
        full_name=" Ram Seller ", id_document_type="citizenship", id_document_number="12-34",
        duration_days=365, payment_amount=1000, payment_reference=None,
        front=_upload("front.jpg"), back=None, selfie=_upload("selfie.png", "image/png"),
    )
    assert request.status == "pending_payment"
    assert request.payment_status == "pending"
    assert request.full_name == "Ram Seller"
    assert request.id_document_front.startswith("individual_verification/")
    assert request.id_document_back is None


def test_submit_individual_rejects_wrong_amount(db_session, seller):
    _price(db_session, "individual", 365, 1000)
    with pytest.raises(VerificationError, match="does not match expected price"):
        submit_individual_verification(
            db_session, seller,
            full_name="Ram", id_document_type="passport", id_document_number=None,
            duration_days=365, payment_amount=500, payment_reference=None,
            front=_upload(), back=None, selfie=_upload(),
        )


def test_submit_individual_requires_documents(db_session, seller):
    with pytest.raises(VerificationError, match="front and selfie"):
        submit_individual_verification(
            db_session, seller,
            full_name="Ram", id_document_type="passport", id_document_number=None,
            duration_days=365, payment_amount=1000, payment_reference=None,
            front=_upload(), back=None, selfie=None,
        )
    with pytest.raises(VerificationError, match="Document type"):
        submit_individual_verification(
            db_session, seller,
            full_name="Ram", id_document_type="voter_id", id_document_number=None,
            duration_days=365, payment_amount=1000, payment_reference=None,
            front=_upload(), back=None, selfie=_upload(),
        )


def test_free_individual_request_goes_straight_to_review(db_session, seller):
    repo_settings.set_setting(db_session, "free_verification_enabled", "true")
    request = submit_individual_verification(
        db_session, seller,
        full_name="Ram", id_document_type="passport", id_document_number=None,
        duration_days=365, payment_amount=0, payment_reference=None,
        front=_upload(), back=None, selfie=_upload(),
    )
    assert request.status == "pending"
    assert request.payment_status == "free"
    assert request.duration_days == 180

    with pytest.raises(VerificationError, match="already have a pending"):
        submit_individual_verification(
            db_session, seller,
            full_name="Ram", id_document_type="passport", id_document_number=None,
            duration_days=365, payment_amount=0, payment_reference=None,
            front=_upload(), back=None, selfie=_upload(),
        )


def test_free_request_refused_when_disabled(db_session, seller):
    with pytest.raises(VerificationError, match="not currently available"):
        submit_business_verification(
            db_session, seller,
            business_name="Everest Traders", business_category=None, business_description=None,
            business_website=None, business_phone=None, business_address=None,
            duration_days=365, payment_amount=0, payment_reference=None,
            license_document=_upload("license.pdf", "application/pdf", b"%PDF"),
        )


def test_unpaid_request_is_replaced_on_resubmission(db_session, seller):
    _price(db_session, "business", 90, 1500)
    first = submit_business_verification(
        db_session, seller,
        business_name="Everest Traders", business_category="Retail", business_description=None,
        business_website=None, business_phone=None, business_address=None,
        duration_days=90, payment_amount=1500, payment_reference=None,
        license_document=_upload("license.pdf", "application/pdf", b"%PDF"),
    )
    first_id = first.id
    second = submit_business_verification(
        db_session, seller,
        business_name="Everest Traders Pvt", business_category="Retail", business_description=None,
        business_website=None, business_phone=None, business_address=None,
        duration_days=90, payment_amount=1500, payment_reference=None,
        license_document=_upload("license.pdf", "application/pdf", b"%PDF"),
    )
    assert second.id != first_id
    assert db_session.get(models.BusinessVerificationRequest, first_id) is None
    # Unpaid requests do not put the account into review
    assert seller.business_verification_status is None


def test_failed_resubmission_keeps_unpaid_request(db_session, seller):
    _price(db_session, "individual", 365, 1000)
    stale = _individual_request(
        db_session, seller, status="pending_payment", duration_days=365, payment_amount=1000, payment_status="pending"
    )
    stale_id = stale.id

    with pytest.raises(VerificationError, match="Document type"):
        submit_individual_verification(
            db_session, seller,
            full_name="Ram", id_document_type="bogus", id_document_number=None,
            duration_days=365, payment_amount=1000, payment_reference=None,
            front=_upload(), back=None, selfie=_upload(),
        )
    with pytest.raises(VerificationError, match="does not match expected price"):
        submit_individual_verification(
            db_session, seller,
            full_name="Ram", id_document_type="passport", id_document_number=None,
            duration_days=365, payment_amount=10, payment_reference=None,
            front=_upload(), back=None, selfie=_upload(),
        )
    assert db_session.get(models.IndividualVerificationRequest, stale_id) is not None


def test_approve_individual_request(db_session, seller, editor, notifier):
    request = _individual_request(db_session, seller, full_name="Ram Bahadur")
    reviewed = review_verification(db_session, "individual", request.id, "approve", reviewer=editor)

    db_session.refresh(seller)
    assert reviewed.status == "approved"
    assert reviewed.reviewed_by == editor.id
    assert seller.individual_verified is True
    assert seller.verified_seller_name == "Ram Bahadur"
    assert seller.shop_slug == "ram-bahadur"
    assert notifier.calls == [(seller.id, "individual", True, None)]
    audit_row = db_session.query(models.AuditLog).one()
    assert audit_row.action_type == "verification_approve"


def test_reject_requires_reason_and_pending_status(db_session, seller, editor, notifier):
    request = _individual_request(db_session, seller)
    with pytest.raises(VerificationError, match="reason is required"):
        review_verification(db_session, "individual", request.id, "reject", reviewer=editor)

    review_verification(db_session, "individual", request.id, "reject", reviewer=editor, reason="Blurry")
    assert notifier.calls[-1] == (seller.id, "individual", False, "Blurry")

    with pytest.raises(VerificationError) as already:
        review_verification(db_session, "individual", request.id, "approve", reviewer=editor)
    assert already.value.status_code == 404


def test_list_verification_queue(db_session, seller, user_factory):
    _individual_request(db_session, seller)
    other = user_factory()
    db_session.add(models.BusinessVerificationRequest(
        user_id=other.id, business_name="Himal Traders",
        business_license_document="business_verification/l.pdf",
        status="pending", duration_days=365, payment_amount=0, payment_status="free",
    ))
    db_session.commit()

    items = list_verification_queue(db_session, "all", "pending")
    assert {item.type for item in items} == {"individual", "business"}
    assert len(list_verification_queue(db_session, "business", "pending")) == 1
    with pytest.raises(VerificationError):
        list_verification_queue(db_session, "corporate", "pending")


def test_expire_verifications(db_session, user_factory):
    past = datetime.now(timezone.utc) - timedelta(days=1)
    future = datetime.now(timezone.utc) + timedelta(days=30)
    lapsed_business = user_factory(business_verification_status="approved", business_verification_expires_at=past)
    lapsed_individual = user_factory(individual_verified=True, individual_verification_expires_at=past)
    current = user_factory(individual_verified=True, individual_verification_expires_at=future)

    assert expire_verifications(db_session) == {"businessExpired": 1, "individualExpired": 1}
    for user in (lapsed_business, lapsed_individual, current):
        db_session.refresh(user)
    assert lapsed_business.business_verification_status == "expired"
    assert lapsed_individual.individual_verified is False
    assert current.individual_verified is True
