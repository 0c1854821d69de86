from urllib.parse import parse_qs, urlparse

import pytest

from bazaar.db import models
from bazaar.services import payment_service
from bazaar.services.gateway_types import GatewayInitiation, GatewayVerification
from bazaar.services.promotion_service import seed_default_promotion_pricing
from bazaar.utils.feature_flags import refresh_feature_flag_cache


class FakeKhalti:
    def __init__(self, verification=None):
        self.verification = verification
        self.initiated = []

    def initiate(self, **kwargs):
        self.initiated.append(kwargs)
        return GatewayInitiation(
            success=True,
            payment_url="https://test-pay.khalti.com/?pidx=PX1",
            pidx="PX1",
            expires_at="2030-01-01T00:00:00",
        )

    def lookup(self, pidx):
        return self.verification


@pytest.fixture
def khalti(monkeypatch):
    monkeypatch.setenv("KHALTI_SECRET_KEY", "test_secret")
    refresh_feature_flag_cache()
    fake = FakeKhalti()
    monkeypatch.setattr(payment_service, "get_khalti_client", lambda: fake)
    return fake


def _query(resp):
    parsed = urlparse(resp.headers["location"])
    return parsed.path, {k: v[0] for k, v in parse_qs(parsed.query).items()}


def test_gateways_reflect_configuration(client, khalti):
    gateways = client.get("/payments/gateways").json()
    assert gateways == [
        {"id": "khalti", "name": "Khalti", "enabled": True},
        {"id": "esewa", "name": "eSewa", "enabled": True},
    ]


def test_khalti_round_trip(client, khalti, seller, auth_headers, ad_factory, db_session):
    seed_default_promotion_pricing(db_session)
    ad = ad_factory(seller)
    headers = auth_headers(seller)
    resp = client.post(
        "/payments/initiate",
        json={
            "gateway": "khalti",
            "amount": 1000,
            "paymentType": "ad_promotion",
            "relatedId": ad.id,
            "metadata": {"promotionType": "featured", "durationDays": 3},
        },
        headers=headers,
    )
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["pidx"] == "PX1"
    assert body["orderId"].startswith("TB_AD_")
    assert khalti.initiated[0]["return_url"].startswith("http://localhost:8000/payments/callback?")

    khalti.verification = GatewayVerification(success=True, status="completed", transaction_id="KH-9", amount=1000.0)
    callback = client.get(
        "/payments/callback",
        params={"gateway": "khalti", "orderId": body["orderId"], "pidx": "PX1", "status": "Completed"},
        follow_redirects=False,
    )
    assert callback.status_code == 302
    path, query = _query(callback)
    assert path == "/payment/success"
    assert query == {"orderId": body["orderId"], "type": "ad_promotion"}

    db_session.refresh(ad)
    assert ad.is_featured is True

    status = client.get(f"/payments/status/{body['transactionId']}", headers=headers).json()
    assert status["status"] == "verified"
    assert status["referenceId"] == "KH-9"


def test_callback_failures_redirect_to_failure_page(client):
    missing = client.get("/payments/callback", follow_redirects=False)
    assert missing.status_code == 302
    assert _query(missing) == ("/payment/failure", {"reason": "missing_order_id"})

    unknown = client.get("/payments/callback", params={"orderId": "TB_AD__1_NOPE00"}, follow_redirects=False)
    assert _query(unknown)[1]["reason"] == "transaction_not_found"


def test_initiate_validation_errors(client, seller, auth_headers):
    headers = auth_headers(seller)
    disabled = client.post(
        "/payments/initiate", json={"gateway": "khalti", "amount": 100, "paymentType": "ad_promotion"}, headers=headers
    )
    assert disabled.status_code == 400
    assert disabled.json()["detail"] == "Khalti payments are currently disabled"
    too_small = client.post(
        "/payments/initiate", json={"gateway": "esewa", "amount": 5, "paymentType": "ad_promotion"}, headers=headers
    )
    assert too_small.json()["detail"] == "Minimum payment amount is Rs 10"


def test_esewa_redirect_page_posts_signed_form(client, seller, auth_headers, db_session):
    request = models.IndividualVerificationRequest(
        user_id=seller.id,
        full_name="Ram Seller",
        id_document_type="citizenship",
        id_document_front="individual_verification/front.jpg",
        selfie_with_id="individual_verification/selfie.jpg",
        status="pending_payment",
        duration_days=365,
        payment_amount=1000,
        payment_status="pending",
    )
    db_session.add(request)
    db_session.commit()
    resp = client.post(
        "/payments/initiate",
        json={"gateway": "esewa", "amount": 1000, "paymentType": "individual_verification", "relatedId": request.id},
        headers=auth_headers(seller),
    )
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["formData"]["transaction_uuid"] == body["orderId"]

    page = client.get("/payments/esewa/redirect", params={"orderId": body["orderId"]})
    assert page.status_code == 200
    assert "text/html" in page.headers["content-type"]
    assert 'id="esewa-form"' in page.text
    assert body["orderId"] in page.text
    assert body["formData"]["signature"] in page.text

    assert client.get("/payments/esewa/redirect", params={"orderId": "TB_NOPE"}).status_code == 404


def test_esewa_redirect_refuses_finished_transactions(client, seller, db_session):
    txn = models.PaymentTransaction(
        user_id=seller.id,
        payment_type="ad_promotion",
        payment_gateway="esewa",
        amount=500,
        transaction_id="TB_AD__1_DONE00",
        status="verified",
        metadata_json={},
    )
    db_session.add(txn)
    db_session.commit()
    resp = client.get("/payments/esewa/redirect", params={"orderId": txn.transaction_id})
    assert resp.status_code == 400


def test_status_and_history_are_private(client, seller, user_factory, editor, auth_headers, db_session):
    txn = models.PaymentTransaction(
        user_id=seller.id,
        payment_type="ad_promotion",
        payment_gateway="esewa",
        amount=500,
        transaction_id="TB_AD__1_ABC123",
        status="pending",
        metadata_json={},
    )
    db_session.add(txn)
    db_session.commit()

    stranger = auth_headers(user_factory())
    assert client.get(f"/payments/status/{txn.id}", headers=stranger).status_code == 403
    assert client.get(f"/payments/status/{txn.id}", headers=auth_headers(editor)).status_code == 200
    assert client.get("/payments/status/9999", headers=stranger).status_code == 404

    history = client.get("/payments/history", headers=auth_headers(seller)).json()
    assert [t["transactionId"] for t in history["transactions"]] == ["TB_AD__1_ABC123"]
    assert history["pagination"]["total"] == 1
    assert client.get("/payments/history", headers=stranger).json()["transactions"] == []

    forbidden = client.post("/payments/verify", json={"orderId": txn.transaction_id}, headers=stranger)
    assert forbidden.status_code == 403
    missing = client.post("/payments/verify", json={"orderId": "TB_NOPE"}, headers=stranger)
    assert missing.status_code == 404


def test_initiate_rejects_client_chosen_amount(client, seller, auth_headers, ad_factory, db_session):
    seed_default_promotion_pricing(db_session)
    ad = ad_factory(seller)
    resp = client.post(
        "/payments/initiate",
        json={
            "gateway": "esewa",
            "amount": 10,
            "paymentType": "ad_promotion",
            "relatedId": ad.id,
            "metadata": {"promotionType": "featured", "durationDays": 15},
        },
        headers=auth_headers(seller),
    )
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Payment amount does not match expected price (NPR 3500)"
    assert db_session.query(models.PaymentTransaction).count() == 0
