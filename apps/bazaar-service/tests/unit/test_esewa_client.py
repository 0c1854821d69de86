import base64
import json

import pytest
import requests

from bazaar.services import esewa
from bazaar.services.esewa import (
    EsewaClient,
    EsewaConfig,
    build_signature_message,
    decode_callback,
    format_amount,
    generate_signature,
)
from bazaar.services.gateway_types import PaymentGatewayError


class _FakeResponse:
    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self._payload = payload or {}

    def json(self):
        return self._payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"HTTP {self.status_code}")


def _encode(payload):
    return base64.b64encode(json.dumps(payload).encode("utf-8")).decode("ascii")


def test_format_amount():
    assert format_amount(100.0) == "100"
    assert format_amount("250") == "250"
    assert format_amount(99.5) == "99.50"


def test_signature_is_base64_hmac_sha256():
    message = build_signature_message("100", "11-201-13", "EPAYTEST")
    assert message == "total_amount=100,transaction_uuid=11-201-13,product_code=EPAYTEST"
    assert generate_signature(message, "8gBm/:&EnhH.1/q") == "5DZywcrTKD0gia/rsSMcrRHmJl+4Tbol6S+lWgdJ94E="


def test_config_defaults_to_sandbox_credentials(monkeypatch):
    config = EsewaConfig.from_env()
    assert config.merchant_code == "EPAYTEST"
    assert config.is_configured
    assert config.form_url.startswith(esewa.SANDBOX_FORM_BASE_URL)
    monkeypatch.setenv("ESEWA_ENV", "production")
    assert EsewaConfig.from_env().status_url.startswith(esewa.PRODUCTION_STATUS_BASE_URL)


def test_initiate_builds_signed_form():
    client = EsewaClient(EsewaConfig())
    result = client.initiate(
        amount=100.0,
        transaction_uuid="TB_IND_1_ABC",
        success_url="http://localhost:8000/payments/callback?gateway=esewa",
    )
    assert result.success
    assert result.payment_url == client.config.form_url
    form = result.form_data
    assert form["total_amount"] == "100"
    assert form["product_code"] == "EPAYTEST"
    assert form["signed_field_names"] == "total_amount,transaction_uuid,product_code"
    assert form["signature"] == client.sign("100", "TB_IND_1_ABC")


def test_verify_callback_signature():
    client = EsewaClient(EsewaConfig())
    payload = {
        "transaction_code": "000AWEO",
        "status": "COMPLETE",
        "total_amount": "1000.0",
        "transaction_uuid": "TB_AD__1_XYZ",
        "product_code": "EPAYTEST",
        "signed_field_names": "transaction_code,status,total_amount,transaction_uuid,product_code,signed_field_names",
    }
    message = ",".join(f"{name}={payload[name]}" for name in payload["signed_field_names"].split(","))
    payload["signature"] = generate_signature(message, client.config.secret_key)

    assert client.verify_callback_signature(payload)
    tampered = dict(payload, total_amount="1.0")
    assert not client.verify_callback_signature(tampered)
    assert not client.verify_callback_signature({"status": "COMPLETE"})


def test_decode_callback():
    assert decode_callback(_encode({"status": "COMPLETE"})) == {"status": "COMPLETE"}
    with pytest.raises(PaymentGatewayError):
        decode_callback("not-base64!!")
    with pytest.raises(PaymentGatewayError):
        decode_callback(_encode(["a", "list"]))


def test_check_status_maps_response(monkeypatch):
    seen = {}

    def fake_get(url, params=None, timeout=None):
        seen.update(url=url, params=params)
        return _FakeResponse(200, {"status": "COMPLETE", "ref_id": "REF1", "total_amount": 100.0})

    monkeypatch.setattr(esewa.requests, "get", fake_get)
    result = EsewaClient(EsewaConfig()).check_status(transaction_uuid="TB_1", total_amount=100)
    assert result.success
    assert result.status == "completed"
    assert result.transaction_id == "REF1"
    assert seen["params"] == {"product_code": "EPAYTEST", "total_amount": "100", "transaction_uuid": "TB_1"}


def test_check_status_not_found_is_expired(monkeypatch):
    monkeypatch.setattr(esewa.requests, "get", lambda *a, **k: _FakeResponse(200, {"status": "NOT_FOUND"}))
    result = EsewaClient(EsewaConfig()).check_status(transaction_uuid="TB_1", total_amount=100)
    assert not result.success
    assert result.status == "expired"
    assert result.amount is None


def test_check_status_http_error_raises(monkeypatch):
    monkeypatch.setattr(esewa.requests, "get", lambda *a, **k: _FakeResponse(503))
    with pytest.raises(PaymentGatewayError):
        EsewaClient(EsewaConfig()).check_status(transaction_uuid="TB_1", total_amount=100)
