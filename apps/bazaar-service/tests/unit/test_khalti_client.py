import pytest
import requests

from bazaar.services import khalti
from bazaar.services.gateway_types import PaymentGatewayError
from bazaar.services.khalti import KhaltiClient, KhaltiConfig


class _FakeResponse:
    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self._payload = payload

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"HTTP {self.status_code}")


def _client(environment="sandbox"):
    return KhaltiClient(KhaltiConfig(secret_key="live_secret_key_test", environment=environment))


def _initiate(client, amount=500):
    return client.initiate(
        amount=amount,
        purchase_order_id="TB_AD__1_ABC123",
        purchase_order_name="Ad Promotion",
        return_url="http://localhost:8000/payments/callback",
        website_url="http://localhost:3000",
        customer_info={"name": "Ram", "email": "ram@example.com", "phone": None},
    )


def test_config_from_env(monkeypatch):
    monkeypatch.setenv("KHALTI_SECRET_KEY", "abc")
    monkeypatch.setenv("KHALTI_ENV", "Production")
    config = KhaltiConfig.from_env()
    assert config.is_configured
    assert config.base_url == khalti.PRODUCTION_BASE_URL
    monkeypatch.delenv("KHALTI_SECRET_KEY")
    assert not KhaltiConfig.from_env().is_configured
    assert KhaltiConfig(secret_key="x").base_url == khalti.SANDBOX_BASE_URL


def test_initiate_posts_amount_in_paisa(monkeypatch):
    calls = {}

    def fake_post(url, json=None, headers=None, timeout=None):
        calls.update(url=url, json=json, headers=headers)
        return _FakeResponse(200, {"pidx": "PIDX1", "payment_url": "https://pay.khalti/PIDX1", "expires_at": "soon"})

    monkeypatch.setattr(khalti.requests, "post", fake_post)
    result = _initiate(_client(), amount=500)

    assert result.success
    assert result.pidx == "PIDX1"
    assert result.payment_url == "https://pay.khalti/PIDX1"
    assert calls["url"].endswith("/epayment/initiate/")
    assert calls["json"]["amount"] == 50000
    assert calls["json"]["customer_info"] == {"name": "Ram", "email": "ram@example.com"}
    assert calls["headers"]["Authorization"] == "Key live_secret_key_test"


def test_initiate_rejects_amount_below_minimum(monkeypatch):
    def fail_post(*args, **kwargs):
        raise AssertionError("gateway must not be called")

    monkeypatch.setattr(khalti.requests, "post", fail_post)
    result = _initiate(_client(), amount=9.99)
    assert not result.success
    assert result.error == "Minimum payment amount is Rs 10"


def test_initiate_reports_gateway_rejection(monkeypatch):
    monkeypatch.setattr(
        khalti.requests, "post",
        lambda *a, **k: _FakeResponse(400, {"detail": "Invalid token."}),
    )
    result = _initiate(_client())
    assert not result.success
    assert result.error == "Invalid token."


def test_initiate_transport_error_raises(monkeypatch):
    def boom(*args, **kwargs):
        raise requests.ConnectionError("down")

    monkeypatch.setattr(khalti.requests, "post", boom)
    with pytest.raises(PaymentGatewayError):
        _initiate(_client())


@pytest.mark.parametrize(
    "gateway_status,expected,success",
    [
        ("Completed", "completed", True),
        ("Pending", "pending", False),
        ("User canceled", "canceled", False),
        ("Expired", "expired", False),
        ("Something new", "failed", False),
    ],
)
def test_lookup_maps_status(monkeypatch, gateway_status, expected, success):
    monkeypatch.setattr(
        khalti.requests, "post",
        lambda *a, **k: _FakeResponse(200, {
            "pidx": "PIDX1", "status": gateway_status, "total_amount": 50000, "transaction_id": "TXN9",
        }),
    )
    result = _client().lookup("PIDX1")
    assert result.status == expected
    assert result.success is success
    assert result.amount == 500.0
    assert result.transaction_id == "TXN9"


def test_lookup_http_error_raises(monkeypatch):
    monkeypatch.setattr(khalti.requests, "post", lambda *a, **k: _FakeResponse(500, {}))
    with pytest.raises(PaymentGatewayError):
        _client().lookup("PIDX1")
