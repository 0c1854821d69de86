import os
from contextlib import contextmanager

import aiosmtplib
import pytest

from bazaar.services import email_service
from bazaar.services.email_service import EmailService, EmailServiceConfig


@contextmanager
def _env(**overrides):
    old = {k: os.environ.get(k) for k in overrides}
    try:
        for k, v in overrides.items():
            if v is None:
                os.environ.pop(k, None)
            else:
                os.environ[k] = str(v)
        yield
    finally:
        for k, v in old.items():
            if v is None:
                os.environ.pop(k, None)
            else:
                os.environ[k] = v


def test_config_validate_reports_missing_host_and_conflicts():
    with _env(SMTP_HOST=None, SMTP_USE_SSL="true", SMTP_USE_TLS="true"):
        config = EmailServiceConfig()
        assert not config.is_configured()
        errors = config.validate()
    assert "SMTP_HOST is required" in errors
    assert "Cannot use both SSL and TLS simultaneously" in errors


def test_config_defaults():
    with _env(SMTP_HOST="smtp.test", SMTP_PORT=None, FROM_EMAIL=None):
        config = EmailServiceConfig()
    assert config.is_configured()
    assert config.smtp_port == 587
    assert config.from_email == "noreply@thulobazaar.com"
    assert config.validate() == []


@pytest.mark.asyncio
async def test_send_email_not_configured():
    with _env(SMTP_HOST=None):
        svc = EmailService()
    result = await svc.send_email("a@example.com", "Hi", "<p>Hi</p>")
    assert result == {"success": False, "error": "Email service not configured"}


@pytest.mark.asyncio
async def test_send_email_smtp_failure_is_reported(monkeypatch):
    with _env(SMTP_HOST="smtp.test"):
        svc = EmailService()

    async def fail(message):
        raise aiosmtplib.SMTPException("connection refused")

    monkeypatch.setattr(svc, "_send_via_smtp", fail)
    result = await svc.send_email("a@example.com", "Hi", "<p>Hi</p>", text_content="Hi")
    assert result["success"] is False
    assert "connection refused" in result["error"]


@pytest.mark.asyncio
async def test_send_email_builds_multipart_message(monkeypatch):
    with _env(SMTP_HOST="smtp.test", REPLY_TO_EMAIL="help@thulobazaar.com"):
        svc = EmailService()
    captured = {}

    async def fake_send(message):
        captured["message"] = message
        return {"success": True, "message_id": "m1"}

    monkeypatch.setattr(svc, "_send_via_smtp", fake_send)
    result = await svc.send_email("buyer@example.com", "Welcome", "<p>Hello</p>", text_content="Hello")
    assert result["success"] is True
    message = captured["message"]
    assert message["To"] == "buyer@example.com"
    assert message["Reply-To"] == "help@thulobazaar.com"
    assert message["From"] == "Thulo Bazaar <noreply@thulobazaar.com>"
    assert len(message.get_payload()) == 2


def test_render_template_uses_text_variant():
    svc = EmailService()
    html, text = svc.render_template(
        "verification_rejected",
        {"name": "Ram", "verification_label": "Identity", "reason": "Blurry photo", "resubmit_url": "http://x/verification"},
    )
    assert "Blurry photo" in html
    assert "Reason: Blurry photo" in text
    assert "identity verification" in text


def test_render_template_falls_back_to_html_to_text(tmp_path):
    (tmp_path / "only_html.html").write_text("<h1>Hello &amp; welcome {{ name }}</h1>")
    with _env(EMAIL_TEMPLATE_DIR=str(tmp_path)):
        svc = EmailService()
    html, text = svc.render_template("only_html", {"name": "Sita"})
    assert html.startswith("<h1>")
    assert text == "Hello & welcome Sita"


def test_get_email_service_is_singleton():
    email_service.reset_email_service_for_tests()
    first = email_service.get_email_service()
    assert email_service.get_email_service() is first
    email_service.reset_email_service_for_tests()
    assert email_service.get_email_service() is not first
