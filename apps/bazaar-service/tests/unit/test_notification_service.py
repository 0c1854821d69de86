from jinja2 import TemplateError

from bazaar.services.notification_service import NotificationService


class _FakeEmailService:
    def __init__(self, send_result=None, render_error=None):
        self.sent = []
        self.rendered = []
        self.send_result = send_result if send_result is not None else {"success": True, "message_id": "m1"}
        self.render_error = render_error

    def render_template(self, template_name, context):
        if self.render_error:
            raise self.render_error
        self.rendered.append((template_name, context))
        return f"<p>{template_name}</p>", template_name

    def send_email(self, to_email, subject, html_content, text_content=None):
        self.sent.append({"to": to_email, "subject": subject, "html": html_content, "text": text_content})
        return self.send_result


class _AsyncFakeEmailService(_FakeEmailService):
    async def send_email(self, to_email, subject, html_content, text_content=None):
        self.sent.append({"to": to_email, "subject": subject})
        return self.send_result


def test_approved_business_email(user_factory):
    user = user_factory(email="shop@example.com", full_name="Everest Traders", shop_slug="everest-traders")
    fake = _FakeEmailService()
    result = NotificationService(email_service=fake).send_verification_decision(user, "business", approved=True)

    assert result["success"] is True
    assert fake.sent[0]["to"] == "shop@example.com"
    assert fake.sent[0]["subject"] == "Business Verification Approved - Thulo Bazaar"
    template, context = fake.rendered[0]
    assert template == "verification_approved"
    assert context["shop_url"] == "http://localhost:3000/shop/everest-traders"


def test_rejected_individual_email_carries_reason(user_factory):
    user = user_factory()
    fake = _FakeEmailService()
    NotificationService(email_service=fake).send_verification_decision(
        user, "individual", approved=False, reason="Document expired",
    )
    assert fake.sent[0]["subject"] == "Identity Verification Update - Thulo Bazaar"
    template, context = fake.rendered[0]
    assert template == "verification_rejected"
    assert context["reason"] == "Document expired"
    assert context["shop_url"] is None


def test_async_email_service_is_awaited(user_factory):
    fake = _AsyncFakeEmailService()
    result = NotificationService(email_service=fake).send_verification_decision(
        user_factory(), "individual", approved=True,
    )
    assert result["success"] is True
    assert len(fake.sent) == 1


def test_render_failure_is_swallowed(user_factory):
    fake = _FakeEmailService(render_error=TemplateError("boom"))
    result = NotificationService(email_service=fake).send_verification_decision(
        user_factory(), "individual", approved=True,
    )
    assert result["success"] is False
    assert "Template render failed" in result["error"]
    assert fake.sent == []


def test_unsent_email_returns_result(user_factory):
    fake = _FakeEmailService(send_result={"success": False, "error": "Email service not configured"})
    result = NotificationService(email_service=fake).send_verification_decision(
        user_factory(), "business", approved=False, reason="Mismatch",
    )
    assert result == {"success": False, "error": "Email service not configured"}
