"""
Notification service: renders and dispatches transactional email for
account events (currently verification decisions).
"""

import asyncio
import logging
from inspect import isawaitable
from typing import Any, Dict, Optional

from jinja2 import TemplateError

from bazaar.db import models
from bazaar.utils.urls import build_url, get_app_base_url

logger = logging.getLogger(__name__)

TEMPLATE_VERIFICATION_APPROVED = 'verification_approved'
TEMPLATE_VERIFICATION_REJECTED = 'verification_rejected'

_TYPE_LABELS = {
    'individual': 'Identity',
    'business': 'Business',
}


class NotificationService:
    """Builds notification emails and hands them to the email service."""

    def __init__(self, email_service: Optional[Any] = None):
        if email_service is None:
            from bazaar.services import email_service as _email_module
            email_service = _email_module.get_email_service()
        self.email_service = email_service

    def _send(self, to_email: str, subject: str, html: str, text: str) -> Dict[str, Any]:
        send_res = self.email_service.send_email(
            to_email=to_email,
            subject=subject,
            html_content=html,
            text_content=text,
        )
        if isawaitable(send_res):
            send_res = asyncio.run(send_res)
        return send_res or {}

    def send_verification_decision(
        self,
        user: models.User,
        verification_type: str,
        approved: bool,
        reason: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Email the outcome of a verification review. Never raises."""
        label = _TYPE_LABELS.get(verification_type, verification_type.title())
        if approved:
            template = TEMPLATE_VERIFICATION_APPROVED
            subject = f"{label} Verification Approved - Thulo Bazaar"
        else:
            template = TEMPLATE_VERIFICATION_REJECTED
            subject = f"{label} Verification Update - Thulo Bazaar"

        base_url = get_app_base_url()
        context = {
            'name': user.full_name or user.email,
            'verification_type': verification_type,
            'verification_label': label,
            'reason': reason,
            'shop_url': build_url(base_url, f"/shop/{user.shop_slug}") if user.shop_slug else None,
            'profile_url': build_url(base_url, '/profile'),
            'dashboard_url': build_url(base_url, '/dashboard'),
            'resubmit_url': build_url(base_url, '/verification'),
        }

        try:
            html, text = self.email_service.render_template(template, context)
        except TemplateError as e:
            logger.error("verification_email_render_failed user=%s err=%s", user.id, e)
            return {'success': False, 'error': f'Template render failed: {e}'}

        try:
            result = self._send(user.email, subject, html, text)
        except (OSError, RuntimeError) as e:
            logger.error("verification_email_send_failed user=%s err=%s", user.id, e)
            return {'success': False, 'error': str(e)}

        if not result.get('success'):
            logger.warning(
                "verification_email_not_sent user=%s err=%s", user.id, result.get('error', 'Unknown error')
            )
        return result


def get_notification_service(email_service: Optional[Any] = None) -> NotificationService:
    return NotificationService(email_service=email_service)
