"""Business logic services package with public service helpers."""

from .gateway_types import GatewayInitiation, GatewayVerification, PaymentGatewayError
from .promotion_service import PromotionError, activate_promotion, deactivate_expired_promotions
from .verification_service import VerificationError, expire_verifications
from .payment_service import PaymentError

__all__ = [
    "GatewayInitiation",
    "GatewayVerification",
    "PaymentGatewayError",
    "PromotionError",
    "activate_promotion",
    "deactivate_expired_promotions",
    "VerificationError",
    "expire_verifications",
    "PaymentError",
]
