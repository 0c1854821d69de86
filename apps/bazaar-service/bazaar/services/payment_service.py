"""
Payment orchestration across Khalti and eSewa.

A payment starts as a ``pending`` row in ``payment_transactions`` keyed by a
merchant order id. The gateway then sends the buyer back to the callback
URL, where the payment is verified against the gateway and, on success, the
purchased item (ad promotion or verification request) is fulfilled.
"""
from __future__ import annotations

import logging
import secrets
import string
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy.orm import Session

from bazaar import audit
from bazaar.db import models, schemas
from bazaar.db.repositories import ads as repo_ads
from bazaar.db.repositories import payments as repo_payments
from bazaar.db.repositories import verification as repo_verification
from bazaar.utils.feature_flags import esewa_enabled, khalti_enabled, promotions_enabled
from bazaar.utils.urls import build_url, get_api_base_url, get_app_base_url

from .esewa import EsewaClient, EsewaConfig, decode_callback
from .gateway_types import GatewayInitiation, GatewayVerification, PaymentGatewayError
from .khalti import KhaltiClient, KhaltiConfig
from .promotion_service import PromotionError, activate_promotion, get_account_type, get_ad_tier, quote_price
from .verification_service import mark_business_pending

logger = logging.getLogger(__name__)

GATEWAY_KHALTI = "khalti"
GATEWAY_ESEWA = "esewa"
GATEWAY_NAMES = {GATEWAY_KHALTI: "Khalti", GATEWAY_ESEWA: "eSewa"}

PAYMENT_AD_PROMOTION = "ad_promotion"
PAYMENT_INDIVIDUAL_VERIFICATION = "individual_verification"
PAYMENT_BUSINESS_VERIFICATION = "business_verification"
PAYMENT_TYPES = (PAYMENT_AD_PROMOTION, PAYMENT_INDIVIDUAL_VERIFICATION, PAYMENT_BUSINESS_VERIFICATION)

MIN_PAYMENT_AMOUNT = 10
# Gateways round differently; anything within a rupee is the same payment
AMOUNT_TOLERANCE = 1

_ORDER_SUFFIX_ALPHABET = string.ascii_uppercase + string.digits


class PaymentError(Exception):
    def __init__(self, message: str, status_code: int = 400) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


@dataclass
class CallbackOutcome:
    success: bool
    order_id: Optional[str] = None
    payment_type: Optional[str] = None
    reason: Optional[str] = None

    def redirect_url(self) -> str:
        base = get_app_base_url()
        if self.success:
            return build_url(base, "/payment/success", {"orderId": self.order_id, "type": self.payment_type})
        return build_url(base, "/payment/failure", {"orderId": self.order_id, "reason": self.reason or "failed"})


def get_khalti_client() -> KhaltiClient:
    return KhaltiClient(KhaltiConfig.from_env())


def get_esewa_client() -> EsewaClient:
    return EsewaClient(EsewaConfig.from_env())


def _now() -> datetime:
    return datetime.now(timezone.utc)


def is_gateway_enabled(gateway: str) -> bool:
    if gateway == GATEWAY_KHALTI:
        return khalti_enabled() and KhaltiConfig.from_env().is_configured
    if gateway == GATEWAY_ESEWA:
        return esewa_enabled() and EsewaConfig.from_env().is_configured
    return False


def list_gateways() -> List[schemas.Gateway]:
    return [
        schemas.Gateway(id=gateway_id, name=name, enabled=is_gateway_enabled(gateway_id))
        for gateway_id, name in GATEWAY_NAMES.items()
    ]


def generate_order_id(payment_type: str) -> str:
    """Merchant order id, e.g. ``TB_AD__1718000000000_X4K9QZ`` for ad promotions."""
    millis = int(time.time() * 1000)
    suffix = "".join(secrets.choice(_ORDER_SUFFIX_ALPHABET) for _ in range(6))
    return f"TB_{payment_type[:3].upper()}_{millis}_{suffix}"


def _callback_url(gateway: str, order_id: str, payment_type: str, related_id: Optional[int]) -> str:
    return build_url(
        get_api_base_url(),
        "/payments/callback",
        {"gateway": gateway, "orderId": order_id, "paymentType": payment_type, "relatedId": related_id},
    )


def _default_product_name(payment_type: str) -> str:
    return {
        PAYMENT_AD_PROMOTION: "Ad Promotion",
        PAYMENT_INDIVIDUAL_VERIFICATION: "Individual Verification",
        PAYMENT_BUSINESS_VERIFICATION: "Business Verification",
    }.get(payment_type, "ThuluBazaar Payment")


def promotion_price(
    db: Session,
    user: models.User,
    ad_id: Any,
    metadata: Mapping[str, Any],
) -> float:
    """Server-side price of an ad promotion for this ad's tier and the buyer's account type."""
    promotion_type = metadata.get("promotionType")
    try:
        duration_days = int(metadata.get("durationDays") or 0)
        ad_id = int(ad_id or 0)
    except (TypeError, ValueError):
        raise PaymentError("Invalid promotion details")
    if not ad_id or not promotion_type or duration_days <= 0:
        raise PaymentError("Missing promotion details")

    ad = repo_ads.get_ad(db, ad_id)
    if ad is None or ad.deleted_at is not None:
        raise PaymentError("Ad not found", status_code=404)
    if ad.user_id != user.id:
        raise PaymentError("You can only promote your own ads", status_code=403)
    try:
        quote = quote_price(
            db,
            promotion_type=promotion_type,
            duration_days=duration_days,
            account_type=get_account_type(user),
            pricing_tier=get_ad_tier(db, ad),
        )
    except PromotionError as exc:
        raise PaymentError(exc.message, status_code=exc.status_code) from exc
    return quote.final_price


def verification_price(db: Session, user: models.User, payment_type: str, related_id: Optional[int]) -> float:
    """Amount recorded on the user's unpaid verification request."""
    verification_type = payment_type.split("_", 1)[0]
    request = repo_verification.get_request(db, verification_type, related_id) if related_id else None
    if request is None or request.user_id != user.id:
        raise PaymentError("Verification request not found", status_code=404)
    if request.status != "pending_payment":
        raise PaymentError("Verification request is not awaiting payment")
    return float(request.payment_amount or 0)


def expected_amount(
    db: Session,
    user: models.User,
    payment_type: str,
    related_id: Optional[int],
    metadata: Mapping[str, Any],
) -> float:
    if payment_type == PAYMENT_AD_PROMOTION:
        return promotion_price(db, user, related_id or metadata.get("adId"), metadata)
    return verification_price(db, user, payment_type, related_id)


def _amount_matches(paid: Any, expected: float) -> bool:
    return abs(float(paid) - expected) <= AMOUNT_TOLERANCE


def initiate_payment(
    db: Session,
    user: models.User,
    payload: schemas.PaymentInitiateRequest,
) -> schemas.PaymentInitiateResponse:
    gateway = (payload.gateway or "").strip().lower()
    if gateway not in GATEWAY_NAMES:
        raise PaymentError(f"Invalid gateway. Must be one of: {', '.join(GATEWAY_NAMES)}")
    if not is_gateway_enabled(gateway):
        raise PaymentError(f"{GATEWAY_NAMES[gateway]} payments are currently disabled")
    if payload.payment_type not in PAYMENT_TYPES:
        raise PaymentError(f"Invalid payment type. Must be one of: {', '.join(PAYMENT_TYPES)}")
    if payload.payment_type == PAYMENT_AD_PROMOTION and not promotions_enabled():
        raise PaymentError("Ad promotions are currently disabled")
    if payload.amount < MIN_PAYMENT_AMOUNT:
        raise PaymentError(f"Minimum payment amount is Rs {MIN_PAYMENT_AMOUNT}")
    expected = expected_amount(db, user, payload.payment_type, payload.related_id, payload.metadata or {})
    if not _amount_matches(payload.amount, expected):
        raise PaymentError(f"Payment amount does not match expected price (NPR {expected:g})")

    order_id = generate_order_id(payload.payment_type)
    return_url = _callback_url(gateway, order_id, payload.payment_type, payload.related_id)
    product_name = payload.product_name or _default_product_name(payload.payment_type)

    txn = repo_payments.create_transaction(
        db,
        user_id=user.id,
        payment_type=payload.payment_type,
        payment_gateway=gateway,
        amount=payload.amount,
        transaction_id=order_id,
        related_id=payload.related_id,
        metadata=dict(payload.metadata or {}, productName=product_name),
    )

    try:
        if gateway == GATEWAY_KHALTI:
            result = get_khalti_client().initiate(
                amount=payload.amount,
                purchase_order_id=order_id,
                purchase_order_name=product_name,
                return_url=return_url,
                website_url=get_app_base_url(),
                customer_info={"name": user.full_name, "email": user.email, "phone": user.phone},
            )
        else:
            result = get_esewa_client().initiate(
                amount=payload.amount,
                transaction_uuid=order_id,
                success_url=return_url,
            )
    except PaymentGatewayError as exc:
        result = GatewayInitiation(success=False, error=str(exc))

    if not result.success:
        repo_payments.update_status(db, txn, "failed", failure_reason=result.error)
        logger.warning("payment_initiate_failed order=%s gateway=%s err=%s", order_id, gateway, result.error)
        raise PaymentError(result.error or "Failed to initiate payment", status_code=502)

    extra: Dict[str, Any] = {"paymentUrl": result.payment_url, "pidx": result.pidx, "expiresAt": result.expires_at}
    if result.form_data:
        extra["formData"] = result.form_data
    repo_payments.merge_metadata(db, txn, extra)
    logger.info(
        "payment_initiated order=%s gateway=%s type=%s amount=%s user=%s",
        order_id, gateway, payload.payment_type, payload.amount, user.id,
    )

    return schemas.PaymentInitiateResponse(
        transaction_id=txn.id,
        order_id=order_id,
        gateway=gateway,
        payment_url=result.payment_url,
        pidx=result.pidx,
        form_data=result.form_data,
        expires_at=result.expires_at,
    )


def _verify_esewa_data(txn: models.PaymentTransaction, data: str) -> Optional[GatewayVerification]:
    """Trust the redirect payload only when it is COMPLETE, signed, and for this order."""
    try:
        payload = decode_callback(data)
    except PaymentGatewayError as exc:
        logger.warning("esewa_callback_undecodable order=%s err=%s", txn.transaction_id, exc)
        return None
    client = get_esewa_client()
    if (
        str(payload.get("status", "")).upper() == "COMPLETE"
        and payload.get("transaction_uuid") == txn.transaction_id
        and client.verify_callback_signature(payload)
    ):
        amount = payload.get("total_amount")
        return GatewayVerification(
            success=True,
            status="completed",
            transaction_id=payload.get("transaction_code"),
            amount=float(str(amount).replace(",", "")) if amount is not None else None,
            raw=payload,
        )
    return None


def _run_gateway_verification(
    db: Session,
    txn: models.PaymentTransaction,
    params: Mapping[str, Any],
) -> GatewayVerification:
    if txn.payment_gateway == GATEWAY_KHALTI:
        pidx = params.get("pidx") or (txn.metadata_json or {}).get("pidx")
        if not pidx:
            raise PaymentError("Missing Khalti payment identifier")
        return get_khalti_client().lookup(pidx)

    data = params.get("data")
    if data:
        verification = _verify_esewa_data(txn, data)
        if verification is not None:
            return verification
    return get_esewa_client().check_status(transaction_uuid=txn.transaction_id, total_amount=txn.amount)


def _apply_verification(
    db: Session,
    txn: models.PaymentTransaction,
    verification: GatewayVerification,
) -> models.PaymentTransaction:
    if verification.success and verification.amount is not None:
        if abs(verification.amount - float(txn.amount)) > AMOUNT_TOLERANCE:
            logger.error(
                "payment_amount_mismatch order=%s expected=%s got=%s",
                txn.transaction_id, txn.amount, verification.amount,
            )
            return repo_payments.update_status(db, txn, "failed", failure_reason="Amount mismatch")

    if verification.success:
        return mark_payment_verified(db, txn, reference_id=verification.transaction_id)

    status = verification.status if verification.status != "completed" else "failed"
    txn = repo_payments.update_status(
        db, txn, status,
        failure_reason=None if status == "pending" else f"Gateway status: {status}",
    )
    if status != "pending":
        audit.log_payment(
            db,
            actor_user_id=txn.user_id,
            transaction_id=txn.id,
            action=audit.AuditAction.PAYMENT_FAILED,
            status=audit.AuditStatus.FAILURE,
            metadata={"orderId": txn.transaction_id, "gatewayStatus": status},
        )
    return txn


def mark_payment_verified(
    db: Session,
    txn: models.PaymentTransaction,
    *,
    reference_id: Optional[str] = None,
) -> models.PaymentTransaction:
    if not repo_payments.mark_verified_if_pending(db, txn, verified_at=_now(), reference_id=reference_id):
        logger.info("payment_already_processed order=%s status=%s", txn.transaction_id, txn.status)
        return txn
    logger.info("payment_verified order=%s gateway=%s ref=%s", txn.transaction_id, txn.payment_gateway, reference_id)
    handle_payment_success(db, txn)
    audit.log_payment(
        db,
        actor_user_id=txn.user_id,
        transaction_id=txn.id,
        action=audit.AuditAction.PAYMENT_VERIFIED,
        metadata={
            "orderId": txn.transaction_id,
            "gateway": txn.payment_gateway,
            "paymentType": txn.payment_type,
            "amount": float(txn.amount),
        },
    )
    return txn


def _record_fulfilment_error(db: Session, txn: models.PaymentTransaction, message: str) -> None:
    logger.error("payment_fulfilment_failed order=%s err=%s", txn.transaction_id, message)
    repo_payments.merge_metadata(db, txn, {"fulfilmentError": message})


def handle_payment_success(db: Session, txn: models.PaymentTransaction) -> None:
    """Fulfil what was bought. Failures are recorded on the transaction, not raised."""
    metadata = txn.metadata_json or {}
    user = db.query(models.User).filter(models.User.id == txn.user_id).first()
    if user is None:
        _record_fulfilment_error(db, txn, "User not found")
        return

    if txn.payment_type == PAYMENT_AD_PROMOTION:
        ad_id = txn.related_id or metadata.get("adId")
        try:
            price = promotion_price(db, user, ad_id, metadata)
        except PaymentError as exc:
            _record_fulfilment_error(db, txn, exc.message)
            return
        if float(txn.amount) + AMOUNT_TOLERANCE < price:
            _record_fulfilment_error(db, txn, "Amount paid does not cover the promotion price")
            return
        try:
            activate_promotion(
                db,
                ad_id=int(ad_id),
                user_id=txn.user_id,
                promotion_type=metadata["promotionType"],
                duration_days=int(metadata["durationDays"]),
                price_paid=float(txn.amount),
                payment_reference=txn.transaction_id,
                payment_method=txn.payment_gateway,
            )
        except PromotionError as exc:
            db.rollback()
            _record_fulfilment_error(db, txn, exc.message)
        return

    if txn.payment_type in (PAYMENT_INDIVIDUAL_VERIFICATION, PAYMENT_BUSINESS_VERIFICATION):
        verification_type = txn.payment_type.split("_", 1)[0]
        request = repo_verification.get_request(db, verification_type, txn.related_id) if txn.related_id else None
        if request is None or request.user_id != txn.user_id:
            _record_fulfilment_error(db, txn, "Verification request not found")
            return
        if not _amount_matches(txn.amount, float(request.payment_amount or 0)):
            _record_fulfilment_error(db, txn, "Amount paid does not match the verification price")
            return
        if request.status == "pending_payment":
            request.status = "pending"
        request.payment_status = "paid"
        request.payment_reference = txn.transaction_id
        db.commit()
        if verification_type == "business" and request.status == "pending":
            mark_business_pending(db, request.user)
        logger.info("verification_payment_applied type=%s request=%s", verification_type, request.id)


def extract_esewa_data(params: Mapping[str, Any]) -> Optional[str]:
    """eSewa appends ``?data=`` even when the success URL already has a query string."""
    data = params.get("data")
    if data:
        return data
    for value in params.values():
        if isinstance(value, str) and "?data=" in value:
            return value.split("?data=", 1)[1]
    return None


def _clean_param(value: Any) -> Any:
    if isinstance(value, str) and "?data=" in value:
        return value.split("?data=", 1)[0]
    return value


def handle_callback(db: Session, params: Mapping[str, Any]) -> CallbackOutcome:
    clean = {key: _clean_param(value) for key, value in params.items()}
    esewa_data = extract_esewa_data(params)
    if esewa_data:
        clean["data"] = esewa_data

    order_id = clean.get("orderId") or clean.get("purchase_order_id")
    payment_type = clean.get("paymentType")
    if not order_id:
        return CallbackOutcome(success=False, reason="missing_order_id")

    txn = repo_payments.get_by_order_id(db, order_id, for_update=True)
    if txn is None:
        logger.warning("payment_callback_unknown_order order=%s", order_id)
        return CallbackOutcome(success=False, order_id=order_id, reason="transaction_not_found")

    payment_type = txn.payment_type
    if txn.status == "verified":
        return CallbackOutcome(success=True, order_id=order_id, payment_type=payment_type)

    if txn.payment_gateway == GATEWAY_KHALTI and clean.get("status") == "User canceled":
        repo_payments.update_status(db, txn, "canceled", failure_reason="User canceled")
        logger.info("payment_canceled order=%s", order_id)
        return CallbackOutcome(success=False, order_id=order_id, reason="canceled")

    try:
        verification = _run_gateway_verification(db, txn, clean)
    except (PaymentGatewayError, PaymentError) as exc:
        logger.error("payment_callback_verification_error order=%s err=%s", order_id, exc)
        return CallbackOutcome(success=False, order_id=order_id, reason="verification_error")

    txn = _apply_verification(db, txn, verification)
    if txn.status == "verified":
        return CallbackOutcome(success=True, order_id=order_id, payment_type=payment_type)
    return CallbackOutcome(success=False, order_id=order_id, reason=txn.status)


def verify_payment(
    db: Session,
    user: models.User,
    payload: schemas.PaymentVerifyRequest,
) -> models.PaymentTransaction:
    txn = repo_payments.get_by_order_id(db, payload.order_id, for_update=True)
    if txn is None:
        raise PaymentError("Transaction not found", status_code=404)
    if txn.user_id != user.id:
        raise PaymentError("Forbidden", status_code=403)
    if txn.status != "pending":
        return txn

    params = {"pidx": payload.pidx} if payload.pidx else {}
    try:
        verification = _run_gateway_verification(db, txn, params)
    except PaymentGatewayError as exc:
        raise PaymentError(str(exc), status_code=502) from exc
    return _apply_verification(db, txn, verification)
