"""eSewa ePay v2 client: signed form checkout plus transaction status API."""
from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests

from .gateway_types import GatewayInitiation, GatewayVerification, PaymentGatewayError, json_or_empty

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT = (3, 30)

SANDBOX_FORM_BASE_URL = "https://rc-epay.esewa.com.np"
PRODUCTION_FORM_BASE_URL = "https://epay.esewa.com.np"
SANDBOX_STATUS_BASE_URL = "https://rc.esewa.com.np"
PRODUCTION_STATUS_BASE_URL = "https://esewa.com.np"
FORM_PATH = "/api/epay/main/v2/form"
STATUS_PATH = "/api/epay/transaction/status/"

# Public test credentials published by eSewa for the sandbox
DEFAULT_MERCHANT_CODE = "EPAYTEST"
DEFAULT_SECRET_KEY = "8gBm/:&EnhH.1/q"

SIGNED_FIELD_NAMES = "total_amount,transaction_uuid,product_code"

_STATUS_MAP = {
    "COMPLETE": "completed",
    "PENDING": "pending",
    "AMBIGUOUS": "pending",
    "FULL_REFUND": "refunded",
    "PARTIAL_REFUND": "refunded",
    "NOT_FOUND": "expired",
    "CANCELED": "canceled",
}


@dataclass
class EsewaConfig:
    merchant_code: str = DEFAULT_MERCHANT_CODE
    secret_key: str = DEFAULT_SECRET_KEY
    environment: str = "sandbox"

    @classmethod
    def from_env(cls) -> "EsewaConfig":
        return cls(
            merchant_code=os.getenv("ESEWA_MERCHANT_CODE") or DEFAULT_MERCHANT_CODE,
            secret_key=os.getenv("ESEWA_SECRET_KEY") or DEFAULT_SECRET_KEY,
            environment=(os.getenv("ESEWA_ENV") or "sandbox").strip().lower(),
        )

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def form_url(self) -> str:
        base = PRODUCTION_FORM_BASE_URL if self.is_production else SANDBOX_FORM_BASE_URL
        return f"{base}{FORM_PATH}"

    @property
    def status_url(self) -> str:
        base = PRODUCTION_STATUS_BASE_URL if self.is_production else SANDBOX_STATUS_BASE_URL
        return f"{base}{STATUS_PATH}"

    @property
    def is_configured(self) -> bool:
        return bool(self.merchant_code and self.secret_key)


def map_status(status: Optional[str]) -> str:
    return _STATUS_MAP.get((status or "").upper(), "failed")


def format_amount(amount: Any) -> str:
    """Render amounts the way eSewa echoes them back (no trailing .0 for whole rupees)."""
    value = float(amount)
    if value.is_integer():
        return str(int(value))
    return f"{value:.2f}"


def generate_signature(message: str, secret_key: str) -> str:
    digest = hmac.new(secret_key.encode("utf-8"), message.encode("utf-8"), hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def build_signature_message(total_amount: str, transaction_uuid: str, product_code: str) -> str:
    return f"total_amount={total_amount},transaction_uuid={transaction_uuid},product_code={product_code}"


def decode_callback(data: str) -> Dict[str, Any]:
    """Decode the base64 JSON ``data`` parameter eSewa appends to the success URL."""
    try:
        decoded = base64.b64decode(data).decode("utf-8")
        payload = json.loads(decoded)
    except (binascii.Error, UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise PaymentGatewayError("Invalid eSewa callback payload") from exc
    if not isinstance(payload, dict):
        raise PaymentGatewayError("Invalid eSewa callback payload")
    return payload


class EsewaClient:
    def __init__(self, config: Optional[EsewaConfig] = None) -> None:
        self.config = config or EsewaConfig.from_env()

    def sign(self, total_amount: str, transaction_uuid: str) -> str:
        message = build_signature_message(total_amount, transaction_uuid, self.config.merchant_code)
        return generate_signature(message, self.config.secret_key)

    def initiate(
        self,
        *,
        amount: float,
        transaction_uuid: str,
        success_url: str,
        failure_url: Optional[str] = None,
    ) -> GatewayInitiation:
        total_amount = format_amount(amount)
        if failure_url is None:
            failure_url = success_url.replace("/success", "/failure")
        form_data = {
            "amount": total_amount,
            "tax_amount": "0",
            "total_amount": total_amount,
            "transaction_uuid": transaction_uuid,
            "product_code": self.config.merchant_code,
            "product_service_charge": "0",
            "product_delivery_charge": "0",
            "success_url": success_url,
            "failure_url": failure_url,
            "signed_field_names": SIGNED_FIELD_NAMES,
            "signature": self.sign(total_amount, transaction_uuid),
        }
        return GatewayInitiation(success=True, payment_url=self.config.form_url, form_data=form_data)

    def verify_callback_signature(self, payload: Dict[str, Any]) -> bool:
        signed_fields = str(payload.get("signed_field_names") or "").split(",")
        signature = payload.get("signature")
        if not signature or not signed_fields or signed_fields == [""]:
            return False
        message = ",".join(f"{name}={payload.get(name, '')}" for name in signed_fields)
        expected = generate_signature(message, self.config.secret_key)
        return hmac.compare_digest(expected, str(signature))

    def check_status(self, *, transaction_uuid: str, total_amount: Any) -> GatewayVerification:
        params = {
            "product_code": self.config.merchant_code,
            "total_amount": format_amount(total_amount),
            "transaction_uuid": transaction_uuid,
        }
        try:
            response = requests.get(self.config.status_url, params=params, timeout=_DEFAULT_TIMEOUT)
            response.raise_for_status()
        except requests.RequestException as exc:
            logger.error("esewa_status_error uuid=%s err=%s", transaction_uuid, exc)
            raise PaymentGatewayError(f"eSewa status check failed: {exc}") from exc

        data = json_or_empty(response)
        status = map_status(data.get("status"))
        return GatewayVerification(
            success=status == "completed",
            status=status,
            transaction_id=data.get("ref_id") or data.get("transaction_code"),
            amount=float(data["total_amount"]) if data.get("total_amount") is not None else None,
            raw=data,
        )
