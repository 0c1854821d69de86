"""Khalti ePayment (KPG-2) client."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests

from .gateway_types import GatewayInitiation, GatewayVerification, PaymentGatewayError, json_or_empty

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT = (3, 30)

SANDBOX_BASE_URL = "https://dev.khalti.com/api/v2"
PRODUCTION_BASE_URL = "https://khalti.com/api/v2"

# Khalti rejects anything below Rs 10
MIN_AMOUNT_PAISA = 1000

_STATUS_MAP = {
    "Completed": "completed",
    "Pending": "pending",
    "Initiated": "pending",
    "Refunded": "refunded",
    "Expired": "expired",
    "User canceled": "canceled",
}


@dataclass
class KhaltiConfig:
    secret_key: str
    environment: str = "sandbox"

    @classmethod
    def from_env(cls) -> "KhaltiConfig":
        return cls(
            secret_key=os.getenv("KHALTI_SECRET_KEY", ""),
            environment=(os.getenv("KHALTI_ENV") or "sandbox").strip().lower(),
        )

    @property
    def base_url(self) -> str:
        return PRODUCTION_BASE_URL if self.environment == "production" else SANDBOX_BASE_URL

    @property
    def is_configured(self) -> bool:
        return bool(self.secret_key)


def map_status(status: Optional[str]) -> str:
    return _STATUS_MAP.get(status or "", "failed")


def to_paisa(amount: float) -> int:
    return int(round(float(amount) * 100))


def from_paisa(amount: Optional[int]) -> Optional[float]:
    if amount is None:
        return None
    return float(amount) / 100


class KhaltiClient:
    def __init__(self, config: Optional[KhaltiConfig] = None) -> None:
        self.config = config or KhaltiConfig.from_env()

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Key {self.config.secret_key}",
            "Content-Type": "application/json",
        }

    def initiate(
        self,
        *,
        amount: float,
        purchase_order_id: str,
        purchase_order_name: str,
        return_url: str,
        website_url: str,
        customer_info: Optional[Dict[str, Any]] = None,
    ) -> GatewayInitiation:
        amount_paisa = to_paisa(amount)
        if amount_paisa < MIN_AMOUNT_PAISA:
            return GatewayInitiation(success=False, error="Minimum payment amount is Rs 10")

        payload: Dict[str, Any] = {
            "return_url": return_url,
            "website_url": website_url,
            "amount": amount_paisa,
            "purchase_order_id": purchase_order_id,
            "purchase_order_name": purchase_order_name,
        }
        if customer_info:
            payload["customer_info"] = {k: v for k, v in customer_info.items() if v}

        try:
            response = requests.post(
                f"{self.config.base_url}/epayment/initiate/",
                json=payload,
                headers=self._headers(),
                timeout=_DEFAULT_TIMEOUT,
            )
        except requests.RequestException as exc:
            logger.error("khalti_initiate_transport_error order=%s err=%s", purchase_order_id, exc)
            raise PaymentGatewayError(f"Khalti request failed: {exc}") from exc

        data = json_or_empty(response)
        if response.status_code >= 400 or not data.get("payment_url"):
            detail = data.get("detail") or data.get("error_key") or f"HTTP {response.status_code}"
            logger.warning("khalti_initiate_rejected order=%s detail=%s", purchase_order_id, detail)
            return GatewayInitiation(success=False, error=str(detail))

        return GatewayInitiation(
            success=True,
            payment_url=data.get("payment_url"),
            pidx=data.get("pidx"),
            expires_at=data.get("expires_at"),
        )

    def lookup(self, pidx: str) -> GatewayVerification:
        try:
            response = requests.post(
                f"{self.config.base_url}/epayment/lookup/",
                json={"pidx": pidx},
                headers=self._headers(),
                timeout=_DEFAULT_TIMEOUT,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            logger.error("khalti_lookup_error pidx=%s err=%s", pidx, exc)
            raise PaymentGatewayError(f"Khalti lookup failed: {exc}") from exc

        data = json_or_empty(response)
        status = map_status(data.get("status"))
        return GatewayVerification(
            success=status == "completed",
            status=status,
            transaction_id=data.get("transaction_id"),
            amount=from_paisa(data.get("total_amount")),
            raw=data,
        )


