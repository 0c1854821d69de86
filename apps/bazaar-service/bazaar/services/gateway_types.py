"""Result types shared by the payment gateway clients."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


class PaymentGatewayError(RuntimeError):
    """Raised when a gateway call fails at the transport or protocol level."""


@dataclass
class GatewayInitiation:
    success: bool
    payment_url: Optional[str] = None
    pidx: Optional[str] = None
    expires_at: Optional[str] = None
    form_data: Optional[Dict[str, str]] = None
    error: Optional[str] = None


@dataclass
class GatewayVerification:
    success: bool
    # Normalized: completed | pending | refunded | expired | canceled | failed
    status: str
    transaction_id: Optional[str] = None
    amount: Optional[float] = None
    raw: Dict[str, Any] = field(default_factory=dict)


def json_or_empty(response) -> Dict[str, Any]:
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}
