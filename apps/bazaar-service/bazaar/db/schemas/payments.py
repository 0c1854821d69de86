from datetime import datetime
from typing import Any, Dict, List, Optional

from .common import ApiModel, Pagination


class PaymentInitiateRequest(ApiModel):
    gateway: str
    amount: float
    payment_type: str
    related_id: Optional[int] = None
    product_name: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None


class PaymentInitiateResponse(ApiModel):
    transaction_id: int
    order_id: str
    gateway: str
    payment_url: Optional[str] = None
    pidx: Optional[str] = None
    form_data: Optional[Dict[str, str]] = None
    expires_at: Optional[str] = None


class PaymentVerifyRequest(ApiModel):
    order_id: str
    pidx: Optional[str] = None


class PaymentTransaction(ApiModel):
    id: int
    user_id: int
    payment_type: str
    payment_gateway: str
    amount: float
    # Merchant order id
    transaction_id: str
    reference_id: Optional[str] = None
    related_id: Optional[int] = None
    status: str
    failure_reason: Optional[str] = None
    verified_at: Optional[datetime] = None
    created_at: datetime


class PaymentHistory(ApiModel):
    transactions: List[PaymentTransaction]
    pagination: Pagination


class Gateway(ApiModel):
    id: str
    name: str
    enabled: bool
