from datetime import datetime
from typing import List, Optional

from .common import ApiModel


class IndividualVerificationRequest(ApiModel):
    id: int
    user_id: int
    full_name: str
    id_document_type: str
    id_document_number: Optional[str] = None
    status: str
    rejection_reason: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    duration_days: int
    payment_amount: float
    payment_reference: Optional[str] = None
    payment_status: str
    created_at: datetime


class BusinessVerificationRequest(ApiModel):
    id: int
    user_id: int
    business_name: str
    business_category: Optional[str] = None
    business_description: Optional[str] = None
    business_website: Optional[str] = None
    business_phone: Optional[str] = None
    business_address: Optional[str] = None
    status: str
    rejection_reason: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    duration_days: int
    payment_amount: float
    payment_reference: Optional[str] = None
    payment_status: str
    created_at: datetime


class VerificationStatus(ApiModel):
    individual_verified: bool
    individual_verification_expires_at: Optional[datetime] = None
    business_verification_status: Optional[str] = None
    business_verification_expires_at: Optional[datetime] = None
    shop_slug: Optional[str] = None
    individual_request: Optional[IndividualVerificationRequest] = None
    business_request: Optional[BusinessVerificationRequest] = None


class VerificationQueueItem(ApiModel):
    type: str
    id: int
    user_id: int
    email: Optional[str] = None
    name: str
    status: str
    duration_days: int
    payment_amount: float
    payment_status: str
    created_at: datetime


class VerificationReviewRequest(ApiModel):
    reason: Optional[str] = None


class VerificationPricingBase(ApiModel):
    verification_type: str
    duration_days: int
    price: float
    discount_percentage: int = 0
    is_active: bool = True


class VerificationPricingUpsert(VerificationPricingBase):
    pass


class VerificationPricing(VerificationPricingBase):
    id: int


class CampaignBase(ApiModel):
    name: str
    description: Optional[str] = None
    discount_percentage: int
    banner_text: Optional[str] = None
    banner_emoji: Optional[str] = None
    start_date: datetime
    end_date: datetime
    is_active: bool = True
    applies_to_types: List[str] = []
    min_duration_days: Optional[int] = None
    max_uses: Optional[int] = None


class CampaignCreate(CampaignBase):
    pass


class Campaign(CampaignBase):
    id: int
    current_uses: int
    applies_to_types: Optional[List[str]] = None
