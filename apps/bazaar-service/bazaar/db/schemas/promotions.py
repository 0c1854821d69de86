from datetime import datetime
from typing import Optional

from .common import ApiModel


class PromotionPricingBase(ApiModel):
    promotion_type: str
    duration_days: int
    account_type: str
    pricing_tier: str = "default"
    price: float
    discount_percentage: int = 0


class PromotionPricingCreate(PromotionPricingBase):
    is_active: bool = True


class PromotionPricingUpdate(ApiModel):
    price: Optional[float] = None
    discount_percentage: Optional[int] = None
    is_active: Optional[bool] = None


class PromotionPricing(PromotionPricingBase):
    id: int
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PriceCalculation(ApiModel):
    promotion_type: str
    duration_days: int
    account_type: str
    pricing_tier: str
    price: float
    discount_percentage: int
    final_price: float
    currency: str = "NPR"


class CategoryTierUpsert(ApiModel):
    category_id: int
    pricing_tier: str


class CategoryTier(ApiModel):
    id: int
    category_id: int
    category_name: Optional[str] = None
    pricing_tier: str


class RootCategoryTier(ApiModel):
    id: int
    name: str
    slug: str
    pricing_tier: str


class AdPromotion(ApiModel):
    id: int
    ad_id: int
    user_id: int
    promotion_type: str
    duration_days: int
    price_paid: float
    account_type: str
    payment_reference: Optional[str] = None
    payment_method: Optional[str] = None
    starts_at: datetime
    expires_at: datetime
    is_active: bool
