"""
Domain-split Pydantic schemas with an aggregator.

Callers import `from bazaar.db import schemas` and use `schemas.AdCreate` etc.
"""

from .common import ApiModel, Pagination, build_pagination
from .users import (
    UserBase,
    UserCreate,
    LoginRequest,
    User,
    AuthResponse,
    EditorCreate,
    EditorUpdate,
    ProfileUpdate,
    Profile,
    PublicProfile,
    ShopProfile,
    UserSuspendRequest,
    ManagedUser,
    UserList,
)
from .catalog import (
    CategoryBase,
    CategoryCreate,
    Category,
    CategoryTree,
    LocationBase,
    LocationCreate,
    Location,
)
from .ads import (
    AdImageBase,
    AdImageCreate,
    AdImage,
    AdBase,
    AdCreate,
    AdUpdate,
    Ad,
    AdDetail,
    AdList,
    AdStatusUpdate,
    AdSuspendRequest,
    AdDeleteRequest,
    ReviewHistoryEntry,
    EditorStats,
)
from .reports import ReportBase, ReportCreate, ReportUpdate, Report, EditorReport
from .promotions import (
    PromotionPricingBase,
    PromotionPricingCreate,
    PromotionPricingUpdate,
    PromotionPricing,
    PriceCalculation,
    CategoryTierUpsert,
    CategoryTier,
    RootCategoryTier,
    AdPromotion,
)
from .payments import (
    PaymentInitiateRequest,
    PaymentInitiateResponse,
    PaymentVerifyRequest,
    PaymentTransaction,
    PaymentHistory,
    Gateway,
)
from .verification import (
    IndividualVerificationRequest,
    BusinessVerificationRequest,
    VerificationStatus,
    VerificationQueueItem,
    VerificationReviewRequest,
    VerificationPricingBase,
    VerificationPricingUpsert,
    VerificationPricing,
    CampaignBase,
    CampaignCreate,
    Campaign,
)
from .settings import SiteSettingUpdate, SiteSetting
from .audits import AuditLogBase, AuditLogCreate, AuditLog

__all__ = [
    # common
    "ApiModel",
    "Pagination",
    "build_pagination",
    # users
    "UserBase",
    "UserCreate",
    "LoginRequest",
    "User",
    "AuthResponse",
    "EditorCreate",
    "EditorUpdate",
    "ProfileUpdate",
    "Profile",
    "PublicProfile",
    "ShopProfile",
    "UserSuspendRequest",
    "ManagedUser",
    "UserList",
    # catalog
    "CategoryBase",
    "CategoryCreate",
    "Category",
    "CategoryTree",
    "LocationBase",
    "LocationCreate",
    "Location",
    # ads
    "AdImageBase",
    "AdImageCreate",
    "AdImage",
    "AdBase",
    "AdCreate",
    "AdUpdate",
    "Ad",
    "AdDetail",
    "AdList",
    "AdStatusUpdate",
    "AdSuspendRequest",
    "AdDeleteRequest",
    "ReviewHistoryEntry",
    "EditorStats",
    # reports
    "ReportBase",
    "ReportCreate",
    "ReportUpdate",
    "Report",
    "EditorReport",
    # promotions
    "PromotionPricingBase",
    "PromotionPricingCreate",
    "PromotionPricingUpdate",
    "PromotionPricing",
    "PriceCalculation",
    "CategoryTierUpsert",
    "CategoryTier",
    "RootCategoryTier",
    "AdPromotion",
    # payments
    "PaymentInitiateRequest",
    "PaymentInitiateResponse",
    "PaymentVerifyRequest",
    "PaymentTransaction",
    "PaymentHistory",
    "Gateway",
    # verification
    "IndividualVerificationRequest",
    "BusinessVerificationRequest",
    "VerificationStatus",
    "VerificationQueueItem",
    "VerificationReviewRequest",
    "VerificationPricingBase",
    "VerificationPricingUpsert",
    "VerificationPricing",
    "CampaignBase",
    "CampaignCreate",
    "Campaign",
    # settings/audits
    "SiteSettingUpdate",
    "SiteSetting",
    "AuditLogBase",
    "AuditLogCreate",
    "AuditLog",
]
