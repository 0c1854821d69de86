from datetime import datetime
from typing import Any, Dict, List, Optional

from .common import ApiModel, Pagination
from .catalog import Category, Location


class AdImageBase(ApiModel):
    filename: str
    file_path: str
    original_name: Optional[str] = None
    file_size: Optional[int] = None
    mime_type: Optional[str] = None


class AdImageCreate(AdImageBase):
    pass


class AdImage(AdImageBase):
    id: int
    is_primary: bool


class AdBase(ApiModel):
    title: str
    description: str
    price: float
    condition: Optional[str] = None
    seller_name: Optional[str] = None
    seller_phone: Optional[str] = None


class AdCreate(AdBase):
    category_id: Optional[int] = None
    subcategory_id: Optional[int] = None
    location_id: Optional[int] = None
    area_id: Optional[int] = None
    is_negotiable: Optional[bool] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    google_maps_link: Optional[str] = None
    custom_fields: Optional[Dict[str, Any]] = None
    images: List[AdImageCreate] = []


class AdUpdate(ApiModel):
    title: Optional[str] = None
    description: Optional[str] = None
    price: Optional[float] = None
    condition: Optional[str] = None
    category_id: Optional[int] = None
    subcategory_id: Optional[int] = None
    location_id: Optional[int] = None
    area_id: Optional[int] = None
    seller_name: Optional[str] = None
    seller_phone: Optional[str] = None
    is_negotiable: Optional[bool] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    google_maps_link: Optional[str] = None
    custom_fields: Optional[Dict[str, Any]] = None
    # Image ids to keep; anything else attached to the ad is removed
    existing_images: Optional[List[int]] = None
    new_images: List[AdImageCreate] = []


class Ad(AdBase):
    id: int
    slug: Optional[str] = None
    category_id: Optional[int] = None
    location_id: Optional[int] = None
    user_id: int
    status: str
    status_reason: Optional[str] = None
    view_count: int
    custom_fields: Optional[Dict[str, Any]] = None
    is_featured: bool
    featured_until: Optional[datetime] = None
    is_urgent: bool
    urgent_until: Optional[datetime] = None
    is_sticky: bool
    sticky_until: Optional[datetime] = None
    primary_image: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None


class AdDetail(Ad):
    images: List[AdImage] = []
    category: Optional[Category] = None
    location: Optional[Location] = None
    location_breadcrumb: List[Location] = []
    reviewed_at: Optional[datetime] = None
    suspended_until: Optional[datetime] = None
    suspension_reason: Optional[str] = None
    deleted_at: Optional[datetime] = None


class AdList(ApiModel):
    ads: List[Ad]
    pagination: Pagination


class AdStatusUpdate(ApiModel):
    status: str
    reason: Optional[str] = None


class AdSuspendRequest(ApiModel):
    reason: str
    # Days; omitted means indefinite
    duration: Optional[int] = None


class AdDeleteRequest(ApiModel):
    reason: Optional[str] = None


class ReviewHistoryEntry(ApiModel):
    id: int
    ad_id: int
    action: str
    actor_id: Optional[int] = None
    actor_type: str
    reason: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime


class EditorStats(ApiModel):
    pending_ads: int
    approved_ads: int
    suspended_ads: int
    pending_reports: int
    pending_individual_verifications: int
    pending_business_verifications: int
