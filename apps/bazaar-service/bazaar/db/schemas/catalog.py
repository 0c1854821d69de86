from typing import List, Optional

from .common import ApiModel


class CategoryBase(ApiModel):
    name: str
    slug: Optional[str] = None
    parent_id: Optional[int] = None
    icon: Optional[str] = None
    sort_order: int = 0


class CategoryCreate(CategoryBase):
    pass


class Category(CategoryBase):
    id: int
    slug: str
    is_active: bool


class CategoryTree(Category):
    children: List["CategoryTree"] = []


class LocationBase(ApiModel):
    name: str
    slug: Optional[str] = None
    type: str
    parent_id: Optional[int] = None


class LocationCreate(LocationBase):
    pass


class Location(LocationBase):
    id: int
