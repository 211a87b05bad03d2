# backend/catalog/schemas/reference_schema.py
from datetime import datetime
from typing import Optional

from catalog.schemas.common import CamelModel


class CategoryListDto(CamelModel):
    id: str
    name: str
    description: Optional[str] = None
    is_active: bool
    parent_category_id: Optional[str] = None
    sub_categories_count: int = 0


class CategoryDto(CamelModel):
    id: str
    name: str
    description: Optional[str] = None
    is_active: bool
    parent_category_id: Optional[str] = None
    parent_category_name: Optional[str] = None
    display_order: int = 0
    created_at: datetime
    updated_at: datetime


class AttributeListDto(CamelModel):
    id: str
    name: str
    data_type: str
    is_required: bool


class AttributeDto(AttributeListDto):
    created_at: datetime
    updated_at: datetime
