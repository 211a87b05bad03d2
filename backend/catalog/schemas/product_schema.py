# backend/catalog/schemas/product_schema.py
from datetime import datetime
from decimal import Decimal
from typing import Annotated, List, Optional

from pydantic import AfterValidator, Field, PlainSerializer

from catalog.schemas.common import CamelModel

SKU_PATTERN = r"^[a-zA-Z0-9_-]+$"
MAX_PRICE = Decimal("1000000")
CENTS = Decimal("0.01")
# stock_quantity is a 32-bit INTEGER column
MAX_STOCK = 2**31 - 1

# read-side prices: always cents, JSON numbers on the wire
Money = Annotated[
    Decimal,
    AfterValidator(lambda v: v.quantize(CENTS)),
    PlainSerializer(float, return_type=float, when_used="json"),
]


# --- read models -----------------------------------------------------------

class CategoryRefDto(CamelModel):
    id: str
    name: str
    description: Optional[str] = None
    is_primary: bool = False


class ProductAttributeDto(CamelModel):
    attribute_id: str
    attribute_name: str
    value: str
    data_type: str


class VariantAttributeDto(CamelModel):
    attribute_id: str
    attribute_name: str
    value: str


class ProductImageDto(CamelModel):
    id: str
    image_url: str
    alt_text: Optional[str] = None
    display_order: int = 0
    is_primary: bool = False


class ProductVariantDto(CamelModel):
    id: str
    sku: str
    name: str
    price: Money  # effective price
    stock_quantity: int
    is_active: bool
    version: str
    attributes: List[VariantAttributeDto] = Field(default_factory=list)


class ProductDto(CamelModel):
    id: str
    sku: str
    name: str
    description: Optional[str] = None
    base_price: Money
    is_active: bool
    created_at: datetime
    updated_at: datetime
    version: str
    categories: List[CategoryRefDto] = Field(default_factory=list)
    attributes: List[ProductAttributeDto] = Field(default_factory=list)
    images: List[ProductImageDto] = Field(default_factory=list)
    variants: List[ProductVariantDto] = Field(default_factory=list)


class ProductSummaryDto(CamelModel):
    id: str
    sku: str
    name: str
    description: Optional[str] = None
    base_price: Money
    is_active: bool
    created_at: datetime
    updated_at: datetime
    primary_image_url: Optional[str] = None
    primary_category_name: Optional[str] = None


# --- write models ----------------------------------------------------------

class AttributeValueIn(CamelModel):
    attribute_id: str
    value: str = Field(max_length=500)


class ProductImageIn(CamelModel):
    image_url: str = Field(min_length=1, max_length=500)
    alt_text: Optional[str] = Field(default=None, max_length=200)
    display_order: int = Field(default=0, ge=0)
    is_primary: bool = False


class _ProductFields(CamelModel):
    name: str = Field(min_length=3, max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)
    base_price: Decimal = Field(gt=0, lt=MAX_PRICE, decimal_places=2)
    category_ids: List[str] = Field(default_factory=list)
    primary_category_id: Optional[str] = None
    attributes: List[AttributeValueIn] = Field(default_factory=list)
    images: List[ProductImageIn] = Field(default_factory=list)


class CreateProductRequest(_ProductFields):
    sku: str = Field(min_length=3, max_length=50, pattern=SKU_PATTERN)
    is_active: bool = True


class UpdateProductRequest(_ProductFields):
    # SKU is immutable after creation
    is_active: bool = True
    version: Optional[str] = None


class _VariantFields(CamelModel):
    name: str = Field(min_length=3, max_length=200)
    price: Optional[Decimal] = Field(default=None, ge=0, lt=MAX_PRICE, decimal_places=2)
    stock_quantity: int = Field(default=0, ge=0, le=MAX_STOCK)
    is_active: bool = True
    attributes: List[AttributeValueIn] = Field(default_factory=list)


class CreateVariantRequest(_VariantFields):
    sku: str = Field(min_length=3, max_length=50, pattern=SKU_PATTERN)


class UpdateVariantRequest(_VariantFields):
    version: Optional[str] = None


class StockAdjustmentRequest(CamelModel):
    # signed: positive restocks, negative consumes
    quantity: int = Field(ge=-MAX_STOCK, le=MAX_STOCK)


class ProductQueryParams(CamelModel):
    page: int = 1
    page_size: int = 20
    search_term: Optional[str] = None
    category_id: Optional[str] = None
    is_active: Optional[bool] = None
    min_price: Optional[Decimal] = None
    max_price: Optional[Decimal] = None
    sort_by: Optional[str] = "createdAt"
    sort_descending: bool = True
