from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from catalog.cache import CacheBackend, get_cache
from catalog.config import settings
from catalog.db import get_db
from catalog.schemas.common import ApiResponse, PagedResponse
from catalog.schemas.product_schema import (
    CreateProductRequest,
    CreateVariantRequest,
    ProductDto,
    ProductQueryParams,
    ProductSummaryDto,
    ProductVariantDto,
    StockAdjustmentRequest,
    UpdateProductRequest,
    UpdateVariantRequest,
)
from catalog.services.product_service import ProductService
from catalog.services.stock_service import StockService
from catalog.services.variant_service import VariantService

router = APIRouter(prefix="/products", tags=["products"])


@router.get("", summary="List products", response_model=PagedResponse[ProductSummaryDto])
def list_products(
    page: int = Query(1),
    page_size: int = Query(settings.DEFAULT_PAGE_SIZE, alias="pageSize"),
    search_term: Optional[str] = Query(None, alias="searchTerm"),
    category_id: Optional[str] = Query(None, alias="categoryId"),
    is_active: Optional[bool] = Query(None, alias="isActive"),
    min_price: Optional[Decimal] = Query(None, alias="minPrice"),
    max_price: Optional[Decimal] = Query(None, alias="maxPrice"),
    sort_by: Optional[str] = Query("createdAt", alias="sortBy"),
    sort_descending: bool = Query(True, alias="sortDescending"),
    db: Session = Depends(get_db),
    cache: CacheBackend = Depends(get_cache),
):
    # out-of-range paging is clamped by the service, not rejected
    params = ProductQueryParams(
        page=page,
        page_size=page_size,
        search_term=search_term,
        category_id=category_id,
        is_active=is_active,
        min_price=min_price,
        max_price=max_price,
        sort_by=sort_by,
        sort_descending=sort_descending,
    )
    data, metadata = ProductService(db, cache).list_products(params)
    return PagedResponse[ProductSummaryDto](data=data, metadata=metadata)


@router.get("/sku/{sku}", summary="Get product by SKU", response_model=ApiResponse[ProductDto])
def get_product_by_sku(sku: str, db: Session = Depends(get_db), cache: CacheBackend = Depends(get_cache)):
    return ApiResponse[ProductDto].ok(ProductService(db, cache).get_product_by_sku(sku))


@router.get("/{product_id}", summary="Get product", response_model=ApiResponse[ProductDto])
def get_product(product_id: str, db: Session = Depends(get_db), cache: CacheBackend = Depends(get_cache)):
    return ApiResponse[ProductDto].ok(ProductService(db, cache).get_product(product_id))


@router.post("", status_code=201, summary="Create product", response_model=ApiResponse[ProductDto])
def create_product(
    payload: CreateProductRequest,
    response: Response,
    db: Session = Depends(get_db),
    cache: CacheBackend = Depends(get_cache),
):
    dto = ProductService(db, cache).create_product(payload)
    response.headers["Location"] = f"{settings.API_PREFIX}/products/{dto.id}"
    return ApiResponse[ProductDto].ok(dto)


@router.put("/{product_id}", summary="Replace product", response_model=ApiResponse[ProductDto])
def update_product(
    product_id: str,
    payload: UpdateProductRequest,
    db: Session = Depends(get_db),
    cache: CacheBackend = Depends(get_cache),
):
    return ApiResponse[ProductDto].ok(ProductService(db, cache).update_product(product_id, payload))


@router.delete("/{product_id}", summary="Delete product", response_model=ApiResponse[bool])
def delete_product(product_id: str, db: Session = Depends(get_db), cache: CacheBackend = Depends(get_cache)):
    return ApiResponse[bool].ok(ProductService(db, cache).delete_product(product_id))


# --- variants --------------------------------------------------------------

@router.get(
    "/{product_id}/variants",
    summary="List variants of a product",
    response_model=ApiResponse[List[ProductVariantDto]],
)
def list_variants(product_id: str, db: Session = Depends(get_db), cache: CacheBackend = Depends(get_cache)):
    return ApiResponse[List[ProductVariantDto]].ok(VariantService(db, cache).list_variants(product_id))


@router.post(
    "/{product_id}/variants",
    status_code=201,
    summary="Create variant",
    response_model=ApiResponse[ProductVariantDto],
)
def create_variant(
    product_id: str,
    payload: CreateVariantRequest,
    response: Response,
    db: Session = Depends(get_db),
    cache: CacheBackend = Depends(get_cache),
):
    dto = VariantService(db, cache).create_variant(product_id, payload)
    response.headers["Location"] = f"{settings.API_PREFIX}/products/{product_id}/variants/{dto.id}"
    return ApiResponse[ProductVariantDto].ok(dto)


@router.put(
    "/{product_id}/variants/{variant_id}",
    summary="Replace variant",
    response_model=ApiResponse[ProductVariantDto],
)
def update_variant(
    product_id: str,
    variant_id: str,
    payload: UpdateVariantRequest,
    db: Session = Depends(get_db),
    cache: CacheBackend = Depends(get_cache),
):
    dto = VariantService(db, cache).update_variant(product_id, variant_id, payload)
    return ApiResponse[ProductVariantDto].ok(dto)


@router.delete(
    "/{product_id}/variants/{variant_id}",
    summary="Delete variant",
    response_model=ApiResponse[bool],
)
def delete_variant(
    product_id: str,
    variant_id: str,
    db: Session = Depends(get_db),
    cache: CacheBackend = Depends(get_cache),
):
    return ApiResponse[bool].ok(VariantService(db, cache).delete_variant(product_id, variant_id))


@router.patch(
    "/{product_id}/variants/{variant_id}/stock",
    summary="Adjust variant stock by a signed quantity",
    response_model=ApiResponse[ProductVariantDto],
)
def adjust_stock(
    product_id: str,
    variant_id: str,
    payload: StockAdjustmentRequest,
    db: Session = Depends(get_db),
    cache: CacheBackend = Depends(get_cache),
):
    """
    payload: { "quantity": -3 }
    409 when a concurrent change won; the client should reload and resubmit.
    """
    dto = StockService(db, cache).adjust_stock(product_id, variant_id, payload.quantity)
    return ApiResponse[ProductVariantDto].ok(dto)
