from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from catalog.cache import CacheBackend, get_cache
from catalog.db import get_db
from catalog.schemas.common import ApiResponse
from catalog.schemas.reference_schema import (
    AttributeDto,
    AttributeListDto,
    CategoryDto,
    CategoryListDto,
)
from catalog.services.reference_service import AttributeService, CategoryService

categories_router = APIRouter(prefix="/categories", tags=["categories"])
attributes_router = APIRouter(prefix="/attributes", tags=["attributes"])


@categories_router.get("", summary="List categories", response_model=ApiResponse[List[CategoryListDto]])
def list_categories(
    is_active: Optional[bool] = Query(None, alias="isActive"),
    db: Session = Depends(get_db),
    cache: CacheBackend = Depends(get_cache),
):
    return ApiResponse[List[CategoryListDto]].ok(CategoryService(db, cache).list_categories(is_active))


@categories_router.get("/{category_id}", summary="Get category", response_model=ApiResponse[CategoryDto])
def get_category(category_id: str, db: Session = Depends(get_db), cache: CacheBackend = Depends(get_cache)):
    return ApiResponse[CategoryDto].ok(CategoryService(db, cache).get_category(category_id))


@attributes_router.get("", summary="List attribute definitions", response_model=ApiResponse[List[AttributeListDto]])
def list_attributes(db: Session = Depends(get_db), cache: CacheBackend = Depends(get_cache)):
    return ApiResponse[List[AttributeListDto]].ok(AttributeService(db, cache).list_attributes())


@attributes_router.get("/{attribute_id}", summary="Get attribute definition", response_model=ApiResponse[AttributeDto])
def get_attribute(attribute_id: str, db: Session = Depends(get_db), cache: CacheBackend = Depends(get_cache)):
    return ApiResponse[AttributeDto].ok(AttributeService(db, cache).get_attribute(attribute_id))
