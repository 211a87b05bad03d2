import logging
import math
from typing import List, Optional, Tuple

from pydantic import TypeAdapter
from sqlalchemy.orm import Session

from catalog.cache.base import CacheBackend
from catalog.cache.keys import product_key, product_sku_key
from catalog.config import settings
from catalog.errors import ConcurrencyError, NotFoundError
from catalog.models.base import utcnow
from catalog.models.product import Product
from catalog.repositories.product_repo import ProductRepository
from catalog.schemas.common import PaginationMetadata
from catalog.schemas.product_schema import (
    CreateProductRequest,
    ProductDto,
    ProductQueryParams,
    ProductSummaryDto,
    UpdateProductRequest,
)
from catalog.services import mapper
from catalog.services.caching import invalidate_product, read_through, store
from catalog.services.validators import CatalogValidator
from catalog.utils.transactions import smart_transaction

log = logging.getLogger("catalog.products")

_product_adapter = TypeAdapter(ProductDto)


def clamp_query(params: ProductQueryParams, max_page_size: int = None) -> ProductQueryParams:
    max_page_size = max_page_size or settings.MAX_PAGE_SIZE
    return params.model_copy(
        update={
            "page": max(1, params.page),
            "page_size": min(max(1, params.page_size), max_page_size),
        }
    )


class ProductService:
    def __init__(self, db: Session, cache: CacheBackend):
        self.db = db
        self.cache = cache
        self.repo = ProductRepository(db)
        self.ttl = settings.PRODUCT_CACHE_TTL_SECONDS

    # --- reads -------------------------------------------------------------

    def list_products(self, params: ProductQueryParams) -> Tuple[List[ProductSummaryDto], PaginationMetadata]:
        """Filtered, sorted, paged summaries. Never cached."""
        params = clamp_query(params)
        with smart_transaction(self.db):
            items, total = self.repo.list(params)
            data = [mapper.to_summary_dto(p) for p in items]
        metadata = PaginationMetadata(
            page=params.page,
            page_size=params.page_size,
            total_count=total,
            total_pages=math.ceil(total / params.page_size) if total else 0,
        )
        return data, metadata

    def _load_dto(self, product_id: str = None, sku: str = None) -> Optional[ProductDto]:
        with smart_transaction(self.db):
            if product_id is not None:
                product = self.repo.get(product_id)
            else:
                product = self.repo.get_by_sku(sku)
            if product is None:
                return None
            return mapper.product_to_dto(product)

    def get_product(self, product_id: str) -> ProductDto:
        dto = read_through(
            self.cache,
            product_key(product_id),
            _product_adapter,
            lambda: self._load_dto(product_id=product_id),
            self.ttl,
        )
        if dto is None:
            raise NotFoundError("Product not found", field="Id")
        return dto

    def get_product_by_sku(self, sku: str) -> ProductDto:
        dto = read_through(
            self.cache,
            product_sku_key(sku),
            _product_adapter,
            lambda: self._load_dto(sku=sku),
            self.ttl,
        )
        if dto is None:
            raise NotFoundError("Product not found", field="SKU")
        return dto

    # --- writes ------------------------------------------------------------

    def create_product(self, req: CreateProductRequest) -> ProductDto:
        with smart_transaction(self.db):
            CatalogValidator(self.db).validate_product(req, creating=True)
            product = self.repo.add(
                Product(
                    sku=req.sku,
                    name=req.name,
                    description=req.description,
                    base_price=req.base_price,
                    is_active=req.is_active,
                )
            )
            self.db.flush()  # assigns id
            product_id = product.id
            self.repo.add_children(
                product_id,
                req.category_ids,
                req.primary_category_id,
                req.attributes,
                req.images,
            )

        dto = self._load_dto(product_id=product_id)
        store(self.cache, product_key(dto.id), _product_adapter, dto, self.ttl)
        store(self.cache, product_sku_key(dto.sku), _product_adapter, dto, self.ttl)
        log.info("Created product %s (%s)", dto.id, dto.sku)
        return dto

    def update_product(self, product_id: str, req: UpdateProductRequest) -> ProductDto:
        """
        Replace scalar fields and every child collection (category links,
        attribute values, images) in one transaction.
        """
        with smart_transaction(self.db):
            product = self.repo.get(product_id, with_children=False)
            if product is None:
                raise NotFoundError("Product not found", field="Id")
            if req.version is not None and req.version != product.version:
                raise ConcurrencyError("Product was modified by another user. Please refresh and try again.")
            CatalogValidator(self.db).validate_product(req, creating=False)

            self.repo.clear_children(product_id)
            self.repo.add_children(
                product_id,
                req.category_ids,
                req.primary_category_id,
                req.attributes,
                req.images,
            )
            product.name = req.name
            product.description = req.description
            product.base_price = req.base_price
            product.is_active = req.is_active
            # always bump: forces a versioned UPDATE even if only children changed
            product.updated_at = utcnow()
            sku = product.sku

        # SKU is immutable, so the current SKU key is the only one to drop
        invalidate_product(self.cache, product_id, sku)
        dto = self._load_dto(product_id=product_id)
        if dto is None:
            raise NotFoundError("Product not found", field="Id")
        return dto

    def delete_product(self, product_id: str) -> bool:
        with smart_transaction(self.db):
            product = self.repo.get(product_id, with_children=False)
            if product is None:
                raise NotFoundError("Product not found", field="Id")
            sku = product.sku
            self.repo.delete(product)

        invalidate_product(self.cache, product_id, sku)
        log.info("Deleted product %s (%s)", product_id, sku)
        return True
