import logging
from typing import List

from pydantic import TypeAdapter
from sqlalchemy.orm import Session

from catalog.cache.base import CacheBackend
from catalog.cache.keys import product_variants_key
from catalog.config import settings
from catalog.errors import ConcurrencyError, NotFoundError
from catalog.models.base import utcnow
from catalog.models.variant import ProductVariant
from catalog.repositories.variant_repo import VariantRepository
from catalog.schemas.product_schema import (
    CreateVariantRequest,
    ProductVariantDto,
    UpdateVariantRequest,
)
from catalog.services import mapper
from catalog.services.caching import invalidate_product, read_through
from catalog.services.stock_service import StockService
from catalog.services.validators import CatalogValidator
from catalog.utils.transactions import smart_transaction

log = logging.getLogger("catalog.variants")

_variant_list_adapter = TypeAdapter(List[ProductVariantDto])


class VariantService:
    def __init__(self, db: Session, cache: CacheBackend):
        self.db = db
        self.cache = cache
        self.repo = VariantRepository(db)

    def list_variants(self, product_id: str) -> List[ProductVariantDto]:
        def load():
            with smart_transaction(self.db):
                product = self.repo.product(product_id)
                if product is None:
                    return None
                return [
                    mapper.to_variant_dto(v, product.base_price)
                    for v in self.repo.list_for_product(product_id)
                ]

        variants = read_through(
            self.cache,
            product_variants_key(product_id),
            _variant_list_adapter,
            load,
            settings.VARIANTS_CACHE_TTL_SECONDS,
        )
        if variants is None:
            raise NotFoundError("Product not found", field="ProductId")
        return variants

    def create_variant(self, product_id: str, req: CreateVariantRequest) -> ProductVariantDto:
        with smart_transaction(self.db):
            product = self.repo.product(product_id)
            if product is None:
                raise NotFoundError("Product not found", field="ProductId")
            CatalogValidator(self.db).validate_variant(req, creating=True)
            variant = ProductVariant(
                product_id=product_id,
                sku=req.sku,
                name=req.name,
                price=req.price,
                stock_quantity=req.stock_quantity,
                is_active=req.is_active,
            )
            self.db.add(variant)
            self.db.flush()
            variant_id = variant.id
            self.repo.add_attributes(variant_id, req.attributes)
            product_sku = product.sku

        invalidate_product(self.cache, product_id, product_sku)
        log.info("Created variant %s (%s) of product %s", variant_id, req.sku, product_id)
        return StockService(self.db, self.cache).snapshot(product_id, variant_id)

    def update_variant(self, product_id: str, variant_id: str, req: UpdateVariantRequest) -> ProductVariantDto:
        """Replace scalar fields and the whole attribute set of a variant."""
        with smart_transaction(self.db):
            variant = self.repo.get(product_id, variant_id, with_attributes=False)
            if variant is None:
                raise NotFoundError("Variant not found", field="VariantId")
            if req.version is not None and req.version != variant.version:
                raise ConcurrencyError("Variant was modified by another user. Please refresh and try again.")
            CatalogValidator(self.db).validate_variant(req, creating=False)

            self.repo.clear_attributes(variant_id)
            self.repo.add_attributes(variant_id, req.attributes)
            variant.name = req.name
            variant.price = req.price
            variant.stock_quantity = req.stock_quantity
            variant.is_active = req.is_active
            variant.updated_at = utcnow()
            product_sku = self.repo.product(product_id).sku

        invalidate_product(self.cache, product_id, product_sku)
        return StockService(self.db, self.cache).snapshot(product_id, variant_id)

    def delete_variant(self, product_id: str, variant_id: str) -> bool:
        with smart_transaction(self.db):
            variant = self.repo.get(product_id, variant_id, with_attributes=False)
            if variant is None:
                raise NotFoundError("Variant not found", field="VariantId")
            product_sku = self.repo.product(product_id).sku
            self.db.delete(variant)

        invalidate_product(self.cache, product_id, product_sku)
        log.info("Deleted variant %s of product %s", variant_id, product_id)
        return True
