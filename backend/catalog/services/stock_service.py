import logging

from sqlalchemy.orm import Session

from catalog.cache.base import CacheBackend
from catalog.errors import (
    ConcurrencyError,
    InsufficientStockError,
    NotFoundError,
    ValidationFailedError,
)
from catalog.models.base import utcnow
from catalog.models.product import Product
from catalog.repositories.variant_repo import VariantRepository
from catalog.schemas.product_schema import MAX_STOCK, ProductVariantDto
from catalog.services import mapper
from catalog.services.caching import invalidate_product
from catalog.utils.transactions import serializable_transaction, smart_transaction

log = logging.getLogger("catalog.stock")


class StockService:
    """
    Signed stock adjustments for a single variant.

    One call is one serializable transaction: load the variant, check that
    a decrement does not exceed what is on hand, apply the delta, commit.
    The variant's concurrency token qualifies the UPDATE as well, so a
    competing commit in between is detected even on engines whose
    serializable mode would not catch it. Conflicts are reported, never
    retried: the caller decides whether to resubmit against the new state.
    """

    def __init__(self, db: Session, cache: CacheBackend):
        self.db = db
        self.cache = cache
        self.variants = VariantRepository(db)

    def _load_for_update(self, product_id: str, variant_id: str):
        return self.variants.get_for_stock_update(product_id, variant_id)

    def adjust_stock(self, product_id: str, variant_id: str, delta: int) -> ProductVariantDto:
        try:
            with serializable_transaction(self.db):
                variant = self._load_for_update(product_id, variant_id)
                if variant is None:
                    raise NotFoundError("Variant not found", field="VariantId")

                on_hand = variant.stock_quantity
                if delta < 0 and -delta > on_hand:
                    raise InsufficientStockError(available=on_hand, requested=-delta)
                if on_hand + delta > MAX_STOCK:
                    raise ValidationFailedError(
                        f"Stock cannot exceed {MAX_STOCK}. Available={on_hand}, added={delta}",
                        field="Quantity",
                    )

                variant.stock_quantity = on_hand + delta
                variant.updated_at = utcnow()
                sku = self.db.query(Product.sku).filter(Product.id == product_id).scalar()
        except InsufficientStockError:
            log.warning(
                "Rejected stock change %+d on variant %s: only %d on hand",
                delta, variant_id, on_hand,
            )
            raise
        except ConcurrencyError:
            log.warning("Concurrent stock change on variant %s; %+d not applied", variant_id, delta)
            raise

        # cache is not transactional with storage: drop entries only after commit
        invalidate_product(self.cache, product_id, sku)
        snapshot = self.snapshot(product_id, variant_id)
        log.info(
            "Stock of variant %s adjusted %+d -> %d",
            variant_id, delta, snapshot.stock_quantity,
        )
        return snapshot

    def snapshot(self, product_id: str, variant_id: str) -> ProductVariantDto:
        """Fresh post-commit view of a variant with its effective price."""
        with smart_transaction(self.db):
            variant = self.variants.get(product_id, variant_id)
            if variant is None:
                raise NotFoundError("Variant not found", field="VariantId")
            return mapper.to_variant_dto(variant, variant.product.base_price)
