from typing import Iterable, List, Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.orm import Session, joinedload, selectinload

from catalog.models.product import (
    Product,
    ProductAttribute,
    ProductCategory,
    ProductImage,
)
from catalog.models.variant import ProductVariant, VariantAttribute
from catalog.schemas.product_schema import (
    AttributeValueIn,
    ProductImageIn,
    ProductQueryParams,
)


def escape_like(term: str) -> str:
    """Make LIKE wildcards in user input match literally."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


SORT_COLUMNS = {
    "name": Product.name,
    "price": Product.base_price,
    "sku": Product.sku,
    "createdat": Product.created_at,
}


def _full_aggregate():
    return (
        selectinload(Product.product_categories).joinedload(ProductCategory.category),
        selectinload(Product.product_attributes).joinedload(ProductAttribute.attribute),
        selectinload(Product.images),
        selectinload(Product.variants)
        .selectinload(ProductVariant.variant_attributes)
        .joinedload(VariantAttribute.attribute),
    )


class ProductRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, product_id: str, with_children: bool = True) -> Optional[Product]:
        qry = self.db.query(Product).filter(Product.id == product_id)
        if with_children:
            qry = qry.options(*_full_aggregate()).populate_existing()
        return qry.first()

    def get_by_sku(self, sku: str) -> Optional[Product]:
        return (
            self.db.query(Product)
            .options(*_full_aggregate())
            .populate_existing()
            .filter(Product.sku == sku)
            .first()
        )

    def sku_exists(self, sku: str) -> bool:
        return (
            self.db.query(Product.id).filter(Product.sku == sku).first() is not None
        )

    def list(self, params: ProductQueryParams) -> Tuple[List[Product], int]:
        """
        Filters combine with AND. Returns (page_items, total_count) where the
        count is taken before paging. ``params`` must already be clamped.
        """
        query = self.db.query(Product)
        if params.search_term and params.search_term.strip():
            like = f"%{escape_like(params.search_term.strip())}%"
            query = query.filter(
                or_(
                    Product.name.ilike(like, escape="\\"),
                    Product.sku.ilike(like, escape="\\"),
                    Product.description.ilike(like, escape="\\"),
                )
            )
        if params.is_active is not None:
            query = query.filter(Product.is_active == params.is_active)
        if params.min_price is not None:
            query = query.filter(Product.base_price >= params.min_price)
        if params.max_price is not None:
            query = query.filter(Product.base_price <= params.max_price)
        if params.category_id:
            query = query.filter(
                Product.product_categories.any(
                    ProductCategory.category_id == params.category_id
                )
            )

        total = query.with_entities(func.count(Product.id)).scalar() or 0

        column = SORT_COLUMNS.get((params.sort_by or "").lower(), Product.created_at)
        ordering = column.desc() if params.sort_descending else column.asc()
        items = (
            query.options(
                selectinload(Product.images),
                selectinload(Product.product_categories).joinedload(ProductCategory.category),
            )
            .order_by(ordering, Product.id)
            .offset((params.page - 1) * params.page_size)
            .limit(params.page_size)
            .all()
        )
        return items, total

    def add(self, product: Product) -> Product:
        self.db.add(product)
        return product

    def clear_children(self, product_id: str) -> None:
        """Delete every category link, attribute value and image of a product."""
        # links are keyed by (product_id, category_id); a re-added link must
        # not collide with a stale instance still in the identity map
        for key, obj in list(self.db.identity_map.items()):
            if isinstance(obj, ProductCategory) and key[1][0] == product_id:
                self.db.expunge(obj)
        for model in (ProductCategory, ProductAttribute, ProductImage):
            self.db.query(model).filter(model.product_id == product_id).delete(
                synchronize_session=False
            )

    def add_children(
        self,
        product_id: str,
        category_ids: Iterable[str],
        primary_category_id: Optional[str],
        attributes: Iterable[AttributeValueIn],
        images: Iterable[ProductImageIn],
    ) -> None:
        for category_id in category_ids:
            self.db.add(
                ProductCategory(
                    product_id=product_id,
                    category_id=category_id,
                    is_primary=category_id == primary_category_id,
                )
            )
        for attr in attributes:
            self.db.add(
                ProductAttribute(
                    product_id=product_id,
                    attribute_id=attr.attribute_id,
                    value=attr.value,
                )
            )
        for img in images:
            self.db.add(
                ProductImage(
                    product_id=product_id,
                    image_url=img.image_url,
                    alt_text=img.alt_text,
                    display_order=img.display_order,
                    is_primary=img.is_primary,
                )
            )

    def delete(self, product: Product) -> None:
        # ORM cascade removes links, values, images, variants (and their values)
        self.db.delete(product)
