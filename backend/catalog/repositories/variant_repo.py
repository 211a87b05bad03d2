from typing import Iterable, List, Optional

from sqlalchemy.orm import Session, joinedload, selectinload

from catalog.models.product import Product
from catalog.models.variant import ProductVariant, VariantAttribute
from catalog.schemas.product_schema import AttributeValueIn


class VariantRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, product_id: str, variant_id: str, with_attributes: bool = True) -> Optional[ProductVariant]:
        qry = self.db.query(ProductVariant).filter(
            ProductVariant.id == variant_id,
            ProductVariant.product_id == product_id,
        )
        if with_attributes:
            qry = qry.options(
                joinedload(ProductVariant.product),
                selectinload(ProductVariant.variant_attributes).joinedload(
                    VariantAttribute.attribute
                ),
            ).populate_existing()
        return qry.first()

    def get_for_stock_update(self, product_id: str, variant_id: str) -> Optional[ProductVariant]:
        """
        Load the bare variant row for a read-check-write. Takes a row lock
        where the dialect supports it (sqlite ignores FOR UPDATE).
        """
        return (
            self.db.query(ProductVariant)
            .filter(
                ProductVariant.id == variant_id,
                ProductVariant.product_id == product_id,
            )
            .populate_existing()
            .with_for_update()
            .first()
        )

    def list_for_product(self, product_id: str) -> List[ProductVariant]:
        return (
            self.db.query(ProductVariant)
            .options(
                selectinload(ProductVariant.variant_attributes).joinedload(
                    VariantAttribute.attribute
                )
            )
            .filter(ProductVariant.product_id == product_id)
            .order_by(ProductVariant.sku)
            .all()
        )

    def sku_exists(self, sku: str) -> bool:
        return (
            self.db.query(ProductVariant.id).filter(ProductVariant.sku == sku).first()
            is not None
        )

    def product(self, product_id: str) -> Optional[Product]:
        return self.db.query(Product).filter(Product.id == product_id).first()

    def clear_attributes(self, variant_id: str) -> None:
        self.db.query(VariantAttribute).filter(
            VariantAttribute.variant_id == variant_id
        ).delete(synchronize_session=False)

    def add_attributes(self, variant_id: str, attributes: Iterable[AttributeValueIn]) -> None:
        for attr in attributes:
            self.db.add(
                VariantAttribute(
                    variant_id=variant_id,
                    attribute_id=attr.attribute_id,
                    value=attr.value,
                )
            )
