from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
)
from sqlalchemy.orm import relationship

from catalog.db import Base
from catalog.models.base import new_id, new_version, utcnow


class ProductVariant(Base):
    __tablename__ = "product_variants"
    __table_args__ = (
        CheckConstraint("stock_quantity >= 0", name="ck_variant_stock_non_negative"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    product_id = Column(
        String(36), ForeignKey("products.id"), nullable=False, index=True
    )
    sku = Column(String(50), unique=True, index=True, nullable=False)
    name = Column(String(200), nullable=False)
    # null means "use the product's base price"
    price = Column(Numeric(18, 2), nullable=True)
    stock_quantity = Column(Integer, nullable=False, default=0, index=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
    version = Column(String(32), nullable=False)

    product = relationship("Product", back_populates="variants")
    variant_attributes = relationship(
        "VariantAttribute",
        back_populates="variant",
        cascade="all, delete-orphan",
        order_by="VariantAttribute.id",
    )

    __mapper_args__ = {
        "version_id_col": version,
        "version_id_generator": new_version,
    }

    def __repr__(self):
        return f"<ProductVariant sku={self.sku} stock={self.stock_quantity}>"


class VariantAttribute(Base):
    __tablename__ = "variant_attributes"

    id = Column(String(36), primary_key=True, default=new_id)
    variant_id = Column(
        String(36), ForeignKey("product_variants.id"), nullable=False, index=True
    )
    attribute_id = Column(
        String(36), ForeignKey("attributes.id"), nullable=False, index=True
    )
    value = Column(String(500), nullable=False)

    variant = relationship("ProductVariant", back_populates="variant_attributes")
    attribute = relationship("Attribute")
