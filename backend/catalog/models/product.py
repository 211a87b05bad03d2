from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from catalog.db import Base
from catalog.models.attribute import Attribute  # noqa: F401
from catalog.models.base import new_id, new_version, utcnow
from catalog.models.category import Category  # noqa: F401
from catalog.models.variant import ProductVariant  # noqa: F401


class Product(Base):
    __tablename__ = "products"

    id = Column(String(36), primary_key=True, default=new_id)
    sku = Column(String(50), unique=True, index=True, nullable=False)
    name = Column(String(200), nullable=False, index=True)
    description = Column(Text, nullable=True)
    base_price = Column(Numeric(18, 2), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
    version = Column(String(32), nullable=False)

    product_categories = relationship(
        "ProductCategory",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="ProductCategory.category_id",
    )
    product_attributes = relationship(
        "ProductAttribute",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="ProductAttribute.id",
    )
    images = relationship(
        "ProductImage",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="ProductImage.display_order",
    )
    variants = relationship(
        "ProductVariant",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="ProductVariant.sku",
    )

    __mapper_args__ = {
        "version_id_col": version,
        "version_id_generator": new_version,
    }

    def __repr__(self):
        return f"<Product sku={self.sku} name={self.name}>"


class ProductCategory(Base):
    __tablename__ = "product_categories"

    product_id = Column(String(36), ForeignKey("products.id"), primary_key=True)
    category_id = Column(String(36), ForeignKey("categories.id"), primary_key=True)
    # at most one per product; enforced by the write path
    is_primary = Column(Boolean, nullable=False, default=False)

    product = relationship("Product", back_populates="product_categories")
    category = relationship("Category")


class ProductAttribute(Base):
    __tablename__ = "product_attributes"

    id = Column(String(36), primary_key=True, default=new_id)
    product_id = Column(String(36), ForeignKey("products.id"), nullable=False, index=True)
    attribute_id = Column(String(36), ForeignKey("attributes.id"), nullable=False, index=True)
    value = Column(String(500), nullable=False)

    product = relationship("Product", back_populates="product_attributes")
    attribute = relationship("Attribute")


class ProductImage(Base):
    __tablename__ = "product_images"

    id = Column(String(36), primary_key=True, default=new_id)
    product_id = Column(String(36), ForeignKey("products.id"), nullable=False, index=True)
    image_url = Column(String(500), nullable=False)
    alt_text = Column(String(200), nullable=True)
    display_order = Column(Integer, nullable=False, default=0)
    is_primary = Column(Boolean, nullable=False, default=False)

    product = relationship("Product", back_populates="images")
