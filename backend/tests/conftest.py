import os
import tempfile

# must be set before anything imports catalog.config
_tmpdir = tempfile.mkdtemp(prefix="catalog-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_tmpdir, 'test.db')}"
os.environ["CACHE_BACKEND"] = "memory"
os.environ["SEED_ON_STARTUP"] = "false"
os.environ["RESET_DB"] = "false"

from decimal import Decimal

import pytest

from catalog.cache import get_cache
from catalog.db import SessionLocal, init_db
from catalog.models.attribute import AttributeDataType
from catalog.schemas.product_schema import (
    AttributeValueIn,
    CreateProductRequest,
    CreateVariantRequest,
    ProductImageIn,
)
from catalog.services.product_service import ProductService
from catalog.services.reference_service import AttributeService, CategoryService
from catalog.services.variant_service import VariantService


@pytest.fixture(autouse=True)
def fresh_catalog():
    init_db(reset=True)
    get_cache().clear()
    yield
    get_cache().clear()


@pytest.fixture
def cache():
    return get_cache()


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def reference(db, cache):
    """Two categories (Shirts under Men's) and Color/Size attributes."""
    cats = CategoryService(db, cache)
    attrs = AttributeService(db, cache)
    men = cats.create_category("Men's Clothing", description="Clothing for men")
    women = cats.create_category("Women's Clothing", description="Clothing for women")
    shirts = cats.create_category("Shirts", description="All types of shirts", parent_id=men.id)
    color = attrs.create_attribute("Color", AttributeDataType.STRING)
    size = attrs.create_attribute("Size", AttributeDataType.STRING)
    weight = attrs.create_attribute("Weight", AttributeDataType.DECIMAL)
    return {
        "men": men.id,
        "women": women.id,
        "shirts": shirts.id,
        "color": color.id,
        "size": size.id,
        "weight": weight.id,
    }


@pytest.fixture
def make_product(db, cache, reference):
    def _make(sku="SHIRT-001", name="Classic Shirt", base_price="29.99", **extra):
        fields = dict(
            sku=sku,
            name=name,
            description="A shirt",
            base_price=Decimal(base_price),
            category_ids=[reference["men"], reference["shirts"]],
            primary_category_id=reference["men"],
            attributes=[AttributeValueIn(attribute_id=reference["weight"], value="0.25")],
            images=[ProductImageIn(image_url="https://img.example/shirt.png", is_primary=True)],
        )
        fields.update(extra)
        return ProductService(db, cache).create_product(CreateProductRequest(**fields))

    return _make


@pytest.fixture
def make_variant(db, cache, reference):
    def _make(product_id, sku="SHIRT-001-RED-M", stock=5, price=None):
        return VariantService(db, cache).create_variant(
            product_id,
            CreateVariantRequest(
                sku=sku,
                name="Red - Medium",
                price=Decimal(price) if price is not None else None,
                stock_quantity=stock,
                attributes=[
                    AttributeValueIn(attribute_id=reference["color"], value="Red"),
                    AttributeValueIn(attribute_id=reference["size"], value="M"),
                ],
            ),
        )

    return _make
