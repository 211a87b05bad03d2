"""Demo catalog data. Running it twice leaves the database unchanged."""

import logging
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from catalog.cache import CacheBackend, get_cache
from catalog.models.attribute import AttributeDataType
from catalog.models.category import Category
from catalog.repositories.product_repo import ProductRepository
from catalog.repositories.reference_repo import AttributeRepository
from catalog.schemas.product_schema import (
    AttributeValueIn,
    CreateProductRequest,
    CreateVariantRequest,
    ProductImageIn,
)
from catalog.services.product_service import ProductService
from catalog.services.reference_service import AttributeService, CategoryService
from catalog.services.variant_service import VariantService
from catalog.utils.transactions import smart_transaction

log = logging.getLogger("catalog.seed")

ATTRIBUTES = ["Color", "Size", "Material"]

# (name, description, parent name)
CATEGORIES = [
    ("Men's Clothing", "Clothing for men", None),
    ("Women's Clothing", "Clothing for women", None),
    ("Shirts", "All types of shirts", "Men's Clothing"),
]

PRODUCTS = [
    {
        "sku": "SHIRT-COTTON-001",
        "name": "Classic Cotton T-Shirt",
        "description": "Comfortable 100% cotton t-shirt perfect for everyday wear",
        "base_price": Decimal("29.99"),
        "categories": ["Men's Clothing", "Shirts"],
        "material": "100% Cotton",
        "image": "https://via.placeholder.com/500x500?text=Cotton+T-Shirt",
        "variants": [
            ("SHIRT-COTTON-001-RED-M", "Red - Medium", None, 50, "Red", "Medium"),
            ("SHIRT-COTTON-001-BLUE-L", "Blue - Large", None, 75, "Blue", "Large"),
        ],
    },
    {
        "sku": "SHIRT-POLO-001",
        "name": "Premium Polo Shirt",
        "description": "Elegant polo shirt with modern fit",
        "base_price": Decimal("49.99"),
        "categories": ["Men's Clothing"],
        "material": "Cotton Blend",
        "image": "https://via.placeholder.com/500x500?text=Polo+Shirt",
        "variants": [
            ("SHIRT-POLO-001-WHITE-M", "White - Medium", None, 30, "White", "Medium"),
            ("SHIRT-POLO-001-BLACK-XL", "Black - XL", Decimal("54.99"), 5, "Black", "XL"),
        ],
    },
]


def _category_id(db: Session, name: str) -> Optional[str]:
    with smart_transaction(db):
        row = db.query(Category.id).filter(Category.name == name).first()
    return row[0] if row else None


def _attribute_id(db: Session, name: str) -> Optional[str]:
    with smart_transaction(db):
        attribute = AttributeRepository(db).get_by_name(name)
        return attribute.id if attribute else None


def seed_catalog(db: Session, cache: CacheBackend = None) -> int:
    """Create missing reference data and demo products. Returns products created."""
    cache = cache or get_cache()

    attr_svc = AttributeService(db, cache)
    for name in ATTRIBUTES:
        if _attribute_id(db, name) is None:
            attr_svc.create_attribute(name, AttributeDataType.STRING)
    attr_ids = {name: _attribute_id(db, name) for name in ATTRIBUTES}

    cat_svc = CategoryService(db, cache)
    for name, description, parent in CATEGORIES:
        if _category_id(db, name) is None:
            parent_id = _category_id(db, parent) if parent else None
            cat_svc.create_category(name, description=description, parent_id=parent_id)

    products = ProductService(db, cache)
    variants = VariantService(db, cache)
    repo = ProductRepository(db)
    created = 0
    for entry in PRODUCTS:
        with smart_transaction(db):
            exists = repo.sku_exists(entry["sku"])
        if exists:
            continue
        category_ids = [_category_id(db, n) for n in entry["categories"]]
        dto = products.create_product(
            CreateProductRequest(
                sku=entry["sku"],
                name=entry["name"],
                description=entry["description"],
                base_price=entry["base_price"],
                category_ids=category_ids,
                primary_category_id=category_ids[0],
                attributes=[AttributeValueIn(attribute_id=attr_ids["Material"], value=entry["material"])],
                images=[ProductImageIn(image_url=entry["image"], alt_text=entry["name"], is_primary=True)],
            )
        )
        for sku, name, price, stock, color, size in entry["variants"]:
            variants.create_variant(
                dto.id,
                CreateVariantRequest(
                    sku=sku,
                    name=name,
                    price=price,
                    stock_quantity=stock,
                    attributes=[
                        AttributeValueIn(attribute_id=attr_ids["Color"], value=color),
                        AttributeValueIn(attribute_id=attr_ids["Size"], value=size),
                    ],
                ),
            )
        created += 1

    log.info("Seeded %d demo products", created)
    return created
