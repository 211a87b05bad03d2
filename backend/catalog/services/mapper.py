"""
Builds the denormalized product DTOs from loaded storage rows.

Everything here is a pure function over already-loaded objects: no session
access, no cache access. Relationship attributes must be loaded by the caller
(the repository eager-loads them).
"""

from decimal import Decimal
from typing import Iterable, List, Optional, Sequence

from catalog.errors import MappingError
from catalog.services import attribute_values
from catalog.schemas.product_schema import (
    CategoryRefDto,
    ProductAttributeDto,
    ProductDto,
    ProductImageDto,
    ProductSummaryDto,
    ProductVariantDto,
    VariantAttributeDto,
)

_CENTS = Decimal("0.01")


def money(value) -> Decimal:
    return Decimal(value).quantize(_CENTS)


def effective_price(override, base_price) -> Decimal:
    """Variant price override if set, else the product's base price."""
    return money(base_price if override is None else override)


def _definitions(values: Iterable) -> dict:
    return {v.attribute.id: v.attribute for v in values if v.attribute is not None}


def _resolve_all(values: Sequence) -> List[attribute_values.TypedValue]:
    defs = _definitions(values)
    resolved = []
    for v in values:
        try:
            resolved.append(attribute_values.resolve(v.attribute_id, v.value, defs))
        except attribute_values.AttributeValueError as e:
            raise MappingError(f"stored value for attribute {v.attribute_id} is invalid: {e}")
    return resolved


def to_category_refs(links: Sequence) -> List[CategoryRefDto]:
    refs = []
    for link in links:
        if link.category is None:
            raise MappingError(f"category {link.category_id} linked to a product does not exist")
        refs.append(
            CategoryRefDto(
                id=link.category.id,
                name=link.category.name,
                description=link.category.description,
                is_primary=bool(link.is_primary),
            )
        )
    return refs


def to_attribute_dtos(values: Sequence) -> List[ProductAttributeDto]:
    return [
        ProductAttributeDto(
            attribute_id=tv.attribute_id,
            attribute_name=tv.name,
            value=tv.raw,
            data_type=tv.data_type.value,
        )
        for tv in _resolve_all(values)
    ]


def to_image_dtos(images: Sequence) -> List[ProductImageDto]:
    ordered = sorted(images, key=lambda i: i.display_order or 0)
    return [
        ProductImageDto(
            id=i.id,
            image_url=i.image_url,
            alt_text=i.alt_text,
            display_order=i.display_order or 0,
            is_primary=bool(i.is_primary),
        )
        for i in ordered
    ]


def to_variant_dto(variant, base_price) -> ProductVariantDto:
    return ProductVariantDto(
        id=variant.id,
        sku=variant.sku,
        name=variant.name,
        price=effective_price(variant.price, base_price),
        stock_quantity=variant.stock_quantity,
        is_active=bool(variant.is_active),
        version=variant.version,
        attributes=[
            VariantAttributeDto(
                attribute_id=tv.attribute_id,
                attribute_name=tv.name,
                value=tv.raw,
            )
            for tv in _resolve_all(variant.variant_attributes)
        ],
    )


def to_product_dto(product, categories, attributes, images, variants) -> ProductDto:
    return ProductDto(
        id=product.id,
        sku=product.sku,
        name=product.name,
        description=product.description,
        base_price=money(product.base_price),
        is_active=bool(product.is_active),
        created_at=product.created_at,
        updated_at=product.updated_at,
        version=product.version,
        categories=to_category_refs(categories),
        attributes=to_attribute_dtos(attributes),
        images=to_image_dtos(images),
        variants=[to_variant_dto(v, product.base_price) for v in variants],
    )


def product_to_dto(product) -> ProductDto:
    """Convenience wrapper for a product whose collections are loaded."""
    return to_product_dto(
        product,
        product.product_categories,
        product.product_attributes,
        product.images,
        product.variants,
    )


def primary_image_url(images: Sequence) -> Optional[str]:
    if not images:
        return None
    for i in images:
        if i.is_primary:
            return i.image_url
    return min(images, key=lambda i: i.display_order or 0).image_url


def primary_category_name(links: Sequence) -> Optional[str]:
    if not links:
        return None
    for link in links:
        if link.is_primary:
            return link.category.name
    return links[0].category.name


def to_summary_dto(product) -> ProductSummaryDto:
    return ProductSummaryDto(
        id=product.id,
        sku=product.sku,
        name=product.name,
        description=product.description,
        base_price=money(product.base_price),
        is_active=bool(product.is_active),
        created_at=product.created_at,
        updated_at=product.updated_at,
        primary_image_url=primary_image_url(product.images),
        primary_category_name=primary_category_name(product.product_categories),
    )
