from typing import List, Optional


def product_key(product_id: str) -> str:
    return f"product:{product_id}"


def product_sku_key(sku: str) -> str:
    return f"product:sku:{sku}"


def product_variants_key(product_id: str) -> str:
    return f"product:{product_id}:variants"


def product_keys(product_id: str, sku: Optional[str] = None) -> List[str]:
    """Every key that may hold data derived from this product aggregate."""
    keys = [product_key(product_id), product_variants_key(product_id)]
    if sku:
        keys.append(product_sku_key(sku))
    return keys


def categories_key(is_active: Optional[bool]) -> str:
    flag = "null" if is_active is None else str(is_active).lower()
    return f"categories:all:{flag}"


def category_key(category_id: str) -> str:
    return f"category:{category_id}"


ATTRIBUTES_KEY = "attributes:all"


def attribute_key(attribute_id: str) -> str:
    return f"attribute:{attribute_id}"
