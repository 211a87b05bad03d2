from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from catalog.cache.keys import product_key, product_sku_key
from catalog.errors import ConcurrencyError, NotFoundError, ValidationFailedError
from catalog.main import app
from catalog.models.attribute import Attribute
from catalog.models.category import Category
from catalog.models.product import ProductAttribute, ProductCategory, ProductImage
from catalog.models.variant import ProductVariant, VariantAttribute
from catalog.repositories.product_repo import escape_like
from catalog.schemas.product_schema import (
    AttributeValueIn,
    ProductImageIn,
    ProductQueryParams,
    UpdateProductRequest,
)
from catalog.services.product_service import ProductService, clamp_query

client = TestClient(app)


def _update(reference, **extra):
    fields = dict(
        name="Renamed Shirt",
        description="Updated",
        base_price=Decimal("31.00"),
        category_ids=[reference["women"]],
        primary_category_id=reference["women"],
        attributes=[],
        images=[],
    )
    fields.update(extra)
    return UpdateProductRequest(**fields)


def test_create_builds_full_aggregate(db, cache, reference, make_product, make_variant):
    product = make_product()
    make_variant(product.id)
    dto = ProductService(db, cache).get_product(product.id)

    assert dto.sku == "SHIRT-001"
    assert dto.base_price == Decimal("29.99")
    assert {c.id for c in dto.categories} == {reference["men"], reference["shirts"]}
    assert [c.is_primary for c in dto.categories if c.id == reference["men"]] == [True]
    assert dto.attributes[0].attribute_name == "Weight"
    assert dto.attributes[0].data_type == "Decimal"
    assert dto.images[0].is_primary
    assert dto.variants[0].price == Decimal("29.99")
    assert {a.attribute_name for a in dto.variants[0].attributes} == {"Color", "Size"}


def test_create_primes_id_and_sku_keys(cache, make_product):
    product = make_product()
    assert cache.get(product_key(product.id)) is not None
    assert cache.get(product_sku_key(product.sku)) is not None


def test_repeated_reads_are_identical(db, cache, make_product):
    product = make_product()
    cache.clear()
    svc = ProductService(db, cache)
    first = svc.get_product(product.id)
    second = svc.get_product(product.id)
    by_sku = svc.get_product_by_sku(product.sku)
    assert first == second == by_sku


def test_unreadable_cache_entry_is_reloaded(db, cache, make_product):
    product = make_product()
    cache.set(product_key(product.id), '{"not": "a product"}', 60)
    dto = ProductService(db, cache).get_product(product.id)
    assert dto.id == product.id


def test_missing_product(db, cache, reference):
    svc = ProductService(db, cache)
    with pytest.raises(NotFoundError) as exc:
        svc.get_product("nope")
    assert exc.value.errors[0][0] == "Id"
    with pytest.raises(NotFoundError) as exc:
        svc.get_product_by_sku("NOPE-1")
    assert exc.value.errors[0][0] == "SKU"
    # misses are not cached
    assert cache.get(product_key("nope")) is None


def test_duplicate_sku_rejected(make_product):
    make_product()
    with pytest.raises(ValidationFailedError) as exc:
        make_product(name="Another name")
    assert ("sku", "SKU already exists") in exc.value.errors


def test_reference_rules_are_collected(make_product, reference):
    with pytest.raises(ValidationFailedError) as exc:
        make_product(
            category_ids=["missing"],
            primary_category_id=reference["women"],
            attributes=[AttributeValueIn(attribute_id=reference["weight"], value="heavy")],
            images=[
                ProductImageIn(image_url="https://img.example/a.png", is_primary=True),
                ProductImageIn(image_url="https://img.example/b.png", is_primary=True),
            ],
        )
    fields = [f for f, _ in exc.value.errors]
    assert "categoryIds" in fields
    assert "primaryCategoryId" in fields
    assert "attributes" in fields
    assert "images" in fields


def test_required_attribute_enforced(db, reference, make_product):
    db.add(Attribute(name="Brand", is_required=True))
    db.commit()
    with pytest.raises(ValidationFailedError) as exc:
        make_product()
    assert ("attributes", "Attribute Brand is required") in exc.value.errors


def test_update_replaces_children(db, cache, reference, make_product):
    product = make_product()
    svc = ProductService(db, cache)
    dto = svc.update_product(
        product.id,
        _update(reference, images=[ProductImageIn(image_url="https://img.example/new.png")]),
    )

    assert dto.name == "Renamed Shirt"
    assert dto.sku == product.sku
    assert [c.id for c in dto.categories] == [reference["women"]]
    assert dto.attributes == []
    assert [i.image_url for i in dto.images] == ["https://img.example/new.png"]
    assert dto.version != product.version
    assert dto.updated_at >= product.updated_at
    assert db.query(ProductCategory).filter(ProductCategory.product_id == product.id).count() == 1


def test_update_can_restore_previous_category_links(db, cache, reference, make_product):
    product = make_product()
    svc = ProductService(db, cache)
    svc.update_product(product.id, _update(reference, category_ids=[reference["men"]], primary_category_id=None))
    dto = svc.update_product(
        product.id,
        _update(
            reference,
            category_ids=[reference["men"], reference["shirts"]],
            primary_category_id=reference["shirts"],
        ),
    )
    primary = [c.id for c in dto.categories if c.is_primary]
    assert primary == [reference["shirts"]]


def test_update_invalidates_cached_entries(db, cache, reference, make_product):
    product = make_product()
    svc = ProductService(db, cache)
    svc.get_product_by_sku(product.sku)
    svc.update_product(product.id, _update(reference))
    assert cache.get(product_sku_key(product.sku)) is None
    assert svc.get_product_by_sku(product.sku).name == "Renamed Shirt"


def test_update_with_stale_version_conflicts(db, cache, reference, make_product):
    product = make_product()
    svc = ProductService(db, cache)
    svc.update_product(product.id, _update(reference, version=product.version))
    with pytest.raises(ConcurrencyError):
        svc.update_product(product.id, _update(reference, name="Second edit", version=product.version))
    assert svc.get_product(product.id).name == "Renamed Shirt"


def test_update_failed_validation_changes_nothing(db, cache, reference, make_product):
    product = make_product()
    svc = ProductService(db, cache)
    with pytest.raises(ValidationFailedError):
        svc.update_product(product.id, _update(reference, category_ids=[]))
    dto = svc.get_product(product.id)
    assert dto.name == product.name
    assert dto.version == product.version


def test_update_missing_product(db, cache, reference):
    with pytest.raises(NotFoundError):
        ProductService(db, cache).update_product("nope", _update(reference))


def test_delete_cascades_owned_rows_only(db, cache, reference, make_product, make_variant):
    product = make_product()
    make_variant(product.id)
    svc = ProductService(db, cache)
    svc.get_product(product.id)

    assert svc.delete_product(product.id) is True

    assert cache.get(product_key(product.id)) is None
    with pytest.raises(NotFoundError):
        svc.get_product(product.id)
    with pytest.raises(NotFoundError):
        svc.delete_product(product.id)
    for model in (ProductCategory, ProductAttribute, ProductImage, ProductVariant):
        assert db.query(model).filter(model.product_id == product.id).count() == 0
    assert db.query(VariantAttribute).count() == 0
    # referenced master data survives
    assert db.query(Category).count() == 3
    assert db.query(Attribute).count() == 3


def test_list_filters_sort_and_pages(db, cache, reference, make_product):
    make_product(sku="A-001", name="Alpha shirt", base_price="10.00")
    make_product(sku="B-001", name="Bravo shirt", base_price="20.00", is_active=False)
    make_product(
        sku="C-001",
        name="Charlie dress",
        base_price="30.00",
        description="Evening wear",
        category_ids=[reference["women"]],
        primary_category_id=reference["women"],
    )
    svc = ProductService(db, cache)

    items, meta = svc.list_products(ProductQueryParams(sort_by="price", sort_descending=False))
    assert [p.sku for p in items] == ["A-001", "B-001", "C-001"]
    assert meta.total_count == 3

    items, _ = svc.list_products(ProductQueryParams(search_term="SHIRT", is_active=True))
    assert [p.sku for p in items] == ["A-001"]

    items, _ = svc.list_products(ProductQueryParams(category_id=reference["women"]))
    assert [p.sku for p in items] == ["C-001"]
    assert items[0].primary_category_name == "Women's Clothing"

    items, _ = svc.list_products(
        ProductQueryParams(min_price=Decimal("15"), max_price=Decimal("30"), sort_by="name")
    )
    assert [p.sku for p in items] == ["C-001", "B-001"]

    items, meta = svc.list_products(ProductQueryParams(page=2, page_size=2, sort_by="sku", sort_descending=False))
    assert [p.sku for p in items] == ["C-001"]
    assert (meta.total_pages, meta.has_previous, meta.has_next) == (2, True, False)


def test_search_treats_wildcards_literally(db, cache, make_product):
    make_product(sku="SHIRT-001")
    make_product(sku="SHIRT_002", name="Underscore Shirt")
    svc = ProductService(db, cache)

    items, meta = svc.list_products(ProductQueryParams(search_term="SHIRT_"))
    assert [p.sku for p in items] == ["SHIRT_002"]
    assert meta.total_count == 1

    items, _ = svc.list_products(ProductQueryParams(search_term="%"))
    assert items == []


def test_escape_like():
    assert escape_like("a_b%c\\d") == "a\\_b\\%c\\\\d"
    assert escape_like("plain") == "plain"


def test_clamp_query_bounds_paging():
    params = clamp_query(ProductQueryParams(page=0, page_size=1000))
    assert (params.page, params.page_size) == (1, 100)
    assert clamp_query(ProductQueryParams(page_size=0)).page_size == 1


def test_empty_listing_has_zero_pages(db, cache):
    items, meta = ProductService(db, cache).list_products(ProductQueryParams())
    assert items == []
    assert meta.total_pages == 0
    assert meta.has_next is False


# --- HTTP ------------------------------------------------------------------

def _payload(reference, **extra):
    body = {
        "sku": "HTTP-001",
        "name": "Http Shirt",
        "description": "Via the API",
        "basePrice": "19.50",
        "categoryIds": [reference["men"]],
        "primaryCategoryId": reference["men"],
        "attributes": [{"attributeId": reference["color"], "value": "Blue"}],
        "images": [{"imageUrl": "https://img.example/h.png", "isPrimary": True}],
    }
    body.update(extra)
    return body


def test_http_create_get_update_delete(reference):
    res = client.post("/api/v1/products", json=_payload(reference))
    assert res.status_code == 201
    created = res.json()["data"]
    assert res.headers["location"] == f"/api/v1/products/{created['id']}"
    assert created["basePrice"] == 19.5
    assert created["categories"][0]["isPrimary"] is True

    res = client.get(f"/api/v1/products/{created['id']}")
    assert res.status_code == 200
    assert res.json()["data"] == created

    res = client.get("/api/v1/products/sku/HTTP-001")
    assert res.json()["data"]["id"] == created["id"]

    body = _payload(reference, name="Http Shirt v2", version=created["version"])
    del body["sku"]
    res = client.put(f"/api/v1/products/{created['id']}", json=body)
    assert res.status_code == 200
    assert res.json()["data"]["name"] == "Http Shirt v2"

    # same stale token again
    res = client.put(f"/api/v1/products/{created['id']}", json=body)
    assert res.status_code == 409

    res = client.delete(f"/api/v1/products/{created['id']}")
    assert res.status_code == 200
    assert res.json()["data"] is True
    assert client.get(f"/api/v1/products/{created['id']}").status_code == 404
    assert client.delete(f"/api/v1/products/{created['id']}").status_code == 404


def test_http_validation_errors(reference):
    res = client.post("/api/v1/products", json=_payload(reference, sku="a b", basePrice="0"))
    assert res.status_code == 400
    body = res.json()
    assert body["success"] is False
    fields = {e["field"] for e in body["errors"]}
    assert {"sku", "basePrice"} <= fields

    res = client.post("/api/v1/products", json=_payload(reference, categoryIds=[]))
    assert res.status_code == 400
    assert res.json()["errors"][0]["field"] == "categoryIds"


def test_http_list_envelope(make_product):
    make_product()
    res = client.get("/api/v1/products", params={"pageSize": 500, "searchTerm": "classic"})
    assert res.status_code == 200
    body = res.json()
    assert body["success"] is True
    assert body["metadata"]["pageSize"] == 100
    assert body["metadata"]["hasPrevious"] is False
    assert body["data"][0]["primaryImageUrl"] == "https://img.example/shirt.png"
    assert body["data"][0]["primaryCategoryName"] == "Men's Clothing"
