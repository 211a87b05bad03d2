import threading

import pytest
from fastapi.testclient import TestClient

from catalog.cache.keys import product_key, product_sku_key, product_variants_key
from catalog.db import SessionLocal
from catalog.errors import (
    ConcurrencyError,
    InsufficientStockError,
    NotFoundError,
    ValidationFailedError,
)
from catalog.main import app
from catalog.models.variant import ProductVariant
from catalog.schemas.product_schema import MAX_STOCK
from catalog.services.product_service import ProductService
from catalog.services.stock_service import StockService
from catalog.services.variant_service import VariantService

client = TestClient(app)


def _stock(variant_id):
    db = SessionLocal()
    try:
        return db.query(ProductVariant.stock_quantity).filter(ProductVariant.id == variant_id).scalar()
    finally:
        db.close()


def test_decrement_then_reject_overdraw(db, cache, make_product, make_variant):
    product = make_product()
    variant = make_variant(product.id, stock=5)
    svc = StockService(db, cache)

    snap = svc.adjust_stock(product.id, variant.id, -3)
    assert snap.stock_quantity == 2
    assert snap.version != variant.version

    with pytest.raises(InsufficientStockError) as exc:
        svc.adjust_stock(product.id, variant.id, -10)
    assert exc.value.available == 2
    assert exc.value.requested == 10
    assert exc.value.errors[0][0] == "Quantity"
    assert _stock(variant.id) == 2
    assert not db.in_transaction()


def test_restock_and_zero_delta(db, cache, make_product, make_variant):
    product = make_product()
    variant = make_variant(product.id, stock=0)
    svc = StockService(db, cache)

    assert svc.adjust_stock(product.id, variant.id, 7).stock_quantity == 7
    # no-op delta still commits and refreshes the token
    snap = svc.adjust_stock(product.id, variant.id, 0)
    assert snap.stock_quantity == 7


def test_draining_to_exactly_zero_is_allowed(db, cache, make_product, make_variant):
    product = make_product()
    variant = make_variant(product.id, stock=4)
    snap = StockService(db, cache).adjust_stock(product.id, variant.id, -4)
    assert snap.stock_quantity == 0


def test_snapshot_uses_effective_price(db, cache, make_product, make_variant):
    product = make_product(base_price="29.99")
    inherited = make_variant(product.id, sku="SHIRT-001-A", stock=3)
    override = make_variant(product.id, sku="SHIRT-001-B", stock=3, price="35.50")
    svc = StockService(db, cache)
    assert str(svc.adjust_stock(product.id, inherited.id, -1).price) == "29.99"
    assert str(svc.adjust_stock(product.id, override.id, -1).price) == "35.50"


def test_unknown_variant_is_not_found(db, cache, make_product, make_variant):
    product = make_product()
    variant = make_variant(product.id)
    svc = StockService(db, cache)
    with pytest.raises(NotFoundError):
        svc.adjust_stock(product.id, "no-such-variant", -1)
    # variant exists but under another product
    other = make_product(sku="OTHER-001", name="Other product")
    with pytest.raises(NotFoundError):
        svc.adjust_stock(other.id, variant.id, -1)
    assert not db.in_transaction()


def test_adjust_invalidates_product_entries(db, cache, make_product, make_variant):
    product = make_product()
    variant = make_variant(product.id, stock=5)
    products = ProductService(db, cache)
    products.get_product(product.id)
    products.get_product_by_sku(product.sku)
    VariantService(db, cache).list_variants(product.id)
    assert cache.get(product_key(product.id)) is not None
    assert cache.get(product_sku_key(product.sku)) is not None
    assert cache.get(product_variants_key(product.id)) is not None

    StockService(db, cache).adjust_stock(product.id, variant.id, -2)

    assert cache.get(product_key(product.id)) is None
    assert cache.get(product_sku_key(product.sku)) is None
    assert cache.get(product_variants_key(product.id)) is None
    fresh = products.get_product(product.id)
    assert fresh.variants[0].stock_quantity == 3


def test_rejected_adjustment_keeps_cache(db, cache, make_product, make_variant):
    product = make_product()
    variant = make_variant(product.id, stock=1)
    ProductService(db, cache).get_product(product.id)
    with pytest.raises(InsufficientStockError):
        StockService(db, cache).adjust_stock(product.id, variant.id, -2)
    assert cache.get(product_key(product.id)) is not None


def test_competing_commit_is_reported_not_retried(db, cache, make_product, make_variant):
    product = make_product()
    variant = make_variant(product.id, stock=5)
    svc = StockService(db, cache)
    load = svc._load_for_update

    def load_then_lose_race(product_id, variant_id):
        stale = load(product_id, variant_id)
        other = SessionLocal()
        try:
            StockService(other, cache).adjust_stock(product_id, variant_id, -4)
        finally:
            other.close()
        return stale

    svc._load_for_update = load_then_lose_race
    with pytest.raises(ConcurrencyError):
        svc.adjust_stock(product.id, variant.id, -3)

    # only the competing write landed; the loser was rolled back
    assert _stock(variant.id) == 1
    assert not db.in_transaction()


def test_parallel_decrements_never_oversell(cache, make_product, make_variant):
    product = make_product()
    variant = make_variant(product.id, stock=5)
    barrier = threading.Barrier(2)
    outcomes = []
    lock = threading.Lock()

    def worker():
        session = SessionLocal()
        try:
            barrier.wait()
            try:
                StockService(session, cache).adjust_stock(product.id, variant.id, -3)
                result = "ok"
            except (InsufficientStockError, ConcurrencyError) as e:
                result = type(e).__name__
            with lock:
                outcomes.append(result)
        finally:
            session.close()

    threads = [threading.Thread(target=worker) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)

    assert len(outcomes) == 2
    assert outcomes.count("ok") == 1
    assert _stock(variant.id) == 2


def test_stock_endpoint_status_codes(make_product, make_variant):
    product = make_product()
    variant = make_variant(product.id, stock=5)
    url = f"/api/v1/products/{product.id}/variants/{variant.id}/stock"

    res = client.patch(url, json={"quantity": -3})
    assert res.status_code == 200
    body = res.json()
    assert body["success"] is True
    assert body["data"]["stockQuantity"] == 2
    assert body["data"]["price"] == 29.99

    res = client.patch(url, json={"quantity": -10})
    assert res.status_code == 400
    body = res.json()
    assert body["success"] is False
    assert body["errors"][0]["field"] == "Quantity"

    res = client.patch(f"/api/v1/products/{product.id}/variants/missing/stock", json={"quantity": 1})
    assert res.status_code == 404

    res = client.patch(url, json={"quantity": "lots"})
    assert res.status_code == 400


def test_stock_endpoint_reports_conflict(monkeypatch, make_product, make_variant):
    product = make_product()
    variant = make_variant(product.id, stock=5)

    def conflict(self, product_id, variant_id, delta):
        raise ConcurrencyError()

    monkeypatch.setattr(StockService, "adjust_stock", conflict)
    res = client.patch(
        f"/api/v1/products/{product.id}/variants/{variant.id}/stock",
        json={"quantity": -1},
    )
    assert res.status_code == 409
    assert res.json()["errors"][0]["field"] == "Concurrency"


def test_restock_past_column_limit_rejected(db, cache, make_product, make_variant):
    product = make_product()
    variant = make_variant(product.id, stock=MAX_STOCK - 1)
    svc = StockService(db, cache)

    with pytest.raises(ValidationFailedError) as exc:
        svc.adjust_stock(product.id, variant.id, 2)
    assert exc.value.errors[0][0] == "Quantity"
    assert _stock(variant.id) == MAX_STOCK - 1
    assert not db.in_transaction()

    assert svc.adjust_stock(product.id, variant.id, 1).stock_quantity == MAX_STOCK


def test_oversized_quantity_is_a_client_error(make_product, make_variant):
    product = make_product()
    variant = make_variant(product.id, stock=5)
    url = f"/api/v1/products/{product.id}/variants/{variant.id}/stock"

    for quantity in (10**20, -(10**20)):
        res = client.patch(url, json={"quantity": quantity})
        assert res.status_code == 400
        body = res.json()
        assert body["success"] is False
        assert body["errors"][0]["field"] == "quantity"
    assert _stock(variant.id) == 5
