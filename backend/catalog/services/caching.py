import logging
from typing import Callable, Optional, TypeVar

from pydantic import TypeAdapter, ValidationError

from catalog.cache.base import CacheBackend
from catalog.cache.keys import product_keys

log = logging.getLogger("catalog.cache")

T = TypeVar("T")


def read_through(
    cache: CacheBackend,
    key: str,
    adapter: TypeAdapter,
    loader: Callable[[], Optional[T]],
    ttl: int,
) -> Optional[T]:
    """
    Return the cached value for ``key`` or load it, store it and return it.
    A loader returning None (entity absent) is not cached. An entry that no
    longer parses is dropped and reloaded.
    """
    raw = cache.get(key)
    if raw is not None:
        try:
            return adapter.validate_json(raw)
        except ValidationError:
            log.warning("Discarding unreadable cache entry %s", key)
            cache.delete(key)

    value = loader()
    if value is not None:
        cache.set(key, adapter.dump_json(value, by_alias=True).decode("utf-8"), ttl)
    return value


def store(cache: CacheBackend, key: str, adapter: TypeAdapter, value, ttl: int) -> None:
    cache.set(key, adapter.dump_json(value, by_alias=True).decode("utf-8"), ttl)


def invalidate_product(cache: CacheBackend, product_id: str, sku: Optional[str]) -> None:
    """Drop the id, SKU and variant-list entries of a product."""
    keys = product_keys(product_id, sku)
    cache.delete(*keys)
    log.debug("Invalidated cache keys %s", keys)
