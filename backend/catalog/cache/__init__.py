import logging
from functools import lru_cache

from catalog.cache.base import CacheBackend
from catalog.cache.memory import InMemoryCache, NullCache
from catalog.config import Settings, settings

log = logging.getLogger("catalog.cache")


def build_cache(cfg: Settings) -> CacheBackend:
    backend = cfg.CACHE_BACKEND.lower()
    if backend == "redis":
        from catalog.cache.redis_backend import RedisCache

        log.info("Using Redis cache at %s", cfg.REDIS_URL)
        return RedisCache(
            url=cfg.REDIS_URL,
            key_prefix=cfg.CACHE_KEY_PREFIX,
            socket_timeout=cfg.CACHE_SOCKET_TIMEOUT,
        )
    if backend == "memory":
        return InMemoryCache()
    if backend == "none":
        return NullCache()
    raise ValueError(f"Unknown CACHE_BACKEND: {cfg.CACHE_BACKEND!r}")


@lru_cache(maxsize=1)
def get_cache() -> CacheBackend:
    """Process-wide cache handle; also used as a FastAPI dependency."""
    return build_cache(settings)


__all__ = ["CacheBackend", "InMemoryCache", "NullCache", "build_cache", "get_cache"]
