"""
Redis-backed cache.

Uses the synchronous redis-py client (its connection pool is thread-safe, so
one instance is shared by every request worker). All keys are namespaced by
``key_prefix``. Connection or protocol faults are logged and turned into a
miss / no-op: storage remains the source of truth, and a stale entry left
behind by a failed delete expires through its TTL.
"""

import logging
from typing import Optional

import redis
from redis.exceptions import RedisError

from catalog.cache.base import CacheBackend

log = logging.getLogger("catalog.cache.redis")


class RedisCache(CacheBackend):
    name = "redis"

    def __init__(
        self,
        url: str = "redis://localhost:6379/0",
        key_prefix: str = "catalog:",
        socket_timeout: float = 2.0,
        client: Optional[redis.Redis] = None,
    ):
        self._url = url
        self._key_prefix = key_prefix
        if client is None:
            client = redis.Redis.from_url(
                url,
                socket_timeout=socket_timeout,
                socket_connect_timeout=socket_timeout,
                decode_responses=True,
            )
        self._redis = client

    def _full_key(self, key: str) -> str:
        return f"{self._key_prefix}{key}"

    def get(self, key: str) -> Optional[str]:
        try:
            raw = self._redis.get(self._full_key(key))
        except RedisError as e:
            log.warning("Redis GET failed for %r: %s", key, e)
            return None
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        return raw

    def set(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        try:
            if ttl and ttl > 0:
                self._redis.setex(self._full_key(key), ttl, value)
            else:
                self._redis.set(self._full_key(key), value)
        except RedisError as e:
            log.warning("Redis SET failed for %r: %s", key, e)

    def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        try:
            return int(self._redis.delete(*[self._full_key(k) for k in keys]) or 0)
        except RedisError as e:
            log.warning("Redis DEL failed for %r: %s", keys, e)
            return 0

    def delete_prefix(self, prefix: str) -> int:
        pattern = f"{self._full_key(prefix)}*"
        removed = 0
        try:
            batch = []
            for k in self._redis.scan_iter(match=pattern, count=500):
                batch.append(k)
                if len(batch) >= 500:
                    removed += int(self._redis.delete(*batch) or 0)
                    batch = []
            if batch:
                removed += int(self._redis.delete(*batch) or 0)
        except RedisError as e:
            log.warning("Redis prefix delete failed for %r: %s", prefix, e)
        return removed

    def ping(self) -> bool:
        try:
            return bool(self._redis.ping())
        except RedisError:
            return False

    def close(self) -> None:
        try:
            self._redis.close()
        except RedisError as e:
            log.warning("Redis close failed: %s", e)
        log.info("Redis cache closed: %s", self._url)
