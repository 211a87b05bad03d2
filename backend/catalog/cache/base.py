from abc import ABC, abstractmethod
from typing import Optional


class CacheBackend(ABC):
    """
    Key/value store with per-entry TTL used as a read-through cache for
    aggregate DTOs. Values are JSON text. Implementations are advisory:
    a fault must degrade to a miss, never to a wrong answer.
    """

    name = "abstract"

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    def set(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        ...

    @abstractmethod
    def delete(self, *keys: str) -> int:
        ...

    @abstractmethod
    def delete_prefix(self, prefix: str) -> int:
        """Remove every entry whose key starts with ``prefix``."""

    def ping(self) -> bool:
        return True

    def close(self) -> None:
        pass
