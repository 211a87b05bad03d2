from typing import List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./catalog.db"
    DB_ECHO: bool = False
    API_PREFIX: str = "/api/v1"
    FRONTEND_ORIGINS: List[str] = ["http://localhost:3000"]

    # cache
    CACHE_BACKEND: str = "redis"  # redis, memory, none
    REDIS_URL: str = "redis://localhost:6379/0"
    CACHE_KEY_PREFIX: str = "catalog:"
    CACHE_SOCKET_TIMEOUT: float = 2.0
    PRODUCT_CACHE_TTL_SECONDS: int = 3600
    VARIANTS_CACHE_TTL_SECONDS: int = 1800
    REFERENCE_CACHE_TTL_SECONDS: int = 3600
    CACHE_SWEEP_INTERVAL_SECONDS: int = 60

    # paging
    DEFAULT_PAGE_SIZE: int = 20
    MAX_PAGE_SIZE: int = 100

    SEED_ON_STARTUP: bool = False
    RESET_DB: bool = False
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
