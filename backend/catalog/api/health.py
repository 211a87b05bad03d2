import logging

from fastapi import APIRouter
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from catalog.cache import get_cache
from catalog.db import engine

router = APIRouter()
log = logging.getLogger("catalog.health")


@router.get("/health", tags=["health"])
def health():
    db_ok = False
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
            db_ok = True
    except SQLAlchemyError as e:
        log.warning("Database health check failed: %s", e)

    # backends report their own failures; ping never raises
    cache_ok = get_cache().ping()

    return {
        "status": "ok" if db_ok and cache_ok else "degraded",
        "db": db_ok,
        "cache": cache_ok,
    }
