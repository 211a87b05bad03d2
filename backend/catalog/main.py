import logging
from contextlib import asynccontextmanager

from apscheduler.schedulers.background import BackgroundScheduler
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from catalog.api.health import router as health_router
from catalog.api.routes_products import router as products_router
from catalog.api.routes_reference import attributes_router, categories_router
from catalog.cache import InMemoryCache, get_cache
from catalog.config import settings
from catalog.db import SessionLocal, init_db
from catalog.errors import CatalogException, MappingError
from catalog.schemas.common import ApiResponse
from catalog.utils.logging import configure_logging

log = logging.getLogger("catalog")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # startup
    configure_logging()
    init_db()
    if settings.SEED_ON_STARTUP:
        from catalog.db.seed import seed_catalog

        db = SessionLocal()
        try:
            seed_catalog(db)
        finally:
            db.close()

    cache = get_cache()
    scheduler = None
    if isinstance(cache, InMemoryCache):
        # redis expires on its own; the in-process store needs a sweep
        scheduler = BackgroundScheduler()
        scheduler.add_job(
            cache.sweep_expired,
            "interval",
            seconds=settings.CACHE_SWEEP_INTERVAL_SECONDS,
            id="sweep_cache",
        )
        scheduler.start()
    log.info("Catalog API started (cache=%s)", cache.name)

    try:
        yield
    finally:
        if scheduler is not None:
            scheduler.shutdown(wait=False)
        cache.close()


app = FastAPI(title="Product Catalog - Backend", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.FRONTEND_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _envelope(status_code: int, errors) -> JSONResponse:
    body = ApiResponse.fail(errors).model_dump(mode="json", by_alias=True)
    return JSONResponse(status_code=status_code, content=body)


@app.exception_handler(CatalogException)
def handle_catalog_error(request: Request, exc: CatalogException):
    if exc.status_code >= 500:
        log.error("%s %s failed: %s", request.method, request.url.path, exc)
    return _envelope(exc.status_code, exc.errors)


@app.exception_handler(RequestValidationError)
def handle_request_validation(request: Request, exc: RequestValidationError):
    errors = []
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")]
        errors.append((".".join(loc) or "General", err.get("msg", "Invalid value")))
    return _envelope(400, errors)


@app.exception_handler(MappingError)
def handle_mapping_error(request: Request, exc: MappingError):
    log.error("Inconsistent catalog data on %s %s: %s", request.method, request.url.path, exc)
    return _envelope(500, [("General", "An unexpected error occurred")])


@app.exception_handler(Exception)
def handle_unexpected(request: Request, exc: Exception):
    log.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _envelope(500, [("General", "An unexpected error occurred")])


app.include_router(health_router, prefix="/api", tags=["health"])

app.include_router(products_router, prefix=settings.API_PREFIX)

app.include_router(categories_router, prefix=settings.API_PREFIX)

app.include_router(attributes_router, prefix=settings.API_PREFIX)
