import importlib
import logging

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from catalog.config import settings

log = logging.getLogger("catalog.db")

DATABASE_URL = settings.DATABASE_URL

_connect_args = {}
if DATABASE_URL.startswith("sqlite"):
    # sessions are handed to FastAPI's threadpool workers
    _connect_args = {"check_same_thread": False, "timeout": 15}

engine = create_engine(
    DATABASE_URL,
    future=True,
    echo=settings.DB_ECHO,
    pool_pre_ping=True,
    connect_args=_connect_args,
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()

# every module that declares tables; imported so metadata is populated
MODEL_MODULES = [
    "catalog.models.attribute",
    "catalog.models.category",
    "catalog.models.product",
    "catalog.models.variant",
]


def init_db(reset: bool = False):
    """
    Create the schema. With ``reset`` (or RESET_DB in settings) existing
    tables are dropped first so tests and demos start from a clean database.
    """
    for mod in MODEL_MODULES:
        importlib.import_module(mod)

    if reset or settings.RESET_DB:
        log.info("Resetting database schema")
        Base.metadata.drop_all(bind=engine)

    Base.metadata.create_all(bind=engine)
    log.debug("Database tables ready: %s", sorted(Base.metadata.tables))


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
