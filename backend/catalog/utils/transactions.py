import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from catalog.errors import ConcurrencyError, ValidationFailedError

log = logging.getLogger("catalog.transactions")

# SQLSTATE serialization_failure / deadlock_detected
_SERIALIZATION_SQLSTATES = {"40001", "40P01"}


def is_serialization_failure(exc: DBAPIError) -> bool:
    orig = getattr(exc, "orig", None)
    code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if code in _SERIALIZATION_SQLSTATES:
        return True
    # sqlite reports a competing writer as a locked database
    return "database is locked" in str(orig).lower()


def is_unique_violation(exc: IntegrityError) -> bool:
    text = str(getattr(exc, "orig", exc)).lower()
    return "unique" in text or "duplicate key" in text


# (fragment of the driver message, field, message); sqlite names table.column,
# postgres names the index and the key columns
_UNIQUE_FIELDS = [
    ("sku", "sku", "SKU already exists"),
    ("attributes.name", "name", "Attribute name already exists"),
    ("attributes_name", "name", "Attribute name already exists"),
    ("product_categories", "categoryIds", "Category IDs must not repeat"),
]


def unique_violation_error(exc: IntegrityError) -> ValidationFailedError:
    """Name the field whose unique constraint a racing write tripped."""
    text = str(getattr(exc, "orig", exc)).lower()
    for fragment, field, message in _UNIQUE_FIELDS:
        if fragment in text:
            return ValidationFailedError(message, field=field)
    return ValidationFailedError("A record with the same key already exists")


@contextmanager
def smart_transaction(session: Session) -> Iterator:
    """
    Context manager that begins a transaction on the given Session.
    If a transaction is already active, start a nested SAVEPOINT (begin_nested).
    Otherwise start a normal transaction (begin).

    Concurrency-token mismatches and serialization failures raised at flush
    or commit surface as ConcurrencyError; a unique index tripped by a
    racing insert surfaces as a ValidationFailedError on the field it guards.
    """
    if session.in_transaction():
        cm = session.begin_nested()
    else:
        cm = session.begin()
    try:
        with cm:
            yield
    except StaleDataError as e:
        log.warning("Concurrency token mismatch: %s", e)
        raise ConcurrencyError() from e
    except IntegrityError as e:
        if is_unique_violation(e):
            raise unique_violation_error(e) from e
        raise
    except DBAPIError as e:
        if is_serialization_failure(e):
            log.warning("Serialization failure: %s", e.orig)
            raise ConcurrencyError() from e
        raise


@contextmanager
def serializable_transaction(session: Session) -> Iterator:
    """
    Run the block in a transaction at SERIALIZABLE isolation.

    The isolation level is pinned on the connection before the first
    statement, so the session must not already be inside a transaction.
    The transaction commits when the block exits normally and rolls back on
    any exception, including cancellation. Conflicts detected by the engine
    or by the concurrency token become ConcurrencyError; nothing is retried.
    """
    if session.in_transaction():
        raise RuntimeError("serializable_transaction needs a session with no open transaction")
    try:
        with session.begin():
            session.connection(execution_options={"isolation_level": "SERIALIZABLE"})
            yield
    except StaleDataError as e:
        log.warning("Concurrency token mismatch: %s", e)
        raise ConcurrencyError() from e
    except DBAPIError as e:
        if is_serialization_failure(e):
            log.warning("Serialization failure: %s", e.orig)
            raise ConcurrencyError() from e
        raise
