from typing import List, Optional, Tuple

FieldError = Tuple[str, str]


class CatalogException(Exception):
    """
    Base error for the catalog services. Carries field-level (field, message)
    pairs so the API layer can render them without re-interpreting the text.
    """

    status_code = 500

    def __init__(self, message: str, field: Optional[str] = None, errors: Optional[List[FieldError]] = None):
        super().__init__(message)
        if errors:
            self.errors = list(errors)
        else:
            self.errors = [(field or "General", message)]


class NotFoundError(CatalogException):
    status_code = 404


class ValidationFailedError(CatalogException):
    status_code = 400

    @classmethod
    def from_errors(cls, errors: List[FieldError]) -> "ValidationFailedError":
        return cls("; ".join(msg for _, msg in errors), errors=errors)


class ConcurrencyError(CatalogException):
    status_code = 409

    def __init__(self, message: str = "Record was modified by another user. Please refresh and try again."):
        super().__init__(message, field="Concurrency")


class InsufficientStockError(CatalogException):
    status_code = 400

    def __init__(self, available: int, requested: int):
        super().__init__(
            f"Insufficient stock. Available={available}, requested={requested}",
            field="Quantity",
        )
        self.available = available
        self.requested = requested


class MappingError(Exception):
    """Storage rows violate a referential invariant the mapper relies on."""
