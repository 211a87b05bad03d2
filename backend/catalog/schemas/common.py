# backend/catalog/schemas/common.py
from datetime import datetime, timezone
from typing import Generic, List, Optional, Sequence, Tuple, TypeVar

from pydantic import BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    """camelCase on the wire, snake_case in Python; either accepted on input."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ErrorDetail(CamelModel):
    field: str
    message: str


class ApiResponse(CamelModel, Generic[T]):
    success: bool = True
    data: Optional[T] = None
    errors: Optional[List[ErrorDetail]] = None
    timestamp: datetime = Field(default_factory=_now)

    @classmethod
    def ok(cls, data) -> "ApiResponse":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, errors: Sequence[Tuple[str, str]]) -> "ApiResponse":
        return cls(
            success=False,
            errors=[ErrorDetail(field=f, message=m) for f, m in errors],
        )


class PaginationMetadata(CamelModel):
    page: int
    page_size: int
    total_count: int
    total_pages: int

    @computed_field(alias="hasPrevious")
    @property
    def has_previous(self) -> bool:
        return self.page > 1

    @computed_field(alias="hasNext")
    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages


class PagedResponse(CamelModel, Generic[T]):
    success: bool = True
    data: List[T] = Field(default_factory=list)
    metadata: PaginationMetadata
    timestamp: datetime = Field(default_factory=_now)
