"""Read services for reference data (categories, attribute definitions)."""

import logging
from typing import List, Optional

from pydantic import TypeAdapter
from sqlalchemy.orm import Session

from catalog.cache.base import CacheBackend
from catalog.cache.keys import (
    ATTRIBUTES_KEY,
    attribute_key,
    categories_key,
    category_key,
)
from catalog.config import settings
from catalog.errors import NotFoundError, ValidationFailedError
from catalog.models.attribute import Attribute, AttributeDataType
from catalog.models.category import Category
from catalog.repositories.reference_repo import AttributeRepository, CategoryRepository
from catalog.schemas.reference_schema import (
    AttributeDto,
    AttributeListDto,
    CategoryDto,
    CategoryListDto,
)
from catalog.services.caching import read_through
from catalog.utils.transactions import smart_transaction

log = logging.getLogger("catalog.reference")

_category_list_adapter = TypeAdapter(List[CategoryListDto])
_category_adapter = TypeAdapter(CategoryDto)
_attribute_list_adapter = TypeAdapter(List[AttributeListDto])
_attribute_adapter = TypeAdapter(AttributeDto)


class CategoryService:
    def __init__(self, db: Session, cache: CacheBackend):
        self.db = db
        self.cache = cache
        self.repo = CategoryRepository(db)
        self.ttl = settings.REFERENCE_CACHE_TTL_SECONDS

    def list_categories(self, is_active: Optional[bool] = None) -> List[CategoryListDto]:
        def load():
            with smart_transaction(self.db):
                counts = self.repo.sub_category_counts()
                return [
                    CategoryListDto(
                        id=c.id,
                        name=c.name,
                        description=c.description,
                        is_active=c.is_active,
                        parent_category_id=c.parent_category_id,
                        sub_categories_count=counts.get(c.id, 0),
                    )
                    for c in self.repo.list(is_active)
                ]

        return read_through(self.cache, categories_key(is_active), _category_list_adapter, load, self.ttl)

    def get_category(self, category_id: str) -> CategoryDto:
        def load():
            with smart_transaction(self.db):
                c = self.repo.get(category_id)
                if c is None:
                    return None
                return CategoryDto(
                    id=c.id,
                    name=c.name,
                    description=c.description,
                    is_active=c.is_active,
                    parent_category_id=c.parent_category_id,
                    parent_category_name=c.parent.name if c.parent else None,
                    display_order=c.display_order or 0,
                    created_at=c.created_at,
                    updated_at=c.updated_at,
                )

        dto = read_through(self.cache, category_key(category_id), _category_adapter, load, self.ttl)
        if dto is None:
            raise NotFoundError("Category not found", field="CategoryId")
        return dto

    def _check_parent(self, category_id: Optional[str], parent_id: Optional[str]) -> None:
        """
        Reject a parent that does not exist, or whose ancestor chain reaches
        ``category_id`` (which would close a cycle).
        """
        if parent_id is None:
            return
        if parent_id == category_id:
            raise ValidationFailedError("A category cannot be its own parent", field="parentCategoryId")
        if self.repo.get(parent_id) is None:
            raise ValidationFailedError("Parent category does not exist", field="parentCategoryId")
        seen = set()
        current = parent_id
        while current is not None:
            if current == category_id or current in seen:
                raise ValidationFailedError(
                    "Parent assignment would create a cycle", field="parentCategoryId"
                )
            seen.add(current)
            current = self.repo.parent_of(current)

    def _invalidate(self, *category_ids: str) -> None:
        self.cache.delete_prefix("categories:all:")
        self.cache.delete(*[category_key(cid) for cid in category_ids if cid])

    def create_category(
        self,
        name: str,
        description: Optional[str] = None,
        parent_id: Optional[str] = None,
        display_order: int = 0,
        is_active: bool = True,
    ) -> CategoryDto:
        with smart_transaction(self.db):
            self._check_parent(None, parent_id)
            category = Category(
                name=name,
                description=description,
                parent_category_id=parent_id,
                display_order=display_order,
                is_active=is_active,
            )
            self.db.add(category)
            self.db.flush()
            category_id = category.id
        self._invalidate(category_id, parent_id)
        log.info("Created category %s (%s)", category_id, name)
        return self.get_category(category_id)

    def set_parent(self, category_id: str, parent_id: Optional[str]) -> CategoryDto:
        with smart_transaction(self.db):
            category = self.repo.get(category_id)
            if category is None:
                raise NotFoundError("Category not found", field="CategoryId")
            self._check_parent(category_id, parent_id)
            old_parent = category.parent_category_id
            category.parent_category_id = parent_id
        self._invalidate(category_id, old_parent, parent_id)
        log.info("Moved category %s from parent %s to %s", category_id, old_parent, parent_id)
        return self.get_category(category_id)


class AttributeService:
    def __init__(self, db: Session, cache: CacheBackend):
        self.db = db
        self.cache = cache
        self.repo = AttributeRepository(db)
        self.ttl = settings.REFERENCE_CACHE_TTL_SECONDS

    def list_attributes(self) -> List[AttributeListDto]:
        def load():
            with smart_transaction(self.db):
                return [
                    AttributeListDto(
                        id=a.id,
                        name=a.name,
                        data_type=a.data_type.value,
                        is_required=a.is_required,
                    )
                    for a in self.repo.list()
                ]

        return read_through(self.cache, ATTRIBUTES_KEY, _attribute_list_adapter, load, self.ttl)

    def get_attribute(self, attribute_id: str) -> AttributeDto:
        def load():
            with smart_transaction(self.db):
                a = self.repo.get(attribute_id)
                if a is None:
                    return None
                return AttributeDto(
                    id=a.id,
                    name=a.name,
                    data_type=a.data_type.value,
                    is_required=a.is_required,
                    created_at=a.created_at,
                    updated_at=a.updated_at,
                )

        dto = read_through(self.cache, attribute_key(attribute_id), _attribute_adapter, load, self.ttl)
        if dto is None:
            raise NotFoundError("Attribute not found", field="AttributeId")
        return dto

    def create_attribute(
        self,
        name: str,
        data_type: AttributeDataType = AttributeDataType.STRING,
        is_required: bool = False,
    ) -> AttributeDto:
        with smart_transaction(self.db):
            if self.repo.get_by_name(name) is not None:
                raise ValidationFailedError("Attribute name already exists", field="name")
            attribute = Attribute(name=name, data_type=AttributeDataType(data_type), is_required=is_required)
            self.db.add(attribute)
            self.db.flush()
            attribute_id = attribute.id
        self.cache.delete(ATTRIBUTES_KEY)
        log.info("Created attribute %s (%s)", attribute_id, name)
        return self.get_attribute(attribute_id)
