from typing import List, Optional, Sequence

from sqlalchemy.orm import Session

from catalog.errors import FieldError, ValidationFailedError
from catalog.repositories.product_repo import ProductRepository
from catalog.repositories.reference_repo import AttributeRepository, CategoryRepository
from catalog.repositories.variant_repo import VariantRepository
from catalog.schemas.product_schema import AttributeValueIn, ProductImageIn
from catalog.services.attribute_values import is_valid_value


class CatalogValidator:
    """
    Storage-backed request rules (uniqueness and references). Field shape
    rules live on the pydantic request models. Call inside the write
    transaction so the checks see the same state the write commits against.
    """

    def __init__(self, db: Session):
        self.db = db
        self.products = ProductRepository(db)
        self.variants = VariantRepository(db)
        self.categories = CategoryRepository(db)
        self.attributes = AttributeRepository(db)

    def validate_product(self, req, creating: bool) -> None:
        errors: List[FieldError] = []
        if creating and self.products.sku_exists(req.sku):
            errors.append(("sku", "SKU already exists"))
        errors.extend(self._category_errors(req.category_ids, req.primary_category_id))
        errors.extend(self._attribute_errors(req.attributes, check_required=True))
        errors.extend(self._image_errors(req.images))
        if errors:
            raise ValidationFailedError.from_errors(errors)

    def validate_variant(self, req, creating: bool) -> None:
        errors: List[FieldError] = []
        if creating and self.variants.sku_exists(req.sku):
            errors.append(("sku", "SKU already exists"))
        errors.extend(self._attribute_errors(req.attributes, check_required=False))
        if errors:
            raise ValidationFailedError.from_errors(errors)

    def _category_errors(self, category_ids: Sequence[str], primary_id: Optional[str]) -> List[FieldError]:
        errors = []
        if not category_ids:
            return [("categoryIds", "At least one category is required")]
        if len(set(category_ids)) != len(category_ids):
            errors.append(("categoryIds", "Category IDs must not repeat"))
        missing = set(category_ids) - self.categories.existing_ids(category_ids)
        if missing:
            errors.append(("categoryIds", "One or more category IDs are invalid"))
        if primary_id is not None and primary_id not in category_ids:
            errors.append(
                ("primaryCategoryId", "Primary category must be one of the selected categories")
            )
        return errors

    def _attribute_errors(self, values: Sequence[AttributeValueIn], check_required: bool) -> List[FieldError]:
        errors = []
        ids = [v.attribute_id for v in values]
        if len(set(ids)) != len(ids):
            errors.append(("attributes", "An attribute may only be given once"))
        definitions = self.attributes.by_ids(ids)
        if len(definitions) != len(set(ids)):
            errors.append(("attributes", "One or more attribute IDs are invalid"))
        for v in values:
            definition = definitions.get(v.attribute_id)
            if definition is not None and not is_valid_value(definition.data_type, v.value):
                errors.append(
                    (
                        "attributes",
                        f"Value {v.value!r} is invalid for attribute "
                        f"{definition.name} ({definition.data_type.value})",
                    )
                )
        if check_required:
            given = set(ids)
            for definition in self.attributes.required():
                if definition.id not in given:
                    errors.append(("attributes", f"Attribute {definition.name} is required"))
        return errors

    def _image_errors(self, images: Sequence[ProductImageIn]) -> List[FieldError]:
        if sum(1 for i in images if i.is_primary) > 1:
            return [("images", "Only one image can be marked as primary")]
        return []
