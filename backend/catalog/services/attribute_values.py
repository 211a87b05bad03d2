"""
Typed reading of EAV attribute values.

Attribute values are stored as text; what they mean depends on the data type
of the referenced Attribute definition. ``resolve`` pairs a raw value with its
definition and yields a TypedValue, so callers never interpret the string
without the join.
"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping

from catalog.errors import MappingError
from catalog.models.attribute import AttributeDataType


class AttributeValueError(ValueError):
    pass


@dataclass(frozen=True)
class TypedValue:
    attribute_id: str
    name: str
    data_type: AttributeDataType
    raw: str
    value: Any


def _parse_number(raw: str) -> int:
    try:
        return int(raw.strip())
    except ValueError:
        raise AttributeValueError(f"{raw!r} is not a whole number")


def _parse_decimal(raw: str) -> Decimal:
    try:
        value = Decimal(raw.strip())
    except InvalidOperation:
        raise AttributeValueError(f"{raw!r} is not a decimal number")
    if not value.is_finite():
        raise AttributeValueError(f"{raw!r} is not a decimal number")
    return value


def _parse_boolean(raw: str) -> bool:
    text = raw.strip().lower()
    if text == "true":
        return True
    if text == "false":
        return False
    raise AttributeValueError(f"{raw!r} is not true or false")


def _parse_date(raw: str):
    text = raw.strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        raise AttributeValueError(f"{raw!r} is not an ISO-8601 date")


_PARSERS = {
    AttributeDataType.STRING: lambda raw: raw,
    AttributeDataType.NUMBER: _parse_number,
    AttributeDataType.DECIMAL: _parse_decimal,
    AttributeDataType.BOOLEAN: _parse_boolean,
    AttributeDataType.DATE: _parse_date,
}


def parse_value(data_type: AttributeDataType, raw: str) -> Any:
    """Convert ``raw`` under ``data_type`` or raise AttributeValueError."""
    if raw is None:
        raise AttributeValueError("value is required")
    return _PARSERS[AttributeDataType(data_type)](raw)


def is_valid_value(data_type: AttributeDataType, raw: str) -> bool:
    try:
        parse_value(data_type, raw)
    except AttributeValueError:
        return False
    return True


def resolve(attribute_id: str, raw: str, definitions: Mapping[str, Any]) -> TypedValue:
    """
    Pair a stored value with its Attribute definition. A missing definition
    means referential integrity is broken, which is an internal error.
    """
    definition = definitions.get(attribute_id)
    if definition is None:
        raise MappingError(f"attribute {attribute_id} referenced by a value does not exist")
    data_type = AttributeDataType(definition.data_type)
    return TypedValue(
        attribute_id=attribute_id,
        name=definition.name,
        data_type=data_type,
        raw=raw,
        value=parse_value(data_type, raw),
    )
