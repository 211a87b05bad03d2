import enum

from sqlalchemy import Boolean, Column, DateTime, Enum, String

from catalog.db import Base
from catalog.models.base import new_id, utcnow


class AttributeDataType(str, enum.Enum):
    STRING = "String"
    NUMBER = "Number"
    BOOLEAN = "Boolean"
    DATE = "Date"
    DECIMAL = "Decimal"


class Attribute(Base):
    """Attribute definition (Color, Size, ...). Reference data, never cascaded."""

    __tablename__ = "attributes"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(100), unique=True, nullable=False)
    data_type = Column(
        Enum(
            AttributeDataType,
            native_enum=False,
            length=16,
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        default=AttributeDataType.STRING,
    )
    is_required = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<Attribute name={self.name} type={self.data_type}>"
