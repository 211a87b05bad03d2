from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from catalog.db import Base
from catalog.models.base import new_id, utcnow


class Category(Base):
    __tablename__ = "categories"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(100), nullable=False, index=True)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    parent_category_id = Column(
        String(36), ForeignKey("categories.id"), nullable=True, index=True
    )
    display_order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    parent = relationship("Category", remote_side=[id], back_populates="sub_categories")
    sub_categories = relationship("Category", back_populates="parent")

    def __repr__(self):
        return f"<Category name={self.name}>"
