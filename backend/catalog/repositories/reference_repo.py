from typing import Dict, Iterable, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from catalog.models.attribute import Attribute
from catalog.models.category import Category


class CategoryRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, category_id: str) -> Optional[Category]:
        return (
            self.db.query(Category)
            .options(joinedload(Category.parent))
            .filter(Category.id == category_id)
            .first()
        )

    def list(self, is_active: Optional[bool] = None) -> List[Category]:
        qry = self.db.query(Category)
        if is_active is not None:
            qry = qry.filter(Category.is_active == is_active)
        return qry.order_by(Category.name, Category.id).all()

    def sub_category_counts(self) -> Dict[str, int]:
        rows = (
            self.db.query(Category.parent_category_id, func.count(Category.id))
            .filter(Category.parent_category_id.isnot(None))
            .group_by(Category.parent_category_id)
            .all()
        )
        return {parent_id: count for parent_id, count in rows}

    def existing_ids(self, ids: Iterable[str]) -> set:
        ids = list(ids)
        if not ids:
            return set()
        return {row[0] for row in self.db.query(Category.id).filter(Category.id.in_(ids))}

    def parent_of(self, category_id: str) -> Optional[str]:
        row = (
            self.db.query(Category.parent_category_id)
            .filter(Category.id == category_id)
            .first()
        )
        return row[0] if row else None


class AttributeRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, attribute_id: str) -> Optional[Attribute]:
        return self.db.query(Attribute).filter(Attribute.id == attribute_id).first()

    def list(self) -> List[Attribute]:
        return self.db.query(Attribute).order_by(Attribute.name, Attribute.id).all()

    def by_ids(self, ids: Iterable[str]) -> Dict[str, Attribute]:
        ids = list(ids)
        if not ids:
            return {}
        return {
            a.id: a for a in self.db.query(Attribute).filter(Attribute.id.in_(ids)).all()
        }

    def required(self) -> List[Attribute]:
        return self.db.query(Attribute).filter(Attribute.is_required.is_(True)).all()

    def get_by_name(self, name: str) -> Optional[Attribute]:
        return self.db.query(Attribute).filter(Attribute.name == name).first()
