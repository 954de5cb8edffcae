from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, Iterator, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from equipment_catalog.db.models import TypeNode
from equipment_catalog.services.errors import DuplicateName, InvalidParent, NotFound, StoreError

logger = logging.getLogger(__name__)

_MUTABLE_FIELDS = ("name", "parent_id", "level")


def _is_unique_violation(exc: IntegrityError) -> bool:
    text = str(getattr(exc, "orig", exc)).lower()
    return "unique" in text or "duplicate" in text


@contextmanager
def translate_store_errors(db: Session) -> Iterator[None]:
    """Roll back and re-raise SQLAlchemy failures as catalog errors."""
    try:
        yield
    except IntegrityError as exc:
        db.rollback()
        if _is_unique_violation(exc):
            raise DuplicateName("name already exists under this parent", field="name", constraint="unique_name_per_parent") from exc
        raise InvalidParent("referenced type node does not exist", field="parent_id", constraint="foreign_key") from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Store failure")
        raise StoreError("database operation failed") from exc


@dataclass
class TypeNodeStore:
    """Row-level access to ``equipment_types``; no hierarchy rules live here.

    With ``autocommit`` every mutation is its own transaction. Callers that
    group several mutations (the bulk importer) turn it off and commit
    themselves.
    """

    autocommit: bool = True

    def find_by_id(self, db: Session, node_id: int) -> Optional[TypeNode]:
        with translate_store_errors(db):
            return db.query(TypeNode).filter(TypeNode.id == int(node_id)).one_or_none()

    def get_by_id(self, db: Session, node_id: int) -> TypeNode:
        node = self.find_by_id(db, node_id)
        if node is None:
            raise NotFound(f"type node {node_id} not found", field="id")
        return node

    def find_many(self, db: Session, *criteria: Any, order_by: Optional[tuple] = None) -> list[TypeNode]:
        with translate_store_errors(db):
            q = db.query(TypeNode)
            if criteria:
                q = q.filter(*criteria)
            order = order_by if order_by is not None else (TypeNode.name.asc(), TypeNode.id.asc())
            return q.order_by(*order).all()

    def find_one(self, db: Session, *, name: str, parent_id: Optional[int]) -> Optional[TypeNode]:
        if parent_id is None:
            parent_clause = TypeNode.parent_id.is_(None)
        else:
            parent_clause = TypeNode.parent_id == int(parent_id)
        with translate_store_errors(db):
            return (
                db.query(TypeNode)
                .filter(TypeNode.name == name, parent_clause)
                .order_by(TypeNode.id.asc())
                .first()
            )

    def count(self, db: Session, *criteria: Any) -> int:
        with translate_store_errors(db):
            q = db.query(func.count(TypeNode.id))
            if criteria:
                q = q.filter(*criteria)
            return int(q.scalar() or 0)

    def create(self, db: Session, *, name: str, parent_id: Optional[int], level: int) -> TypeNode:
        node = TypeNode(name=name, parent_id=parent_id, level=int(level))
        with translate_store_errors(db):
            db.add(node)
            self._finish(db, node)
        return node

    def update(self, db: Session, node: TypeNode, *, patch: Dict[str, Any]) -> TypeNode:
        for key in _MUTABLE_FIELDS:
            if key in patch:
                setattr(node, key, patch[key])
        with translate_store_errors(db):
            db.add(node)
            self._finish(db, node)
        return node

    def delete(self, db: Session, node: TypeNode) -> None:
        with translate_store_errors(db):
            db.delete(node)
            self._finish(db, None)

    def _finish(self, db: Session, node: Optional[TypeNode]) -> None:
        db.flush()
        if self.autocommit:
            db.commit()
            if node is not None:
                db.refresh(node)
