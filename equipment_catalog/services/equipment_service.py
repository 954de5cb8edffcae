from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from equipment_catalog.db.models import Equipment, TypeNode, utcnow
from equipment_catalog.services.errors import InvalidParent, NotFound, ValidationFailed
from equipment_catalog.services.hierarchy_resolver import HierarchyResolver, node_out
from equipment_catalog.services.integrity_guard import MAX_NAME_LENGTH, normalize_name
from equipment_catalog.services.type_node_store import translate_store_errors

logger = logging.getLogger(__name__)

CHAIN_SLOTS = ("domain", "type", "category", "subcategory")


def _norm_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _norm_short(value: Any, *, field: str) -> Optional[str]:
    text = _norm_text(value)
    if text is not None and len(text) > MAX_NAME_LENGTH:
        raise ValidationFailed(f"{field} must be at most {MAX_NAME_LENGTH} characters", field=field, constraint="max_length")
    return text


@dataclass
class EquipmentFilters:
    search: Optional[str] = None
    domain: Optional[int] = None
    type: Optional[int] = None
    category: Optional[int] = None
    subcategory: Optional[int] = None
    brand: Optional[str] = None
    model: Optional[str] = None

    def level_ids(self) -> list[tuple[int, int]]:
        """(slot index, node id) pairs for every level filter that is set."""
        out: list[tuple[int, int]] = []
        for idx, name in enumerate(CHAIN_SLOTS):
            value = getattr(self, name)
            if value is not None:
                out.append((idx, int(value)))
        return out


@dataclass
class EquipmentCatalog:
    """Equipment rows plus their resolved domain → subcategory context."""

    resolver: HierarchyResolver = field(default_factory=HierarchyResolver)
    soft_delete: bool = False

    def _query(self, db: Session):
        q = db.query(Equipment)
        if self.soft_delete:
            q = q.filter(Equipment.is_deleted.is_(None))
        return q

    def _load(self, db: Session, equipment_id: int) -> Equipment:
        with translate_store_errors(db):
            row = self._query(db).filter(Equipment.id == int(equipment_id)).one_or_none()
        if row is None:
            raise NotFound(f"equipment {equipment_id} not found", field="id")
        return row

    def _check_type(self, db: Session, type_id: Any) -> int:
        try:
            type_id = int(type_id)
        except (TypeError, ValueError):
            raise InvalidParent("equipment_type_id must be an integer id", field="equipment_type_id", constraint="reference")
        if self.resolver.store.find_by_id(db, type_id) is None:
            raise InvalidParent(
                f"equipment type {type_id} does not exist",
                field="equipment_type_id",
                constraint="reference",
            )
        return type_id

    def validate_payload(self, db: Session, *, payload: dict[str, Any], partial: bool = False) -> dict[str, Any]:
        cleaned: dict[str, Any] = {}
        if not partial or payload.get("name") is not None:
            cleaned["name"] = normalize_name(payload.get("name"))
        if not partial or payload.get("equipment_type_id") is not None:
            cleaned["equipment_type_id"] = self._check_type(db, payload.get("equipment_type_id"))
        for key in ("brand", "model"):
            if not partial or key in payload:
                cleaned[key] = _norm_short(payload.get(key), field=key)
        if not partial or "description" in payload:
            cleaned["description"] = _norm_text(payload.get("description"))
        return cleaned

    # ---------- writes ----------

    def create(self, db: Session, *, payload: dict[str, Any]) -> Equipment:
        cleaned = self.validate_payload(db, payload=payload)
        row = Equipment(**cleaned)
        with translate_store_errors(db):
            db.add(row)
            db.commit()
            db.refresh(row)
        logger.info("Created equipment %s %r (type %s)", row.id, row.name, row.equipment_type_id)
        return row

    def update(self, db: Session, equipment_id: int, *, patch: dict[str, Any]) -> Equipment:
        row = self._load(db, equipment_id)
        cleaned = self.validate_payload(db, payload=patch, partial=True)
        for key, value in cleaned.items():
            setattr(row, key, value)
        row.updated_at = utcnow()
        with translate_store_errors(db):
            db.add(row)
            db.commit()
            db.refresh(row)
        return row

    def delete(self, db: Session, equipment_id: int) -> None:
        row = self._load(db, equipment_id)
        with translate_store_errors(db):
            if self.soft_delete:
                row.is_deleted = utcnow()
                db.add(row)
            else:
                db.delete(row)
            db.commit()
        logger.info("Deleted equipment %s (%s)", equipment_id, "logical" if self.soft_delete else "physical")

    # ---------- reads ----------

    def get_by_id(self, db: Session, equipment_id: int) -> dict[str, Any]:
        row = self._load(db, equipment_id)
        return self.equipment_out(db, row)

    def get_all(self, db: Session, filters: Optional[EquipmentFilters] = None) -> list[dict[str, Any]]:
        filters = filters or EquipmentFilters()
        q = self._query(db)

        search = _norm_text(filters.search)
        if search:
            # Literal substring; "%" and "_" typed by the user are escaped.
            q = q.filter(
                or_(
                    Equipment.name.icontains(search, autoescape=True),
                    Equipment.brand.icontains(search, autoescape=True),
                    Equipment.model.icontains(search, autoescape=True),
                )
            )
        brand = _norm_text(filters.brand)
        if brand:
            q = q.filter(func.lower(Equipment.brand) == brand.lower())
        model = _norm_text(filters.model)
        if model:
            q = q.filter(func.lower(Equipment.model) == model.lower())

        with translate_store_errors(db):
            rows = q.order_by(Equipment.name.asc(), Equipment.id.asc()).all()

        chains: dict[int, list[Optional[TypeNode]]] = {}
        wanted = filters.level_ids()
        out: list[dict[str, Any]] = []
        for row in rows:
            chain = self._chain(db, int(row.equipment_type_id), chains)
            if any(chain[idx] is None or int(chain[idx].id) != node_id for idx, node_id in wanted):
                continue
            out.append(self.equipment_out(db, row, chain=chain))
        return out

    def _chain(self, db: Session, type_id: int, memo: dict[int, list[Optional[TypeNode]]]) -> list[Optional[TypeNode]]:
        if type_id not in memo:
            memo[type_id] = self.resolver.get_ancestor_chain(db, type_id)
        return memo[type_id]

    def equipment_out(
        self,
        db: Session,
        row: Equipment,
        *,
        chain: Optional[list[Optional[TypeNode]]] = None,
    ) -> dict[str, Any]:
        if chain is None:
            chain = self.resolver.get_ancestor_chain(db, int(row.equipment_type_id))
        equipment_type = next(
            (n for n in chain if n is not None and int(n.id) == int(row.equipment_type_id)),
            None,
        )
        out: dict[str, Any] = {
            "id": int(row.id),
            "name": str(row.name),
            "equipment_type_id": int(row.equipment_type_id),
            "brand": row.brand,
            "model": row.model,
            "description": row.description,
            "is_deleted": row.is_deleted,
            "created_at": row.created_at,
            "updated_at": row.updated_at,
            "equipment_type": node_out(equipment_type) if equipment_type is not None else None,
        }
        for idx, slot in enumerate(CHAIN_SLOTS):
            node = chain[idx]
            out[slot] = node_out(node) if node is not None else None
        return out

