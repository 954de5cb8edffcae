from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from sqlalchemy.orm import Session

from equipment_catalog.db.models import TypeNode
from equipment_catalog.services.hierarchy_resolver import HierarchyResolver, node_out, node_summary
from equipment_catalog.services.integrity_guard import IntegrityGuard
from equipment_catalog.services.type_node_store import TypeNodeStore

logger = logging.getLogger(__name__)


@dataclass
class EquipmentTypeService:
    """Create/update/delete of type nodes, each write gated by the guard."""

    guard: IntegrityGuard = field(default_factory=IntegrityGuard)

    @property
    def resolver(self) -> HierarchyResolver:
        return self.guard.resolver

    @property
    def store(self) -> TypeNodeStore:
        return self.guard.store

    def create(self, db: Session, *, name: Any, parent_id: Any, level: Any) -> TypeNode:
        cleaned = self.guard.validate_create(db, name=name, parent_id=parent_id, level=level)
        node = self.store.create(db, **cleaned)
        logger.info("Created type node %s %r (level %s, parent %s)", node.id, node.name, node.level, node.parent_id)
        return node

    def update(self, db: Session, node_id: int, *, patch: dict[str, Any]) -> TypeNode:
        node, changes = self.guard.validate_update(db, node_id, patch)
        if not changes:
            return node
        node = self.store.update(db, node, patch=changes)
        logger.info("Updated type node %s: %s", node.id, sorted(changes))
        return node

    def delete(self, db: Session, node_id: int) -> None:
        node = self.guard.validate_delete(db, node_id)
        name = node.name
        self.store.delete(db, node)
        logger.info("Deleted type node %s %r", node_id, name)

    def detail(self, db: Session, node_id: int, *, include_deleted: bool = True) -> dict[str, Any]:
        node = self.store.get_by_id(db, node_id)
        parent: Optional[TypeNode] = None
        if node.parent_id is not None:
            parent = self.store.find_by_id(db, int(node.parent_id))
        out = node_out(node)
        out["parent"] = node_summary(parent) if parent is not None else None
        out["children"] = [node_summary(c) for c in self.resolver.get_children(db, int(node.id))]
        out["equipment_count"] = self.resolver.get_direct_equipment_count(db, int(node.id), include_deleted=include_deleted)
        out["descendant_equipment_count"] = self.resolver.get_descendant_equipment_count(
            db, int(node.id), include_deleted=include_deleted
        )
        return out
