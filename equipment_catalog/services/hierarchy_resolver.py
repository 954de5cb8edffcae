from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from equipment_catalog.db.models import MAX_LEVEL, Equipment, TypeNode
from equipment_catalog.services.errors import HierarchyCorruption, NotFound
from equipment_catalog.services.type_node_store import TypeNodeStore, translate_store_errors

logger = logging.getLogger(__name__)


def node_summary(node: TypeNode) -> dict[str, Any]:
    return {
        "id": int(node.id),
        "name": str(node.name),
        "level": int(node.level),
        "level_label": node.level_label,
    }


def node_out(node: TypeNode) -> dict[str, Any]:
    return {
        "id": int(node.id),
        "name": str(node.name),
        "parent_id": int(node.parent_id) if node.parent_id is not None else None,
        "level": int(node.level),
        "level_label": node.level_label,
        "created_at": node.created_at,
        "updated_at": node.updated_at,
    }


def _corrupt(node: TypeNode, reason: str) -> HierarchyCorruption:
    logger.error("Hierarchy corruption at type node %s (%r): %s", node.id, node.name, reason)
    return HierarchyCorruption(f"hierarchy corrupt at type node {node.id}: {reason}", constraint="tree_shape")


@dataclass
class HierarchyResolver:
    store: TypeNodeStore = field(default_factory=TypeNodeStore)

    def get_ancestor_chain(self, db: Session, node_id: int) -> list[Optional[TypeNode]]:
        """Return the 4-slot chain for ``node_id``, slot ``level - 1`` per node.

        Slots below the node's level are filled root first; deeper slots stay
        ``None``. The walk never takes more than MAX_LEVEL hops.
        """
        chain: list[Optional[TypeNode]] = [None] * MAX_LEVEL
        current: Optional[TypeNode] = self.store.get_by_id(db, node_id)
        hops = 0
        while current is not None:
            if hops >= MAX_LEVEL:
                raise _corrupt(current, f"parent chain longer than {MAX_LEVEL} levels")
            hops += 1

            level = int(current.level)
            if level < 1 or level > MAX_LEVEL:
                raise _corrupt(current, f"level {level} outside 1..{MAX_LEVEL}")
            chain[level - 1] = current

            if current.parent_id is None:
                if level != 1:
                    raise _corrupt(current, f"node without parent sits at level {level}")
                break

            parent = self.store.find_by_id(db, int(current.parent_id))
            if parent is None:
                raise _corrupt(current, f"parent {current.parent_id} does not exist")
            if int(parent.level) != level - 1:
                raise _corrupt(current, f"parent {parent.id} is at level {parent.level}, expected {level - 1}")
            current = parent

        return chain

    def get_hierarchy(self, db: Session, node_id: int) -> list[TypeNode]:
        return [node for node in self.get_ancestor_chain(db, node_id) if node is not None]

    def get_children(self, db: Session, parent_id: int) -> list[TypeNode]:
        self.store.get_by_id(db, parent_id)
        return self.store.find_many(db, TypeNode.parent_id == int(parent_id))

    def has_children(self, db: Session, node_id: int) -> bool:
        return self.store.count(db, TypeNode.parent_id == int(node_id)) > 0

    def get_domains(self, db: Session) -> list[TypeNode]:
        return self.store.find_many(db, TypeNode.parent_id.is_(None))

    def get_descendant_ids(self, db: Session, node_id: int) -> list[int]:
        """Ids strictly below ``node_id``, walked level by level."""
        root = self.store.get_by_id(db, node_id)
        result: list[int] = []
        frontier = [int(root.id)]
        depth = 0
        while frontier:
            if depth >= MAX_LEVEL:
                raise _corrupt(root, f"subtree deeper than {MAX_LEVEL} levels")
            depth += 1
            with translate_store_errors(db):
                rows = db.query(TypeNode.id).filter(TypeNode.parent_id.in_(frontier)).all()
            frontier = [int(row[0]) for row in rows if int(row[0]) not in result]
            result.extend(frontier)
        return sorted(result)

    def is_ancestor(self, db: Session, ancestor_id: int, node_id: int) -> bool:
        """True when ``ancestor_id`` sits strictly above ``node_id``."""
        return any(
            n is not None and int(n.id) == int(ancestor_id) and int(n.id) != int(node_id)
            for n in self.get_ancestor_chain(db, node_id)
        )

    def get_direct_equipment_count(self, db: Session, node_id: int, *, include_deleted: bool = True) -> int:
        return self._count_equipment(db, [int(node_id)], include_deleted=include_deleted)

    def get_descendant_equipment_count(self, db: Session, node_id: int, *, include_deleted: bool = True) -> int:
        ids = [int(node_id)] + self.get_descendant_ids(db, node_id)
        return self._count_equipment(db, ids, include_deleted=include_deleted)

    def _count_equipment(self, db: Session, type_ids: list[int], *, include_deleted: bool) -> int:
        with translate_store_errors(db):
            q = db.query(func.count(Equipment.id)).filter(Equipment.equipment_type_id.in_(type_ids))
            if not include_deleted:
                q = q.filter(Equipment.is_deleted.is_(None))
            return int(q.scalar() or 0)

    def list_nodes(self, db: Session) -> list[dict[str, Any]]:
        rows = self.store.find_many(db, order_by=(TypeNode.level.asc(), TypeNode.name.asc(), TypeNode.id.asc()))
        by_id = {int(row.id): row for row in rows}
        children: dict[int, list[TypeNode]] = {}
        for row in rows:
            if row.parent_id is not None:
                children.setdefault(int(row.parent_id), []).append(row)

        out: list[dict[str, Any]] = []
        for row in rows:
            item = node_out(row)
            parent = by_id.get(int(row.parent_id)) if row.parent_id is not None else None
            item["parent"] = node_summary(parent) if parent is not None else None
            item["children"] = [node_summary(c) for c in children.get(int(row.id), [])]
            out.append(item)
        return out

    def build_tree(self, db: Session, *, root_id: Optional[int] = None) -> list[dict[str, Any]]:
        rows = self.store.find_many(db)
        node_map: dict[int, dict[str, Any]] = {}
        for row in rows:
            node = node_summary(row)
            node["children"] = []
            node_map[int(row.id)] = node

        roots: list[dict[str, Any]] = []
        for row in rows:
            node = node_map[int(row.id)]
            parent_id = int(row.parent_id) if row.parent_id is not None else None
            if parent_id is not None and parent_id in node_map:
                node_map[parent_id]["children"].append(node)
            else:
                roots.append(node)

        # Nodes on a parent cycle are neither roots nor below one.
        reachable: set[int] = set()
        stack = list(roots)
        while stack:
            node = stack.pop()
            if node["id"] in reachable:
                continue
            reachable.add(node["id"])
            stack.extend(node["children"])
        unreachable = sorted(set(node_map) - reachable)
        if unreachable:
            logger.error("Hierarchy corruption: type nodes %s are not reachable from any domain", unreachable)

        # rows arrive ordered by (name, id), so children lists keep that order.
        if root_id is None:
            return roots
        root = node_map.get(int(root_id))
        if root is None:
            raise NotFound(f"type node {root_id} not found", field="root_id")
        return [root]
