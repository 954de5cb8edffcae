from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from sqlalchemy.orm import Session

from equipment_catalog.db.models import LEVEL_LABELS, MAX_LEVEL, TypeNode
from equipment_catalog.services.errors import (
    DuplicateName,
    HasChildren,
    HasEquipment,
    InvalidParent,
    LevelMismatch,
    ValidationFailed,
)
from equipment_catalog.services.hierarchy_resolver import HierarchyResolver
from equipment_catalog.services.type_node_store import TypeNodeStore

MAX_NAME_LENGTH = 255


def normalize_name(value: Any, *, field: str = "name") -> str:
    text = str(value).strip() if value is not None else ""
    if not text:
        raise ValidationFailed(f"{field} is required", field=field, constraint="non_empty")
    if len(text) > MAX_NAME_LENGTH:
        raise ValidationFailed(f"{field} must be at most {MAX_NAME_LENGTH} characters", field=field, constraint="max_length")
    return text


def normalize_parent_id(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidParent("parent_id must be an integer id", field="parent_id", constraint="reference")


def normalize_level(value: Any) -> int:
    try:
        level = int(value)
    except (TypeError, ValueError):
        raise LevelMismatch("level must be an integer", field="level", constraint="level_range")
    if level < 1 or level > MAX_LEVEL:
        raise LevelMismatch(f"level must be between 1 and {MAX_LEVEL}", field="level", constraint="level_range")
    return level


@dataclass
class IntegrityGuard:
    """Structural checks that must pass before a type node is written."""

    resolver: HierarchyResolver = field(default_factory=HierarchyResolver)

    @property
    def store(self) -> TypeNodeStore:
        return self.resolver.store

    def validate_create(self, db: Session, *, name: Any, parent_id: Any, level: Any) -> dict[str, Any]:
        return self._check_shape(
            db,
            name=normalize_name(name),
            parent_id=normalize_parent_id(parent_id),
            level=normalize_level(level),
        )

    def validate_delete(self, db: Session, node_id: int) -> TypeNode:
        node = self.store.get_by_id(db, node_id)
        # Children win over equipment so the caller empties the subtree first.
        if self.resolver.has_children(db, int(node.id)):
            raise HasChildren(
                f"type node {node.id} still has child types",
                field="id",
                constraint="no_children",
            )
        if self.resolver.get_direct_equipment_count(db, int(node.id), include_deleted=True) > 0:
            raise HasEquipment(
                f"type node {node.id} still has equipment attached",
                field="id",
                constraint="no_equipment",
            )
        return node

    def validate_update(self, db: Session, node_id: int, patch: dict[str, Any]) -> tuple[TypeNode, dict[str, Any]]:
        """Return the node and the subset of ``patch`` that actually changes it."""
        node = self.store.get_by_id(db, node_id)

        name = normalize_name(patch["name"]) if patch.get("name") is not None else str(node.name)
        parent_id = normalize_parent_id(patch["parent_id"]) if "parent_id" in patch else node.parent_id
        level = normalize_level(patch["level"]) if patch.get("level") is not None else int(node.level)

        current = {"name": str(node.name), "parent_id": node.parent_id, "level": int(node.level)}
        proposed = {"name": name, "parent_id": parent_id, "level": level}
        changes = {k: v for k, v in proposed.items() if v != current[k]}
        if not changes:
            return node, {}

        if "parent_id" in changes and parent_id is not None:
            if self.store.find_by_id(db, parent_id) is None:
                raise InvalidParent(f"parent {parent_id} does not exist", field="parent_id", constraint="reference")
            if parent_id == int(node.id) or self.resolver.is_ancestor(db, int(node.id), parent_id):
                raise InvalidParent(
                    f"type node {node.id} cannot be moved under itself or its descendants",
                    field="parent_id",
                    constraint="acyclic",
                )

        if "level" in changes and self.resolver.has_children(db, int(node.id)):
            raise LevelMismatch(
                f"type node {node.id} has children; its level cannot change",
                field="level",
                constraint="parent_level_plus_one",
            )

        self._check_shape(db, name=name, parent_id=parent_id, level=level, node_id=int(node.id))
        return node, changes

    def _check_shape(
        self,
        db: Session,
        *,
        name: str,
        parent_id: Optional[int],
        level: int,
        node_id: Optional[int] = None,
    ) -> dict[str, Any]:
        parent: Optional[TypeNode] = None
        if parent_id is not None:
            parent = self.store.find_by_id(db, parent_id)
            if parent is None:
                raise InvalidParent(f"parent {parent_id} does not exist", field="parent_id", constraint="reference")

        if parent is None and level != 1:
            raise LevelMismatch(
                f"a node without parent must be level 1 ({LEVEL_LABELS[1]}), got {level}",
                field="level",
                constraint="root_is_level_one",
            )
        if parent is not None and level != int(parent.level) + 1:
            raise LevelMismatch(
                f"level must be {int(parent.level) + 1} under parent {parent.id} (level {parent.level}), got {level}",
                field="level",
                constraint="parent_level_plus_one",
            )

        existing = self.store.find_one(db, name=name, parent_id=parent_id)
        if existing is not None and int(existing.id) != node_id:
            where = f"parent {parent_id}" if parent_id is not None else "the root"
            raise DuplicateName(
                f"'{name}' already exists under {where}",
                field="name",
                constraint="unique_name_per_parent",
            )

        return {"name": name, "parent_id": parent_id, "level": level}
