from __future__ import annotations

from typing import Any, Dict, Optional


class CatalogError(RuntimeError):
    """Base class for every failure the catalog surfaces to callers.

    ``field`` names the request field to correct and ``constraint`` the
    invariant that rejected it; both are optional.
    """

    code = "catalog_error"
    status_code = 400

    def __init__(self, message: str, *, field: Optional[str] = None, constraint: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.field = field
        self.constraint = constraint

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"type": self.code, "detail": self.message}
        if self.field is not None:
            out["field"] = self.field
        if self.constraint is not None:
            out["constraint"] = self.constraint
        return out


class NotFound(CatalogError):
    code = "not_found"
    status_code = 404


class ValidationFailed(CatalogError):
    code = "validation_failed"
    status_code = 400


class DuplicateName(CatalogError):
    code = "duplicate_name"
    status_code = 409


class LevelMismatch(CatalogError):
    code = "level_mismatch"
    status_code = 400


class InvalidParent(CatalogError):
    code = "invalid_parent"
    status_code = 400


class HasChildren(CatalogError):
    code = "has_children"
    status_code = 409


class HasEquipment(CatalogError):
    code = "has_equipment"
    status_code = 409


class HierarchyCorruption(CatalogError):
    """The stored tree violates its own shape; never a user error."""

    code = "hierarchy_corruption"
    status_code = 500


class StoreError(CatalogError):
    """Connectivity or transaction failure in the backing database."""

    code = "store_error"
    status_code = 503
