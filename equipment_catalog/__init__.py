"""Equipment catalog core package."""

from .services.bulk_importer import BulkImporter, ImportRecord, ImportResult
from .services.equipment_service import EquipmentCatalog, EquipmentFilters
from .services.equipment_type_service import EquipmentTypeService
from .services.hierarchy_resolver import HierarchyResolver
from .services.integrity_guard import IntegrityGuard
from .services.type_node_store import TypeNodeStore

__all__ = [
    "BulkImporter",
    "ImportRecord",
    "ImportResult",
    "EquipmentCatalog",
    "EquipmentFilters",
    "EquipmentTypeService",
    "HierarchyResolver",
    "IntegrityGuard",
    "TypeNodeStore",
]
