from __future__ import annotations

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from equipment_catalog.core.settings import Settings
from equipment_catalog.services.bulk_importer import BulkImporter
from equipment_catalog.services.equipment_service import EquipmentCatalog
from equipment_catalog.services.equipment_type_service import EquipmentTypeService
from equipment_catalog.services.hierarchy_resolver import HierarchyResolver


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


# -----------------
# Database
# -----------------

def get_db(request: Request):
    SessionLocal = request.app.state.db_sessionmaker
    db: Session = SessionLocal()  # type: ignore
    try:
        yield db
    finally:
        db.close()


# -----------------
# Services
# -----------------

def get_equipment_type_service(request: Request) -> EquipmentTypeService:
    return request.app.state.equipment_type_service


def get_hierarchy_resolver(request: Request) -> HierarchyResolver:
    return request.app.state.equipment_type_service.resolver


def get_equipment_catalog(request: Request) -> EquipmentCatalog:
    return request.app.state.equipment_catalog


def get_bulk_importer(settings: Settings = Depends(get_settings)) -> BulkImporter:
    return BulkImporter(max_records=settings.import_max_records)
