from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from equipment_catalog.api.deps import (
    get_bulk_importer,
    get_db,
    get_equipment_type_service,
    get_hierarchy_resolver,
    get_settings,
)
from equipment_catalog.api.schemas import ImportRequest, TypeNodeIn, TypeNodePatch
from equipment_catalog.core.settings import Settings
from equipment_catalog.services.bulk_importer import BulkImporter, ImportRecord
from equipment_catalog.services.equipment_type_service import EquipmentTypeService
from equipment_catalog.services.errors import ValidationFailed
from equipment_catalog.services.hierarchy_resolver import HierarchyResolver, node_out

router = APIRouter(prefix="/api/equipment-types", tags=["equipment-types"])


@router.get("")
def list_equipment_types(
    db: Session = Depends(get_db),
    resolver: HierarchyResolver = Depends(get_hierarchy_resolver),
):
    return resolver.list_nodes(db)


@router.get("/domains")
def list_domains(
    db: Session = Depends(get_db),
    resolver: HierarchyResolver = Depends(get_hierarchy_resolver),
):
    return [node_out(n) for n in resolver.get_domains(db)]


@router.get("/tree")
def equipment_type_tree(
    root_id: Optional[int] = Query(default=None),
    db: Session = Depends(get_db),
    resolver: HierarchyResolver = Depends(get_hierarchy_resolver),
):
    return resolver.build_tree(db, root_id=root_id)


@router.post("/import")
def import_equipment_types(
    req: ImportRequest,
    db: Session = Depends(get_db),
    importer: BulkImporter = Depends(get_bulk_importer),
):
    records = [ImportRecord(**r.model_dump()) for r in req.records]
    return importer.import_records(db, records).to_dict()


@router.post("/import/csv")
async def import_equipment_types_csv(
    request: Request,
    db: Session = Depends(get_db),
    importer: BulkImporter = Depends(get_bulk_importer),
):
    raw = await request.body()
    try:
        text = raw.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise ValidationFailed("CSV body must be UTF-8 encoded", field="csv", constraint="encoding")
    result = await run_in_threadpool(importer.import_csv, db, text)
    return result.to_dict()


@router.post("", status_code=201)
def create_equipment_type(
    req: TypeNodeIn,
    db: Session = Depends(get_db),
    svc: EquipmentTypeService = Depends(get_equipment_type_service),
):
    node = svc.create(db, name=req.name, parent_id=req.parent_id, level=req.level)
    return node_out(node)


@router.get("/{node_id}")
def get_equipment_type(
    node_id: int,
    db: Session = Depends(get_db),
    svc: EquipmentTypeService = Depends(get_equipment_type_service),
    settings: Settings = Depends(get_settings),
):
    return svc.detail(db, node_id, include_deleted=not settings.equipment_soft_delete)


@router.get("/{node_id}/children")
def list_children(
    node_id: int,
    db: Session = Depends(get_db),
    resolver: HierarchyResolver = Depends(get_hierarchy_resolver),
):
    return [node_out(n) for n in resolver.get_children(db, node_id)]


@router.get("/{node_id}/hierarchy")
def get_hierarchy(
    node_id: int,
    db: Session = Depends(get_db),
    resolver: HierarchyResolver = Depends(get_hierarchy_resolver),
):
    return [node_out(n) for n in resolver.get_hierarchy(db, node_id)]


@router.put("/{node_id}")
def update_equipment_type(
    node_id: int,
    req: TypeNodePatch,
    db: Session = Depends(get_db),
    svc: EquipmentTypeService = Depends(get_equipment_type_service),
):
    node = svc.update(db, node_id, patch=req.model_dump(exclude_unset=True))
    return node_out(node)


@router.delete("/{node_id}")
def delete_equipment_type(
    node_id: int,
    db: Session = Depends(get_db),
    svc: EquipmentTypeService = Depends(get_equipment_type_service),
):
    svc.delete(db, node_id)
    return {"status": "ok"}
