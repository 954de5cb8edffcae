from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from equipment_catalog.api.deps import get_db, get_equipment_catalog
from equipment_catalog.api.schemas import EquipmentIn, EquipmentPatch
from equipment_catalog.services.equipment_service import EquipmentCatalog, EquipmentFilters

router = APIRouter(prefix="/api/equipments", tags=["equipments"])


@router.get("")
def list_equipments(
    search: Optional[str] = Query(default=None, max_length=255),
    domain: Optional[int] = Query(default=None),
    type_: Optional[int] = Query(default=None, alias="type"),
    category: Optional[int] = Query(default=None),
    subcategory: Optional[int] = Query(default=None),
    brand: Optional[str] = Query(default=None, max_length=255),
    model: Optional[str] = Query(default=None, max_length=255),
    db: Session = Depends(get_db),
    catalog: EquipmentCatalog = Depends(get_equipment_catalog),
):
    filters = EquipmentFilters(
        search=search,
        domain=domain,
        type=type_,
        category=category,
        subcategory=subcategory,
        brand=brand,
        model=model,
    )
    return catalog.get_all(db, filters)


@router.get("/{equipment_id}")
def get_equipment(
    equipment_id: int,
    db: Session = Depends(get_db),
    catalog: EquipmentCatalog = Depends(get_equipment_catalog),
):
    return catalog.get_by_id(db, equipment_id)


@router.post("", status_code=201)
def create_equipment(
    req: EquipmentIn,
    db: Session = Depends(get_db),
    catalog: EquipmentCatalog = Depends(get_equipment_catalog),
):
    row = catalog.create(db, payload=req.model_dump())
    return catalog.equipment_out(db, row)


@router.put("/{equipment_id}")
def update_equipment(
    equipment_id: int,
    req: EquipmentPatch,
    db: Session = Depends(get_db),
    catalog: EquipmentCatalog = Depends(get_equipment_catalog),
):
    row = catalog.update(db, equipment_id, patch=req.model_dump(exclude_unset=True))
    return catalog.equipment_out(db, row)


@router.delete("/{equipment_id}")
def delete_equipment(
    equipment_id: int,
    db: Session = Depends(get_db),
    catalog: EquipmentCatalog = Depends(get_equipment_catalog),
):
    catalog.delete(db, equipment_id)
    return {"status": "ok"}
