from __future__ import annotations

from typing import List, Optional

from pydantic import AliasChoices, BaseModel, Field


# ----------------
# Type nodes
# ----------------


class TypeNodeIn(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    parent_id: Optional[int] = None
    level: int = Field(ge=1, le=4)


class TypeNodePatch(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    parent_id: Optional[int] = None
    level: Optional[int] = Field(default=None, ge=1, le=4)


class ImportRecordIn(BaseModel):
    # Rows exported with the spreadsheet's French headers are accepted as-is.
    domain: Optional[str] = Field(default=None, validation_alias=AliasChoices("domain", "Domaine"))
    type: Optional[str] = Field(default=None, validation_alias=AliasChoices("type", "Type"))
    category: Optional[str] = Field(default=None, validation_alias=AliasChoices("category", "Catégorie"))
    subcategory: Optional[str] = Field(default=None, validation_alias=AliasChoices("subcategory", "Sous-catégorie"))


class ImportRequest(BaseModel):
    records: List[ImportRecordIn] = Field(validation_alias=AliasChoices("records", "csvData"))


# ----------------
# Equipment
# ----------------


class EquipmentIn(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    equipment_type_id: int
    brand: Optional[str] = Field(default=None, max_length=255)
    model: Optional[str] = Field(default=None, max_length=255)
    description: Optional[str] = None


class EquipmentPatch(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    equipment_type_id: Optional[int] = None
    brand: Optional[str] = Field(default=None, max_length=255)
    model: Optional[str] = Field(default=None, max_length=255)
    description: Optional[str] = None
