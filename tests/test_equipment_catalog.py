from __future__ import annotations

import pytest
from sqlalchemy import inspect

from equipment_catalog.db.models import Equipment
from equipment_catalog.services.equipment_service import EquipmentCatalog, EquipmentFilters
from equipment_catalog.services.errors import HasEquipment, InvalidParent, NotFound, ValidationFailed


@pytest.fixture()
def catalog(type_service) -> EquipmentCatalog:
    return EquipmentCatalog(resolver=type_service.resolver)


def _add(db, catalog, type_node, name, **extra):
    return catalog.create(db, payload={"name": name, "equipment_type_id": type_node.id, **extra})


def test_equipment_carries_resolved_hierarchy(db, type_service, catalog, electronics):
    row = _add(db, catalog, electronics["thermocouple"], "TC-K probe", brand="Omega", model="K-100")
    out = catalog.get_by_id(db, row.id)

    hierarchy = type_service.resolver.get_hierarchy(db, electronics["thermocouple"].id)
    assert [out[slot]["id"] for slot in ("domain", "type", "category", "subcategory")] == [n.id for n in hierarchy]
    assert out["equipment_type"]["name"] == "Thermocouple"
    assert out["equipment_type"]["level_label"] == "subcategory"


def test_equipment_on_category_leaves_subcategory_empty(db, catalog, electronics):
    row = _add(db, catalog, electronics["category"], "Generic thermometer")
    out = catalog.get_by_id(db, row.id)

    assert out["category"]["name"] == "Temperature"
    assert out["subcategory"] is None


def test_create_validates_payload(db, catalog, electronics):
    with pytest.raises(InvalidParent):
        catalog.create(db, payload={"name": "Ghost", "equipment_type_id": 404})
    with pytest.raises(ValidationFailed):
        catalog.create(db, payload={"name": "  ", "equipment_type_id": electronics["rtd"].id})

    row = _add(db, catalog, electronics["rtd"], "  PT100  ", brand="  ", description=" ")
    assert row.name == "PT100"
    assert row.brand is None
    assert row.description is None


def test_filters(db, catalog, electronics, type_service):
    pumps_domain = type_service.create(db, name="Hydraulics", parent_id=None, level=1)
    _add(db, catalog, electronics["thermocouple"], "Probe B", brand="Fluke", model="80PK")
    _add(db, catalog, electronics["rtd"], "Probe A", brand="Omega", model="PR-10")
    _add(db, catalog, pumps_domain, "Pump", brand="Grundfos")

    def names(rows):
        return [r["name"] for r in rows]

    assert names(catalog.get_all(db)) == ["Probe A", "Probe B", "Pump"]
    assert names(catalog.get_all(db, EquipmentFilters(search="fluk"))) == ["Probe B"]
    assert names(catalog.get_all(db, EquipmentFilters(search="pr-1"))) == ["Probe A"]
    assert names(catalog.get_all(db, EquipmentFilters(brand="omega"))) == ["Probe A"]
    assert names(catalog.get_all(db, EquipmentFilters(model="80pk"))) == ["Probe B"]
    assert names(catalog.get_all(db, EquipmentFilters(domain=electronics["domain"].id))) == ["Probe A", "Probe B"]
    assert names(catalog.get_all(db, EquipmentFilters(domain=pumps_domain.id))) == ["Pump"]
    assert names(catalog.get_all(db, EquipmentFilters(subcategory=electronics["rtd"].id))) == ["Probe A"]
    assert names(
        catalog.get_all(db, EquipmentFilters(category=electronics["category"].id, brand="Fluke"))
    ) == ["Probe B"]
    assert catalog.get_all(db, EquipmentFilters(type=pumps_domain.id)) == []

    _add(db, catalog, electronics["rtd"], "Probe 100%")
    _add(db, catalog, electronics["rtd"], "Probe 1000")
    assert names(catalog.get_all(db, EquipmentFilters(search="100%"))) == ["Probe 100%"]
    assert names(catalog.get_all(db, EquipmentFilters(search="%"))) == ["Probe 100%"]
    assert names(catalog.get_all(db, EquipmentFilters(search="pr_10"))) == []


def test_update_moves_equipment(db, catalog, electronics):
    row = _add(db, catalog, electronics["rtd"], "Probe")
    updated = catalog.update(db, row.id, patch={"equipment_type_id": electronics["thermocouple"].id, "brand": "Omega"})

    assert updated.equipment_type_id == electronics["thermocouple"].id
    assert updated.brand == "Omega"
    assert updated.name == "Probe"
    assert catalog.get_by_id(db, row.id)["subcategory"]["name"] == "Thermocouple"

    with pytest.raises(NotFound):
        catalog.update(db, 999, patch={"name": "x"})


def test_physical_delete(db, catalog, electronics):
    row = _add(db, catalog, electronics["rtd"], "Probe")
    catalog.delete(db, row.id)

    assert db.query(Equipment).count() == 0
    with pytest.raises(NotFound):
        catalog.get_by_id(db, row.id)


def test_soft_delete_hides_row_but_keeps_type_in_use(db, type_service, electronics):
    catalog = EquipmentCatalog(resolver=type_service.resolver, soft_delete=True)
    row = _add(db, catalog, electronics["rtd"], "Probe")
    catalog.delete(db, row.id)

    assert db.query(Equipment).count() == 1
    assert catalog.get_all(db) == []
    with pytest.raises(NotFound):
        catalog.get_by_id(db, row.id)
    with pytest.raises(NotFound):
        catalog.delete(db, row.id)

    resolver = type_service.resolver
    assert resolver.get_direct_equipment_count(db, electronics["rtd"].id, include_deleted=False) == 0
    assert resolver.get_descendant_equipment_count(db, electronics["domain"].id) == 1
    with pytest.raises(HasEquipment):
        type_service.delete(db, electronics["rtd"].id)


def test_equipment_listing_loads_no_relationships():
    # The type context comes from the resolved chain, not an ORM relationship.
    assert list(inspect(Equipment).relationships) == []
