from __future__ import annotations

import pytest

from equipment_catalog.db.models import TypeNode
from equipment_catalog.services.bulk_importer import BulkImporter, ImportRecord, parse_csv
from equipment_catalog.services.errors import ValidationFailed

RECORDS = [
    {"domain": "Electronics", "type": "Sensors", "category": "Temperature", "subcategory": "Thermocouple"},
    {"domain": "Electronics", "type": "Sensors", "category": "Temperature", "subcategory": "RTD"},
]


def _names_by_level(db) -> dict[int, list[str]]:
    out: dict[int, list[str]] = {}
    for node in db.query(TypeNode).order_by(TypeNode.level, TypeNode.name).all():
        out.setdefault(node.level, []).append(node.name)
    return out


def test_import_builds_shared_chain(db):
    result = BulkImporter().import_records(db, RECORDS)

    assert result.total == 2
    assert result.imported == 2
    assert result.failed == 0
    assert result.created == 5
    assert result.reused == 3
    assert _names_by_level(db) == {
        1: ["Electronics"],
        2: ["Sensors"],
        3: ["Temperature"],
        4: ["RTD", "Thermocouple"],
    }
    first, second = result.records
    assert first.node_ids[:3] == second.node_ids[:3]


def test_reimport_is_idempotent(db):
    BulkImporter().import_records(db, RECORDS)
    again = BulkImporter().import_records(db, RECORDS)

    assert again.created == 0
    assert again.reused == 8
    assert db.query(TypeNode).count() == 5


def test_import_reuses_nodes_created_by_hand(db, type_service):
    domain = type_service.create(db, name="Electronics", parent_id=None, level=1)

    result = BulkImporter().import_records(db, [{"domain": "Electronics", "type": "Sensors"}])

    assert result.records[0].node_ids[0] == domain.id
    assert result.created == 1


def test_failed_record_does_not_leak(db):
    records = [
        {"domain": "Electronics", "type": "Sensors"},
        {"domain": "Mechanics", "type": "x" * 300},
        {"domain": "Mechanics", "type": "Pumps"},
    ]
    result = BulkImporter().import_records(db, records)

    assert [r.status for r in result.records] == ["ok", "error", "ok"]
    assert result.failed == 1
    assert result.records[1].error["type"] == "validation_failed"
    assert result.records[1].error["field"] == "type"
    # The rolled-back domain is created once, by the later record.
    assert db.query(TypeNode).filter(TypeNode.name == "Mechanics").count() == 1
    assert _names_by_level(db)[2] == ["Pumps", "Sensors"]


def test_blank_domain_is_skipped_and_gaps_truncate(db):
    records = [
        ImportRecord(domain="  ", type="Sensors"),
        ImportRecord(domain="Electronics", type="", category="Temperature"),
    ]
    result = BulkImporter().import_records(db, records)

    assert result.skipped == 1
    assert result.imported == 1
    assert _names_by_level(db) == {1: ["Electronics"]}


def test_record_limit(db):
    importer = BulkImporter(max_records=1)
    with pytest.raises(ValidationFailed):
        importer.import_records(db, RECORDS)
    assert db.query(TypeNode).count() == 0


def test_parse_french_semicolon_csv():
    text = "\ufeffDomaine;Type;Catégorie;Sous-catégorie\nElectronics;Sensors;Temperature;RTD\n\n;;;\n"
    records = parse_csv(text)

    assert records == [ImportRecord(domain="Electronics", type="Sensors", category="Temperature", subcategory="RTD")]


def test_parse_csv_with_partial_columns():
    text = "domain,type\nElectronics,Sensors\nMechanics\n"
    records = parse_csv(text)

    assert [r.level_names() for r in records] == [["Electronics", "Sensors"], ["Mechanics"]]


def test_parse_csv_requires_domain_column():
    with pytest.raises(ValidationFailed):
        parse_csv("type,category\nSensors,Temperature\n")


def test_import_csv(db):
    text = "Domain,Type,Category,Subcategory\nElectronics,Sensors,Temperature,Thermocouple\nElectronics,Sensors,Pressure,\n"
    result = BulkImporter().import_csv(db, text)

    assert result.imported == 2
    assert _names_by_level(db)[3] == ["Pressure", "Temperature"]


def test_parse_csv_rejects_oversized_field():
    with pytest.raises(ValidationFailed) as excinfo:
        parse_csv("domain\n" + "x" * 200000 + "\n")
    assert excinfo.value.field == "csv"
    assert excinfo.value.constraint == "format"
