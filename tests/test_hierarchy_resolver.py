from __future__ import annotations

import logging

import pytest

from equipment_catalog.db.models import TypeNode
from equipment_catalog.services.errors import HierarchyCorruption, NotFound


def test_ancestor_chain_fills_slots_by_level(db, type_service, electronics):
    resolver = type_service.resolver

    chain = resolver.get_ancestor_chain(db, electronics["thermocouple"].id)
    assert [n.id for n in chain] == [
        electronics["domain"].id,
        electronics["type"].id,
        electronics["category"].id,
        electronics["thermocouple"].id,
    ]

    partial = resolver.get_ancestor_chain(db, electronics["category"].id)
    assert [n.name if n is not None else None for n in partial] == ["Electronics", "Sensors", "Temperature", None]


def test_hierarchy_is_root_first(db, type_service, electronics):
    names = [n.name for n in type_service.resolver.get_hierarchy(db, electronics["rtd"].id)]
    assert names == ["Electronics", "Sensors", "Temperature", "RTD"]


def test_unknown_node_is_not_found(db, type_service):
    with pytest.raises(NotFound):
        type_service.resolver.get_ancestor_chain(db, 999)
    with pytest.raises(NotFound):
        type_service.resolver.get_children(db, 999)


def test_children_and_domains_are_name_ordered(db, type_service, electronics):
    resolver = type_service.resolver
    type_service.create(db, name="Automation", parent_id=None, level=1)

    children = resolver.get_children(db, electronics["category"].id)
    assert [c.name for c in children] == ["RTD", "Thermocouple"]
    assert [d.name for d in resolver.get_domains(db)] == ["Automation", "Electronics"]
    assert resolver.has_children(db, electronics["type"].id)
    assert not resolver.has_children(db, electronics["rtd"].id)


def test_descendants_and_ancestry(db, type_service, electronics):
    resolver = type_service.resolver

    ids = resolver.get_descendant_ids(db, electronics["domain"].id)
    assert ids == sorted(
        [
            electronics["type"].id,
            electronics["category"].id,
            electronics["thermocouple"].id,
            electronics["rtd"].id,
        ]
    )
    assert resolver.get_descendant_ids(db, electronics["rtd"].id) == []

    assert resolver.is_ancestor(db, electronics["domain"].id, electronics["rtd"].id)
    assert not resolver.is_ancestor(db, electronics["rtd"].id, electronics["domain"].id)
    assert not resolver.is_ancestor(db, electronics["rtd"].id, electronics["rtd"].id)


def test_build_tree_nests_children(db, type_service, electronics):
    tree = type_service.resolver.build_tree(db)
    assert len(tree) == 1
    root = tree[0]
    assert root["name"] == "Electronics"
    assert root["level_label"] == "domain"
    temperature = root["children"][0]["children"][0]
    assert [c["name"] for c in temperature["children"]] == ["RTD", "Thermocouple"]

    sub = type_service.resolver.build_tree(db, root_id=electronics["category"].id)
    assert [n["name"] for n in sub] == ["Temperature"]

    with pytest.raises(NotFound):
        type_service.resolver.build_tree(db, root_id=12345)


def test_list_nodes_orders_by_level(db, type_service, electronics):
    nodes = type_service.resolver.list_nodes(db)
    assert [n["level"] for n in nodes] == [1, 2, 3, 4, 4]
    temperature = nodes[2]
    assert temperature["parent"]["name"] == "Sensors"
    assert [c["name"] for c in temperature["children"]] == ["RTD", "Thermocouple"]


def test_orphan_below_level_one_is_corruption(db, type_service):
    orphan = TypeNode(name="Orphan", parent_id=None, level=3)
    db.add(orphan)
    db.commit()

    with pytest.raises(HierarchyCorruption):
        type_service.resolver.get_ancestor_chain(db, orphan.id)


def test_skipped_level_is_corruption(db, type_service, electronics):
    skipped = TypeNode(name="Skipped", parent_id=electronics["domain"].id, level=3)
    db.add(skipped)
    db.commit()

    with pytest.raises(HierarchyCorruption):
        type_service.resolver.get_hierarchy(db, skipped.id)


def _make_cycle(db) -> tuple[TypeNode, TypeNode]:
    a = TypeNode(name="A", parent_id=None, level=1)
    db.add(a)
    db.commit()
    b = TypeNode(name="B", parent_id=a.id, level=2)
    db.add(b)
    db.commit()
    a.parent_id = b.id
    db.commit()
    return a, b


def test_parent_cycle_is_corruption(db, type_service):
    a, b = _make_cycle(db)

    with pytest.raises(HierarchyCorruption):
        type_service.resolver.get_ancestor_chain(db, b.id)
    with pytest.raises(HierarchyCorruption):
        type_service.resolver.get_ancestor_chain(db, a.id)


def test_build_tree_reports_unreachable_nodes(db, type_service, caplog):
    a, b = _make_cycle(db)

    with caplog.at_level(logging.ERROR, logger="equipment_catalog.services.hierarchy_resolver"):
        assert type_service.resolver.build_tree(db) == []

    assert any(str(a.id) in r.getMessage() and str(b.id) in r.getMessage() for r in caplog.records)
