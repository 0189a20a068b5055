from __future__ import annotations

import pytest

from searchable_select.catalog import NO_KEY, Catalog, NavigationRing, TextNode, build, relink, same_identity
from searchable_select.errors import CatalogError


def _label(record):
    return record["label"]


def _records(*labels: str) -> list[dict]:
    return [{"label": label, "id": idx} for idx, label in enumerate(labels)]


def test_build_wraps_records_with_labels_and_default_nodes():
    catalog = build(_records("Alpha", "Beta"), _label)

    assert [entry.display_key for entry in catalog] == ["Alpha", "Beta"]
    assert catalog[0].node == TextNode("Alpha")
    assert catalog.first == {"label": "Alpha", "id": 0}
    assert catalog.last == {"label": "Beta", "id": 1}
    assert catalog[0].entry_id != catalog[1].entry_id
    assert catalog[0].entry_id.startswith("auto_")


def test_build_uses_node_fn_and_key_fn():
    catalog = build(_records("Alpha"), _label, node_fn=lambda r: ("li", r["id"]), key_fn=lambda r: r["id"])

    assert catalog[0].node == ("li", 0)
    assert catalog[0].key == 0


@pytest.mark.parametrize("records", [iter([1, 2]), (x for x in range(3)), "abc", {"a": 1}, 42])
def test_build_rejects_non_sequences(records):
    with pytest.raises(CatalogError):
        build(records, str)


def test_missing_label_becomes_empty_label():
    catalog = build([{"label": "ok"}, {"other": 1}, {"label": None}], _label)

    assert [entry.display_key for entry in catalog] == ["ok", "", ""]


def test_key_fn_failure_falls_back_to_reference_identity():
    catalog = build([{"id": 1}, {}], str, key_fn=lambda r: r["id"])

    assert catalog[0].key == 1
    assert catalog[1].key is NO_KEY


def test_relink_forms_single_cycle_in_given_order():
    catalog = build(_records("a", "b", "c", "d"), _label)
    subset = [catalog[2], catalog[0], catalog[3]]
    ring = relink(subset)

    start = ring.first
    current = start
    visited = []
    for _ in range(len(ring)):
        visited.append(current)
        current = ring.next(current)
    assert current is start
    assert visited == subset
    assert ring.prev(catalog[2]) is catalog[3]


def test_relink_leaves_catalog_order_untouched():
    catalog = build(_records("a", "b", "c"), _label)
    filtered = relink([catalog[2], catalog[1]])
    full = catalog.ring()

    assert filtered.next(catalog[2]) is catalog[1]
    assert full.next(catalog[0]) is catalog[1]
    assert full.next(catalog[2]) is catalog[0]
    assert catalog[0] not in filtered


def test_relink_drops_repeated_entries():
    catalog = build(_records("a", "b"), _label)
    ring = relink([catalog[0], catalog[1], catalog[0]])

    assert ring.entries == (catalog[0], catalog[1])


def test_step_on_entry_outside_ring_raises():
    catalog = build(_records("a", "b"), _label)
    ring = relink([catalog[0]])

    with pytest.raises(KeyError):
        ring.next(catalog[1])


def test_single_entry_ring_points_at_itself():
    catalog = build(_records("solo"), _label)
    ring = catalog.ring()

    assert ring.next(catalog[0]) is catalog[0]
    assert ring.prev(catalog[0]) is catalog[0]


def test_find_returns_length_when_nothing_matches():
    catalog = build(_records("a", "b"), _label)

    assert catalog.find(lambda record, _idx: record["label"] == "b") == 1
    assert catalog.find(lambda record, _idx: False) == 2
    assert Catalog().first is None


def test_same_identity_and_locate_honour_keys():
    first = build([{"id": 7, "label": "x"}], _label, key_fn=lambda r: r["id"])
    second = build([{"id": 7, "label": "x (refetched)"}], _label, key_fn=lambda r: r["id"])
    anonymous = build([{"label": "x"}], _label)

    assert same_identity(first[0], second[0])
    assert not same_identity(first[0], anonymous[0])
    assert same_identity(None, None)
    assert second.ring().locate(first[0]) is second[0]
    assert anonymous.ring().locate(first[0]) is None


def test_rings_compare_by_member_identity():
    catalog = build(_records("a", "b"), _label)

    assert relink(catalog.entries) == catalog.ring()
    assert relink([catalog[1], catalog[0]]) != catalog.ring()
    assert NavigationRing() == NavigationRing()
