"""
Unit tests for path parsing, target resolution and the tree walker.
"""

import threading

import pytest

from fieldcrypt.core.exceptions import ConfigurationError
from fieldcrypt.core.models import SelectionMode
from fieldcrypt.core.walker import (
    format_location,
    iter_leaves,
    parse_path,
    resolve_selection,
    resolve_targets,
    walk,
)


DOC = {
    "name": "Firefly",
    "tags": ["a", "b"],
    "orders": [
        {"id": "o1", "total": 10.5, "lines": [{"sku": "x"}, {"sku": "y"}]},
        {"id": "o2", "total": 3, "lines": []},
    ],
    "meta": {"active": True, "note": None, "empty": {}},
}


def _targets(paths, mode):
    return [format_location(loc) for loc in resolve_targets(DOC, [parse_path(p) for p in paths], mode)]


# ==============================================================================
# Tests: parsing and selection
# ==============================================================================

def test_parse_path():
    assert parse_path("Account.Order.$.OrderID") == ("Account", "Order", "$", "OrderID")
    assert parse_path("Account Name") == ("Account Name",)


@pytest.mark.parametrize("bad", ["", "a..b", ".a", "a."])
def test_parse_path_rejects_empty_segments(bad):
    with pytest.raises(ConfigurationError, match="invalid field path"):
        parse_path(bad)


def test_resolve_selection_include():
    schema, mode = resolve_selection(["a.b"], [])
    assert schema == [("a", "b")]
    assert mode is SelectionMode.INCLUDE


def test_resolve_selection_exclude():
    schema, mode = resolve_selection(None, ["a"])
    assert schema == [("a",)]
    assert mode is SelectionMode.EXCLUDE


def test_resolve_selection_both_given():
    with pytest.raises(ConfigurationError, match="simultaneously"):
        resolve_selection(["a"], ["b"])


def test_resolve_selection_none_given():
    with pytest.raises(ConfigurationError, match="must be non-empty"):
        resolve_selection([], None)


def test_resolve_selection_rejects_plain_string():
    with pytest.raises(ConfigurationError, match="list"):
        resolve_selection("a.b", None)


# ==============================================================================
# Tests: target resolution
# ==============================================================================

def test_include_wildcard():
    assert _targets(["orders.$.id"], SelectionMode.INCLUDE) == ["orders.0.id", "orders.1.id"]


def test_include_index_segment():
    assert _targets(["orders.1.total"], SelectionMode.INCLUDE) == ["orders.1.total"]


def test_include_container_selects_all_leaves_below():
    assert _targets(["orders.0.lines"], SelectionMode.INCLUDE) == ["orders.0.lines.0.sku", "orders.0.lines.1.sku"]


def test_include_missing_paths_select_nothing():
    assert _targets(["nope", "orders.$.nope", "orders.7.id", "name.deeper"], SelectionMode.INCLUDE) == []


def test_include_deduplicates():
    assert _targets(["name", "name", "tags.$", "tags.0"], SelectionMode.INCLUDE) == ["name", "tags.0", "tags.1"]


def test_include_empty_containers_are_not_leaves():
    assert _targets(["meta"], SelectionMode.INCLUDE) == ["meta.active", "meta.note"]


def test_exclude_selects_complement():
    assert _targets(["orders", "tags.$"], SelectionMode.EXCLUDE) == ["name", "meta.active", "meta.note"]


def test_exclude_wildcard_and_index():
    targets = _targets(["orders.$.lines", "orders.0.total", "meta", "tags", "name"], SelectionMode.EXCLUDE)
    assert targets == ["orders.0.id", "orders.1.id", "orders.1.total"]


def test_exclude_nothing_matched_selects_everything():
    assert len(_targets(["unknown"], SelectionMode.EXCLUDE)) == len(list(iter_leaves(DOC)))


def test_top_level_scalar_document():
    assert resolve_targets("plain", [("x",)], SelectionMode.EXCLUDE) == [()]


# ==============================================================================
# Tests: walk
# ==============================================================================

def test_walk_identity_keeps_document():
    result = walk(DOC, [parse_path("orders.$.id")], lambda key, value: value, SelectionMode.INCLUDE)
    assert result == DOC
    assert result is not DOC


def test_walk_replaces_only_selected_leaves():
    result = walk(DOC, [parse_path("orders.$.id")], lambda key, value: f"<{key}>", SelectionMode.INCLUDE)
    assert [o["id"] for o in result["orders"]] == ["<orders.0.id>", "<orders.1.id>"]
    assert result["orders"][0]["total"] == 10.5
    assert DOC["orders"][0]["id"] == "o1"


def test_walk_top_level_scalar():
    assert walk(5, [("x",)], lambda key, value: value + 1, SelectionMode.EXCLUDE) == 6


def test_walk_failure_propagates():
    def boom(key, value):
        if key == "orders.1.id":
            raise RuntimeError("leaf failed")
        return value

    with pytest.raises(RuntimeError, match="leaf failed"):
        walk(DOC, [parse_path("orders.$.id")], boom, SelectionMode.INCLUDE, max_workers=4)


def test_walk_sequential_with_one_worker():
    seen = set()

    def record(key, value):
        seen.add(threading.get_ident())
        return value

    walk(DOC, [parse_path("orders")], record, SelectionMode.EXCLUDE, max_workers=1)
    assert seen == {threading.get_ident()}
