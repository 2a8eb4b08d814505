from __future__ import annotations

import json

import pytest

from xhash import BadInputError, Ref, XHash, xh, xhn
from xhash.io import FORMAT, dumps_document, from_document, loads_document, to_document


def test_flat_document_layout() -> None:
    doc = to_document(xh("a", {"k": "v"}))
    assert doc == {
        "format": FORMAT,
        "entries": [{"key": 0, "value": "a"}, {"key": "k", "value": "v"}],
    }


def test_nested_containers_become_xhash_entries() -> None:
    doc = to_document(xhn({"t": ["x"]}))
    assert doc["entries"] == [{"key": "t", "xhash": [{"key": 0, "value": "x"}]}]


def test_document_round_trip_preserves_order_and_nesting() -> None:
    m = xhn("a", {"k": {"deep": [1, 2]}}, {"7": "s"})
    m.store("raw", {"x": [1, None]})
    rebuilt = from_document(json.loads(dumps_document(m)))
    assert rebuilt.keys() == [0, "k", "7", "raw"]
    assert rebuilt.as_pairs(nested=True) == m.as_pairs(nested=True)
    assert isinstance(rebuilt.fetch(["k", "deep"]), XHash)
    assert rebuilt.fetch("raw") == {"x": [1, None]}
    assert rebuilt.next_index() == 8


@pytest.mark.parametrize(
    "document",
    [
        {"format": "other", "entries": []},
        {"format": FORMAT},
        {"format": FORMAT, "entries": [{"key": 1.5, "value": 1}]},
        {"format": FORMAT, "entries": [{"key": "k"}]},
        {"format": FORMAT, "entries": [{"key": "k", "value": 1, "xhash": []}]},
        ["not", "an", "object"],
    ],
)
def test_invalid_documents_are_rejected(document: object) -> None:
    with pytest.raises(BadInputError, match="Invalid XHash document"):
        from_document(document)


def test_loads_document_rejects_bad_json() -> None:
    with pytest.raises(BadInputError, match="Invalid JSON"):
        loads_document("{not json")


@pytest.mark.parametrize("key", [("a", "b"), 2.5, Ref("x")])
def test_unsupported_keys(key: object) -> None:
    m = XHash()
    m.store(key, 1)
    with pytest.raises(BadInputError, match="cannot be stored"):
        to_document(m)


@pytest.mark.parametrize("value", [object(), {1: "int-keyed"}, {"ref": Ref(1)}])
def test_unsupported_values(value: object) -> None:
    m = XHash()
    m.store("k", value)
    with pytest.raises(BadInputError, match="cannot be stored"):
        to_document(m)
