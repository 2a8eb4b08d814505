from __future__ import annotations

from typing import Any, List, Optional, Tuple

from hypothesis import given, settings, strategies as st

from xhash import INDEX_KEYS, XHash, xhr
from xhash.analysis import verify_ring
from xhash.core.keys import index_value


def _key_strategy() -> st.SearchStrategy[Any]:
    return st.one_of(
        st.integers(-3, 8),
        st.sampled_from(["a", "b", "7", "-1"]),
        st.none(),
    )


def _operation_strategy() -> st.SearchStrategy[Tuple[str, Any, Optional[int]]]:
    key = _key_strategy()
    value = st.integers(-1_000, 1_000)
    return st.one_of(
        st.tuples(st.just("store"), key, value),
        st.tuples(st.just("delete"), key, st.none()),
        st.tuples(st.just("push"), st.none(), value),
        st.tuples(st.just("unshift"), st.none(), value),
        st.tuples(st.just("pop"), st.none(), st.none()),
        st.tuples(st.just("shift"), st.none(), st.none()),
    )


def _model_next_index(model: List[Tuple[Any, Any]]) -> int:
    found = [idx for idx in (index_value(key) for key, _ in model) if idx is not None]
    return max(found, default=-1) + 1


def _model_store(model: List[Tuple[Any, Any]], key: Any, value: Any, *, front: bool = False) -> None:
    if key is None:
        key = _model_next_index(model)
    for pos, (existing, _) in enumerate(model):
        if existing == key:
            model[pos] = (key, value)
            return
    if front:
        model.insert(0, (key, value))
    else:
        model.append((key, value))


@settings(max_examples=150, deadline=None)
@given(st.lists(_operation_strategy(), min_size=1, max_size=60))
def test_xhash_matches_ordered_model(operations: List[Tuple[str, Any, Optional[int]]]) -> None:
    m = XHash()
    model: List[Tuple[Any, Any]] = []

    for op, key, value in operations:
        if op == "store":
            m.store(key, value)
            _model_store(model, key, value)
        elif op == "push":
            m.push(value)
            _model_store(model, None, value)
        elif op == "unshift":
            m.unshift(value)
            _model_store(model, None, value, front=True)
        elif op == "delete":
            if key is None:
                continue
            expected = dict(model).get(key)
            assert m.delete(key) == expected
            model = [(k, v) for k, v in model if k != key]
        elif op == "pop":
            assert m.pop() == (model.pop() if model else None)
        elif op == "shift":
            assert m.shift() == (model.pop(0) if model else None)

        assert m.keys() == [k for k, _ in model]
        assert m.next_index() == _model_next_index(model)
        ok, msgs = verify_ring(m)
        assert ok, msgs

    assert m.values() == [v for _, v in model]


@settings(max_examples=100, deadline=None)
@given(st.lists(st.one_of(st.integers(), st.text(max_size=5), st.booleans()), max_size=20))
def test_scalar_sequence_round_trips(values: List[Any]) -> None:
    assert xhr(values).as_sequence() == values


@settings(max_examples=100, deadline=None)
@given(
    st.lists(st.integers(-5, 20), unique=True, max_size=12),
    st.booleans(),
)
def test_renumber_makes_index_keys_consecutive(keys: List[int], sort: bool) -> None:
    m = XHash()
    for key in keys:
        m.store(key, key)
    m.store("tag", "kept")
    m.renumber(sort=sort)

    assert m.keys(index_only=True, sort=True) == list(range(len(keys)))
    assert m.fetch("tag") == "kept"
    expected_values = sorted(keys) if sort else keys
    assert [m.fetch(i) for i in range(len(keys))] == expected_values
    ok, msgs = verify_ring(m)
    assert ok, msgs


@settings(max_examples=100, deadline=None)
@given(st.permutations(list(range(6))))
def test_reorder_index_keys_sorts_any_insertion_order(order: List[int]) -> None:
    m = XHash()
    for key in order:
        m.store(key, f"v{key}")
    m.reorder(INDEX_KEYS)
    assert m.keys() == sorted(order)
    assert m.values() == [f"v{key}" for key in sorted(order)]
