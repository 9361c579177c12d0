"""Tests for the functional helpers."""

from dataclasses import dataclass
from types import SimpleNamespace

from sapling.fn import (
    all_of, append, assoc, dissoc, fold, get, has, has_key, identity, negate,
    pipe, public_fields, retype, update, when,
)


@dataclass(frozen=True)
class Point:
    x: int
    y: list


class TestStructural:
    def test_assoc_mapping_shares_other_values(self):
        shared = [1]
        source = {"a": 1, "b": shared}
        new = assoc(source, "a", 2)
        assert new == {"a": 2, "b": shared}
        assert new["b"] is shared
        assert source["a"] == 1

    def test_assoc_object(self):
        source = SimpleNamespace(a=1, b=[1])
        new = assoc(source, "a", 2)
        assert (new.a, source.a) == (2, 1)
        assert new.b is source.b

    def test_assoc_frozen_dataclass(self):
        point = Point(x=1, y=[])
        moved = assoc(point, "x", 5)
        assert moved == Point(x=5, y=point.y)
        assert point.x == 1

    def test_update_and_get(self):
        source = {"count": 1}
        assert update(source, "count", lambda v: v + 1) == {"count": 2}
        assert get(SimpleNamespace(a=1), "missing", "fallback") == "fallback"

    def test_dissoc(self):
        source = SimpleNamespace(a=1, b=2)
        assert vars(dissoc(source, "a")) == {"b": 2}
        assert dissoc({"a": 1, "b": 2}, "a") == {"b": 2}
        assert source.a == 1

    def test_has(self):
        assert has({"state": 1}, "state")
        assert has(SimpleNamespace(state=1), "state")
        assert not has(SimpleNamespace(), "state")

    def test_retype(self):
        class Base:
            def __init__(self, a):
                self.a = a

        class Other(Base):
            pass

        source = Base(1)
        moved = retype(source, Other)
        assert type(moved) is Other
        assert type(source) is Base
        assert moved.a == 1

    def test_retype_builtin_base(self):
        class Other(SimpleNamespace):
            pass

        moved = retype(SimpleNamespace(a=1), Other)
        assert type(moved) is Other
        assert moved.a == 1

    def test_public_fields_skip_hidden_slots(self):
        node = SimpleNamespace(a=1, **{"__sapling_behaviors": object()})
        assert public_fields(node) == {"a": 1}


class TestComposition:
    def test_pipe_runs_left_to_right(self):
        assert pipe(lambda v: v + 1, lambda v: v * 10)(1) == 20
        assert pipe()(3) == 3

    def test_when(self):
        double_evens = when(lambda v: v % 2 == 0, lambda v: v * 2)
        assert double_evens(4) == 8
        assert double_evens(3) == 3

    def test_fold_and_append(self):
        assert fold(append, ["a", "b"], ()) == ("a", "b")
        assert append((1,), 2) == (1, 2)

    def test_predicates(self):
        both = all_of(has_key("a"), negate(has_key("b")))
        assert both({"a": 1})
        assert not both({"a": 1, "b": 2})
        assert identity(7) == 7
