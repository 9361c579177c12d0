"""The tree example, on plain classes and on frozen dataclasses.

Leaves turn brown and back; the tree keeps its height and every leaf
turns independently.
"""

from dataclasses import dataclass
from typing import Any, Optional

import pytest

from sapling.compliance import leaf_factory, run_compliance_tests
from sapling.protocols import (
    TracksPropagation, attach_commit, attach_propagation, track_propagation,
    tracked_child,
)


def _turned(color):
    return "brown" if color == "green" else "green"


# ============================================================
# Plain classes
# ============================================================

class Leaf:
    def __init__(self, color="green"):
        self.state = {"color": color}

    def turn(self):
        return self.commit(lambda state: {**state, "color": _turned(state["color"])})


class Tree:
    def __init__(self, height=100, **children):
        self.height = height
        for key, child in children.items():
            setattr(self, key, child)


class Bare:
    def __init__(self, state):
        self.state = state


class Stateless:
    def __init__(self):
        self.value = 5


def make_leaf(color="green"):
    return attach_propagation(attach_commit(Leaf(color)))


def make_tree():
    return track_propagation(["leaf", "leaf2"])(Tree(leaf=make_leaf(), leaf2=make_leaf()))


CLASS_FIXTURE = {
    "make_bare": Bare,
    "make_stateless": Stateless,
    "make_leaf": make_leaf,
    "make_tree": lambda keys: Tree(**{key: make_leaf() for key in keys}),
    "turn": lambda leaf: leaf.turn(),
    "color": lambda leaf: leaf.state["color"],
}


# ============================================================
# Frozen dataclasses
# ============================================================

@dataclass(frozen=True)
class Cell:
    state: Any


@dataclass(frozen=True)
class Empty:
    value: int = 0


@dataclass(frozen=True)
class Garden:
    height: int = 100
    leaf: Optional[Any] = None
    leaf2: Optional[Any] = None


_make_cell_leaf = leaf_factory(Cell)

DATACLASS_FIXTURE = {
    "make_bare": Cell,
    "make_stateless": Empty,
    "make_leaf": _make_cell_leaf,
    "make_tree": lambda keys: Garden(**{key: _make_cell_leaf("green") for key in keys}),
    "turn": lambda leaf: leaf.commit(lambda state: {**state, "color": _turned(state["color"])}),
    "color": lambda leaf: leaf.state["color"],
}


@pytest.mark.parametrize("fixture", [CLASS_FIXTURE, DATACLASS_FIXTURE],
                         ids=["classes", "dataclasses"])
def test_compliance(fixture):
    run_compliance_tests(fixture)


# ============================================================
# Tree example
# ============================================================

class TestTreeExample:
    def test_trees_have_green_leaves(self):
        tree = make_tree()
        assert tree.height == 100
        assert tree.leaf.state["color"] == "green"

    def test_they_can_turn_brown(self):
        turned = make_tree().leaf.turn()
        assert isinstance(turned, Tree)
        assert turned.height == 100
        assert turned.leaf.state["color"] == "brown"

    def test_and_they_can_turn_back_again(self):
        turned_twice = make_tree().leaf.turn().leaf.turn()
        assert turned_twice.height == 100
        assert turned_twice.leaf.state["color"] == "green"

    def test_no_caching_or_lossy_updating(self):
        lossless = make_tree().leaf.turn().leaf2.turn()
        assert lossless.leaf.state["color"] == "brown"
        assert lossless.leaf2.state["color"] == "brown"

    def test_leaves_share_no_state(self):
        tree = make_tree()
        turned = tree.leaf.turn()
        assert turned.leaf.state is not turned.leaf2.state
        assert tracked_child(turned, "leaf2") is tracked_child(tree, "leaf2")

    def test_getters_and_private_handles_agree(self):
        tree = make_tree()
        ledger = TracksPropagation.ledger(tree)
        aliased = [getattr(tree, entry.handle) for entry in ledger]
        assert [child.state for child in aliased] == [tree.leaf.state, tree.leaf2.state]


class TestGardenExample:
    def test_frozen_parent_updates_by_copy(self):
        garden = track_propagation(["leaf"])(Garden(leaf=_make_cell_leaf("green")))
        turned = DATACLASS_FIXTURE["turn"](garden.leaf)
        assert isinstance(turned, Garden)
        assert turned.leaf.state == {"color": "brown"}
        assert garden.leaf.state == {"color": "green"}
        assert turned.leaf2 is None


class Orchard:
    leaf = None
    height = 100

    def __init__(self, leaf=None):
        if leaf is not None:
            self.leaf = leaf


class TestClassDefaults:
    def test_tracked_key_wins_over_class_attribute(self):
        orchard = track_propagation(["leaf"])(Orchard(leaf=make_leaf()))
        assert orchard.leaf is not None
        assert orchard.leaf.state == {"color": "green"}
        turned = orchard.leaf.turn()
        assert isinstance(turned, Orchard)
        assert turned.leaf.state == {"color": "brown"}
        assert turned.leaf.turn().leaf.state == {"color": "green"}

    def test_untracked_class_attribute_is_untouched(self):
        orchard = track_propagation(["leaf"])(Orchard(leaf=make_leaf()))
        assert orchard.height == 100
        assert Orchard.leaf is None
