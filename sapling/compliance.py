"""Node-kind-agnostic compliance suite for sapling capabilities.

Node kinds (plain classes, namespaces, dataclasses, ...) provide a fixture
dict:

    fixture = {
        "make_bare": lambda state: ...,      # node with a state field, no capabilities
        "make_stateless": lambda: ...,       # node without a state field
        "make_leaf": lambda color: ...,      # committing, propagating leaf, state {"color": color}
        "make_tree": lambda keys: ...,       # untracked parent: a green leaf under each key, height 100
        "turn": lambda leaf: ...,            # commit flipping the leaf color, return the commit result
        "color": lambda leaf: ...,           # current leaf color
    }

Usage with pytest:

    from sapling.compliance import run_compliance_tests

    def test_compliance(namespace_fixture):
        run_compliance_tests(namespace_fixture)
"""

from typing import Any, Dict

from sapling.fn import identity
from sapling.protocols import (
    Commutes, Propagates, TracksPropagation,
    attach_commit, attach_propagation, track_propagation, try_attach_commit,
)
from sapling.registry import behaviors_of


# ============================================================
# Helpers
# ============================================================

def _tracked_tree(fix: Dict[str, Any], keys=("leaf",)) -> Any:
    return track_propagation(keys)(fix["make_tree"](keys))


# ============================================================
# Commutes
# ============================================================

def test_identity_commit(fix: Dict[str, Any]) -> None:
    """commit(identity) yields a distinct node with equal state."""
    node = attach_commit(fix["make_bare"]({"color": "green"}))
    committed = node.commit(identity)
    assert committed is not node, "commit should produce a new node"
    assert committed.state == node.state, "identity commit should keep state"


def test_commit_applies_updater(fix: Dict[str, Any]) -> None:
    """commit replaces state with updater(state) and leaves the receiver alone."""
    node = attach_commit(fix["make_bare"](5))
    assert node.commit(lambda v: v + 1).state == 6
    assert node.state == 5, "receiver must not be mutated"


def test_commit_requires_state(fix: Dict[str, Any]) -> None:
    """A node without state is returned unchanged, without a commit method."""
    node = fix["make_stateless"]()
    outcome = try_attach_commit(node)
    assert not outcome.ok, "attachment should report a diagnostic"
    assert outcome.value is node, "input should come back unchanged"
    assert not isinstance(outcome.value, Commutes)


def test_attach_does_not_mutate(fix: Dict[str, Any]) -> None:
    """Attaching a capability returns a new node; the input stays bare."""
    node = fix["make_bare"]({"color": "green"})
    capable = attach_commit(node)
    assert capable is not node
    assert not isinstance(node, Commutes)
    assert behaviors_of(node) is None


# ============================================================
# Propagates
# ============================================================

def test_untracked_propagate_is_identity(fix: Dict[str, Any]) -> None:
    """Before tracking, propagate passes results through."""
    leaf = fix["make_leaf"]("green")
    sentinel = object()
    assert leaf.propagate(sentinel) is sentinel
    assert fix["color"](fix["turn"](leaf)) == "brown", \
        "an untracked leaf should commit like a plain Commutes node"


def test_propagate_override_is_honored(fix: Dict[str, Any]) -> None:
    """An overridden propagate decides what commit returns."""
    smoke = {"message": "propagate called"}
    leaf = Propagates.override(lambda result: [smoke, result.state])(fix["make_leaf"]("green"))
    assert leaf.commit(identity) == [smoke, {"color": "green"}]


# ============================================================
# TracksPropagation
# ============================================================

def test_ledger_order(fix: Dict[str, Any]) -> None:
    """Ledger keys read out in declaration order."""
    tree = _tracked_tree(fix, ("leaf", "leaf2"))
    assert [entry.key for entry in TracksPropagation.ledger(tree)] == ["leaf", "leaf2"]


def test_child_commit_returns_parent(fix: Dict[str, Any]) -> None:
    """Committing a tracked child yields a new parent with only that slot changed."""
    tree = _tracked_tree(fix)
    turned = fix["turn"](tree.leaf)
    assert isinstance(turned, TracksPropagation), "commit should return the parent"
    assert turned.height == 100
    assert fix["color"](turned.leaf) == "brown"
    assert fix["color"](tree.leaf) == "green", "original parent must be untouched"


def test_turn_back(fix: Dict[str, Any]) -> None:
    """Two commits through the returned parents compose."""
    tree = _tracked_tree(fix)
    twice = fix["turn"](fix["turn"](tree.leaf).leaf)
    assert twice.height == 100
    assert fix["color"](twice.leaf) == "green"


def test_no_cross_talk(fix: Dict[str, Any]) -> None:
    """Sibling commits through one lineage keep each other's updates."""
    tree = _tracked_tree(fix, ("leaf", "leaf2"))
    both = fix["turn"](fix["turn"](tree.leaf).leaf2)
    assert fix["color"](both.leaf) == "brown"
    assert fix["color"](both.leaf2) == "brown"
    only_first = fix["turn"](tree.leaf)
    assert fix["color"](only_first.leaf2) == "green", \
        "committing one leaf must not alter its sibling"
    only_second = fix["turn"](tree.leaf2)
    assert fix["color"](only_second.leaf2) == "brown"
    assert fix["color"](only_second.leaf) == "green", \
        "committing the sibling must not alter the first leaf"


def test_missing_key_is_skipped(fix: Dict[str, Any]) -> None:
    """Tracking an absent key leaves the ledger without it."""
    tree = track_propagation(["leaf", "absent"])(fix["make_tree"](("leaf",)))
    assert [entry.key for entry in TracksPropagation.ledger(tree)] == ["leaf"]


# ============================================================
# Full test suite
# ============================================================

ALL_TESTS = {
    "commutes": [
        test_identity_commit,
        test_commit_applies_updater,
        test_commit_requires_state,
        test_attach_does_not_mutate,
    ],
    "propagates": [
        test_untracked_propagate_is_identity,
        test_propagate_override_is_honored,
    ],
    "tracks_propagation": [
        test_ledger_order,
        test_child_commit_returns_parent,
        test_turn_back,
        test_no_cross_talk,
        test_missing_key_is_skipped,
    ],
}


def run_compliance_tests(fixture: Dict[str, Any]) -> None:
    """Run all compliance tests for the given fixture.

    Required fixture keys:
        make_bare       - (state) -> node
        make_stateless  - () -> node
        make_leaf       - (color) -> propagating node
        make_tree       - (keys) -> untracked parent
        turn            - (leaf) -> commit result
        color           - (leaf) -> str
    """
    for capability, tests in ALL_TESTS.items():
        for test_fn in tests:
            test_fn(fixture)


def leaf_factory(make_bare):
    """make_leaf built from make_bare, for fixtures with no special leaves."""
    return lambda color: attach_propagation(attach_commit(make_bare({"color": color})))
