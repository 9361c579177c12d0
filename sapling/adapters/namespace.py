"""Namespace adapter for sapling nodes.

A ready-made record type for trees that do not bring their own classes.
Equality and repr only look at public fields, so two nodes holding the
same data compare equal whatever behaviors they carry.
"""

from types import SimpleNamespace
from typing import Any, Iterable, Optional

from sapling.fn import public_fields
from sapling.protocols import attach_commit, attach_propagation, track_propagation
from sapling.types import Policy


class Node(SimpleNamespace):
    """Attribute record usable as a leaf, a parent, or both."""

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, Node):
            return NotImplemented
        return public_fields(self) == public_fields(other)

    def __ne__(self, other: Any) -> bool:
        result = self.__eq__(other)
        return result if result is NotImplemented else not result

    __hash__ = None

    def __repr__(self) -> str:
        fields = ", ".join(f"{k}={v!r}" for k, v in public_fields(self).items())
        return f"{type(self).__name__}({fields})"


def create_leaf(state: Any, cls: type = Node, policy: Optional[Policy] = None,
                **fields: Any) -> Any:
    """Build a node holding `state` that commits and propagates.

    Usage:
        leaf = create_leaf({"color": "green"})
        leaf.commit(lambda s: {**s, "color": "brown"}).state
    """
    node = cls(state=state, **fields)
    return attach_propagation(attach_commit(node, policy), policy)


def create_parent(tracked: Iterable[str], cls: type = Node,
                  policy: Optional[Policy] = None, **fields: Any) -> Any:
    """Build a node tracking propagation of the children named in `tracked`.

    Usage:
        tree = create_parent(["leaf"], leaf=create_leaf({"color": "green"}), height=100)
        tree.leaf.commit(turn).height  # 100, on a new tree
    """
    return track_propagation(tracked, policy)(cls(**fields))
